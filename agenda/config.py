from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    LOG_LEVEL: str = "INFO"

    # Day view grid (08:00 to 22:00, 56px per hour, 30 minute snap)
    GRID_START_HOUR: int = 8
    GRID_END_HOUR: int = 22
    ROW_HEIGHT_PX: float = 56
    SNAP_MINUTES: int = 30
    MIN_DURATION_MINUTES: int = 30

    # Appointment slot search
    WORK_START_HOUR: int = 8
    WORK_END_HOUR: int = 18
    SLOT_INTERVAL_MINUTES: int = 30


settings = Settings()
