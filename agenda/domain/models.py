"""Domain models for the booking scheduling engine.

All datetimes are naive and expressed in venue-local time.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ReservationStatus(StrEnum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FINALIZED = "FINALIZED"
    CANCELLED = "CANCELLED"


class DragMode(StrEnum):
    MOVE = "MOVE"
    RESIZE_START = "RESIZE_START"
    RESIZE_END = "RESIZE_END"


class RecurrenceFrequency(StrEnum):
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class TimelineEntryType(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    CONFLICT_DETECTED = "conflict_detected"
    RECURRENCE_COMMITTED = "recurrence_committed"


def _now() -> datetime:
    return datetime.now()


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Core domain models
# ---------------------------------------------------------------------------


class Interval(BaseModel):
    """Half-open time range ``[start, end)``."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime


class Reservation(BaseModel):
    id: str = Field(default_factory=_new_id)
    resource_id: str
    start_time: datetime
    end_time: datetime
    status: ReservationStatus = ReservationStatus.CONFIRMED
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    notes: str | None = None
    created_at: datetime = Field(default_factory=_now)

    @model_validator(mode="after")
    def _end_after_start(self) -> Reservation:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def interval(self) -> Interval:
        return Interval(start=self.start_time, end=self.end_time)


class ColumnAssignment(BaseModel):
    reservation_id: str
    column: int
    total_columns: int

    @property
    def width_percent(self) -> float:
        return 100 / self.total_columns

    @property
    def left_percent(self) -> float:
        return self.column * self.width_percent


class DragSession(BaseModel):
    """Ephemeral state of one move/resize gesture."""

    target_id: str
    resource_id: str
    mode: DragMode
    origin_interval: Interval
    pointer_origin: float
    preview: Interval


class SlotCandidate(BaseModel):
    start: datetime
    resource_id: str

    @property
    def label(self) -> str:
        return self.start.strftime("%H:%M")


class ServiceItem(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    duration_minutes: int = Field(gt=0)


class OperatingHours(BaseModel):
    """Opening hours of the venue for one weekday (0 = Sunday ... 6 = Saturday)."""

    day_of_week: int = Field(ge=0, le=6)
    open_time: time
    close_time: time
    is_open: bool = True
    lunch_start: time | None = None
    lunch_end: time | None = None


class PaletteEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    bg: str
    border: str
    dot: str


class TimelineEntry(BaseModel):
    id: str = Field(default_factory=_new_id)
    reservation_id: str
    timestamp: datetime = Field(default_factory=_now)
    type: TimelineEntryType
    payload: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Request / Response DTOs
# ---------------------------------------------------------------------------


class ReservationCreate(BaseModel):
    """Candidate reservation; ordering of the interval is checked by the store."""

    resource_id: str
    start_time: datetime
    end_time: datetime
    status: ReservationStatus = ReservationStatus.CONFIRMED
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    notes: str | None = None

    @property
    def interval(self) -> Interval:
        return Interval(start=self.start_time, end=self.end_time)


class ReservationUpdate(BaseModel):
    resource_id: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None
    status: ReservationStatus | None = None
    notes: str | None = None


class RecurrenceRequest(BaseModel):
    seed: Interval
    resource_id: str
    frequency: RecurrenceFrequency = RecurrenceFrequency.WEEKLY
    count: int = Field(gt=0)
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    notes: str | None = None


class RecurrenceBatch(BaseModel):
    """Outcome of committing every occurrence of a recurrence request."""

    requested: int
    created: list[Reservation] = Field(default_factory=list)
    skipped_past: list[Interval] = Field(default_factory=list)
    skipped_conflict: list[Interval] = Field(default_factory=list)
    failed: list[Interval] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return len(self.created) > 0

    @property
    def summary(self) -> str:
        return f"{len(self.created)}/{self.requested} criadas"


class ConflictCheckRequest(BaseModel):
    resource_id: str
    start_time: datetime
    end_time: datetime
    exclude_id: str | None = None


class ConflictCheckResponse(BaseModel):
    conflict: bool
    conflicting_ids: list[str] = Field(default_factory=list)


class AvailabilityRequest(BaseModel):
    day: date
    resource_ids: list[str] = Field(min_length=1)
    services: list[ServiceItem] = Field(min_length=1)
    operating_hours: list[OperatingHours] | None = None


class CardPlacement(BaseModel):
    """Where a reservation card is drawn on the day grid."""

    reservation_id: str
    column: int
    total_columns: int
    left_percent: float
    width_percent: float
    top_px: float
    height_px: float


class DragRequest(BaseModel):
    """A complete pointer gesture on a reservation card, replayed on release."""

    mode: DragMode = DragMode.MOVE
    pointer_origin: float
    pointer_y: float
