"""Conversion between wall-clock time and vertical pixel offsets on the day grid.

The visible day is a stack of equal-height hour rows starting at
``grid_start_hour``. These functions are pure coordinate transforms: they do
not know about business hours and never clamp out-of-range values. Bounds are
checked by the caller through :meth:`TimeGrid.contains`.
"""

from __future__ import annotations

import math
from datetime import date, datetime, time, timedelta

from pydantic import BaseModel, Field

from agenda.domain.models import Interval

MIN_CARD_HEIGHT_PX = 28


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def snap_minutes(minutes: float, snap: int) -> int:
    """Round ``minutes`` to the nearest multiple of ``snap`` (ties round up)."""
    return _round_half_up(minutes / snap) * snap


def time_to_offset(
    moment: datetime | time, grid_start_hour: int, row_height_px: float
) -> float:
    minute_of_day = moment.hour * 60 + moment.minute
    return (minute_of_day - grid_start_hour * 60) / 60 * row_height_px


def offset_to_time(
    pixels: float,
    base_date: date,
    grid_start_hour: int,
    row_height_px: float,
    snap: int,
) -> datetime:
    """Inverse of :func:`time_to_offset`, snapped to the ``snap`` increment."""
    if isinstance(base_date, datetime):
        base_date = base_date.date()
    minute_of_day = grid_start_hour * 60 + pixels / row_height_px * 60
    snapped = snap_minutes(minute_of_day, snap)
    return datetime.combine(base_date, time()) + timedelta(minutes=snapped)


def snap_delta_minutes(raw_pixel_delta: float, row_height_px: float, snap: int) -> int:
    """Pointer displacement in whole minutes, quantized to the snap increment."""
    raw_minutes = _round_half_up(raw_pixel_delta / row_height_px * 60)
    return snap_minutes(raw_minutes, snap)


def snap_delta(raw_pixel_delta: float, row_height_px: float, snap: int) -> float:
    """Pointer displacement in pixels, quantized to the snap increment."""
    return snap_delta_minutes(raw_pixel_delta, row_height_px, snap) / 60 * row_height_px


class TimeGrid(BaseModel):
    start_hour: int = Field(default=8, ge=0, le=23)
    end_hour: int = Field(default=22, ge=1, le=24)
    row_height_px: float = Field(default=56, gt=0)
    snap_minutes: int = Field(default=30, gt=0)

    @property
    def hours(self) -> list[int]:
        return list(range(self.start_hour, self.end_hour + 1))

    @property
    def height_px(self) -> float:
        return len(self.hours) * self.row_height_px

    def offset_of(self, moment: datetime | time) -> float:
        return time_to_offset(moment, self.start_hour, self.row_height_px)

    def time_at(self, pixels: float, base_date: date) -> datetime:
        return offset_to_time(
            pixels, base_date, self.start_hour, self.row_height_px, self.snap_minutes
        )

    def delta_minutes(self, raw_pixel_delta: float) -> int:
        return snap_delta_minutes(raw_pixel_delta, self.row_height_px, self.snap_minutes)

    def contains(self, interval: Interval) -> bool:
        """Whether ``interval`` fits between the first and last visible hour of its day."""
        midnight = datetime.combine(interval.start.date(), time())
        start_minute = (interval.start - midnight).total_seconds() / 60
        end_minute = (interval.end - midnight).total_seconds() / 60
        return start_minute >= self.start_hour * 60 and end_minute <= self.end_hour * 60

    def position(self, interval: Interval) -> tuple[float, float]:
        """Top offset and rendered height of a reservation card."""
        top = self.offset_of(interval.start)
        minutes = (interval.end - interval.start).total_seconds() / 60
        height = minutes / 60 * self.row_height_px
        return top, max(height, MIN_CARD_HEIGHT_PX)
