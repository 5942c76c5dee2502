"""Half-open interval primitives shared by every scheduling component."""

from __future__ import annotations

from datetime import timedelta

from agenda.domain.models import Interval


def overlaps(a: Interval, b: Interval) -> bool:
    """True iff ``[a.start, a.end)`` and ``[b.start, b.end)`` intersect.

    Touching endpoints (``a.end == b.start``) do not overlap.
    """
    return a.start < b.end and b.start < a.end


def duration_minutes(interval: Interval) -> int:
    return int((interval.end - interval.start).total_seconds() // 60)


def shift(interval: Interval, delta: timedelta) -> Interval:
    return Interval(start=interval.start + delta, end=interval.end + delta)
