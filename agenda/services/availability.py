"""Service for finding free appointment start times for professionals.

Candidate starts are the discrete marks of a fixed grid inside the working
window (every ``slot_interval_minutes`` from ``work_start_hour``). Each mark is
tested against the conflict checker for every professional of the pool; free
intervals are never computed analytically.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime, time, timedelta

from agenda.domain.models import (
    Interval,
    OperatingHours,
    Reservation,
    ServiceItem,
    SlotCandidate,
)
from agenda.services.conflicts import has_conflict
from agenda.services.intervals import overlaps

logger = logging.getLogger(__name__)


def total_duration_minutes(services: Iterable[ServiceItem]) -> int:
    return sum(service.duration_minutes for service in services)


def day_of_week(day: date) -> int:
    """Weekday numbered 0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7


def hours_for(schedule: Iterable[OperatingHours], day: date) -> OperatingHours | None:
    weekday = day_of_week(day)
    return next((h for h in schedule if h.day_of_week == weekday), None)


def find_available_slots(
    day: date,
    duration_minutes: int,
    resource_ids: Sequence[str],
    existing: Sequence[Reservation],
    *,
    work_start_hour: int = 8,
    work_end_hour: int = 18,
    slot_interval_minutes: int = 30,
    now: datetime | None = None,
    operating_hours: Sequence[OperatingHours] | None = None,
) -> list[SlotCandidate]:
    """Return every ``(start, resource_id)`` at which the resource is free.

    ``resource_ids`` is either the single professional the customer picked or
    the whole pool; a mark free for several professionals yields one candidate
    per professional, in pool order. Marks whose end passes the working window
    and marks before ``now`` are left out.

    ``operating_hours`` is the venue's week schedule. When given, the row for
    ``day``'s weekday sets the window; a weekday without a row is closed.
    """
    if duration_minutes <= 0 or not resource_ids:
        return []

    midnight = datetime.combine(day, time())
    window_start = midnight + timedelta(hours=work_start_hour)
    window_end = midnight + timedelta(hours=work_end_hour)
    lunch: Interval | None = None

    if operating_hours is not None:
        hours = hours_for(operating_hours, day)
        if hours is None or not hours.is_open:
            logger.debug("venue closed on %s", day.isoformat())
            return []
        window_start = datetime.combine(day, hours.open_time)
        window_end = datetime.combine(day, hours.close_time)
        if hours.lunch_start and hours.lunch_end:
            lunch = Interval(
                start=datetime.combine(day, hours.lunch_start),
                end=datetime.combine(day, hours.lunch_end),
            )

    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=slot_interval_minutes)

    candidates: list[SlotCandidate] = []
    mark = window_start
    while mark < window_end:
        candidate = Interval(start=mark, end=mark + duration)
        if candidate.end <= window_end and (now is None or mark >= now):
            if lunch is None or not overlaps(candidate, lunch):
                for resource_id in resource_ids:
                    if not has_conflict(resource_id, candidate, existing):
                        candidates.append(SlotCandidate(start=mark, resource_id=resource_id))
        mark += step

    logger.debug(
        "%d slot candidate(s) on %s for %d minute(s)",
        len(candidates),
        day.isoformat(),
        duration_minutes,
    )
    return candidates


def slots_by_resource(candidates: Iterable[SlotCandidate]) -> dict[str, list[datetime]]:
    """Group candidate starts per professional, preserving start order."""
    grouped: dict[str, list[datetime]] = {}
    for candidate in candidates:
        grouped.setdefault(candidate.resource_id, []).append(candidate.start)
    return grouped
