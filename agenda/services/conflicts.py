"""Service for detecting double bookings on a resource."""

from __future__ import annotations

from collections.abc import Iterable

from agenda.domain.models import Interval, Reservation, ReservationStatus
from agenda.services.intervals import overlaps


def find_conflicts(
    resource_id: str,
    candidate: Interval,
    existing: Iterable[Reservation],
    exclude_id: str | None = None,
) -> list[Reservation]:
    """Return the active reservations on ``resource_id`` that overlap ``candidate``.

    Reservations on other resources, the reservation being edited
    (``exclude_id``) and cancelled reservations never conflict.
    Exact boundary touches (end == start) are NOT considered conflicts.
    """
    return [
        reservation
        for reservation in existing
        if reservation.resource_id == resource_id
        and reservation.id != exclude_id
        and reservation.status != ReservationStatus.CANCELLED
        and overlaps(candidate, reservation.interval)
    ]


def has_conflict(
    resource_id: str,
    candidate: Interval,
    existing: Iterable[Reservation],
    exclude_id: str | None = None,
) -> bool:
    return bool(find_conflicts(resource_id, candidate, existing, exclude_id))
