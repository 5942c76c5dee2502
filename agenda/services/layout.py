"""Column layout for overlapping reservations in the day view.

Reservations that overlap are rendered side by side. Each one is assigned a
column inside its overlap group and the group's column count, so the card can
be sized at ``100 / total_columns`` percent of the lane.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from agenda.domain.models import ColumnAssignment, Reservation
from agenda.services.intervals import overlaps


def reservations_on_day(
    reservations: Sequence[Reservation],
    day: date,
    resource_id: str | None = None,
) -> list[Reservation]:
    """Reservations starting on ``day``, optionally restricted to one resource."""
    return [
        r
        for r in reservations
        if r.start_time.date() == day
        and (resource_id is None or r.resource_id == resource_id)
    ]


def group_overlapping(reservations: Sequence[Reservation]) -> list[list[Reservation]]:
    """Split reservations into groups of transitively overlapping ones.

    The input is sorted by start time (stable, so ties keep list order) and a
    new group starts whenever a reservation overlaps nothing in the open group.
    """
    ordered = sorted(reservations, key=lambda r: r.start_time)

    groups: list[list[Reservation]] = []
    current: list[Reservation] = []
    for reservation in ordered:
        if not current or any(
            overlaps(reservation.interval, other.interval) for other in current
        ):
            current.append(reservation)
        else:
            groups.append(current)
            current = [reservation]
    if current:
        groups.append(current)
    return groups


def assign_columns(reservations: Sequence[Reservation]) -> dict[str, ColumnAssignment]:
    """Assign every reservation a display column, keyed by reservation id.

    Within a group each reservation goes to the first column whose last
    reservation ends at or before its start; otherwise a new column is opened.
    """
    result: dict[str, ColumnAssignment] = {}

    for group in group_overlapping(reservations):
        column_ends = []
        columns: list[tuple[Reservation, int]] = []
        for reservation in group:
            for index, end in enumerate(column_ends):
                if end <= reservation.start_time:
                    column_ends[index] = reservation.end_time
                    break
            else:
                index = len(column_ends)
                column_ends.append(reservation.end_time)
            columns.append((reservation, index))

        total = len(column_ends)
        for reservation, index in columns:
            result[reservation.id] = ColumnAssignment(
                reservation_id=reservation.id, column=index, total_columns=total
            )

    return result
