"""In-memory reservation store and activity timeline.

The reservation store plays the server side of the booking contract: every
write re-runs the overlap check, whatever the client checked beforehand.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from agenda.domain.models import (
    Interval,
    Reservation,
    ReservationCreate,
    ReservationStatus,
    ReservationUpdate,
    TimelineEntry,
)
from agenda.errors import ConflictError, NotFoundError, Result, ValidationError
from agenda.services.conflicts import find_conflicts
from agenda.services.intervals import overlaps

logger = logging.getLogger(__name__)


class ReservationRepository:
    """Dict-backed store for Reservation instances, keyed by id."""

    def __init__(self) -> None:
        self._store: dict[str, Reservation] = {}

    def add(self, reservation: Reservation) -> None:
        self._store[reservation.id] = reservation

    def get(self, reservation_id: str) -> Reservation | None:
        return self._store.get(reservation_id)

    def list_all(self) -> list[Reservation]:
        return list(self._store.values())

    def list_reservations(
        self,
        resource_ids: str | Iterable[str] | None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[Reservation]:
        """Reservations of the given resource(s) overlapping ``[start, end)``, any status.

        ``None`` resources means every resource; the range applies only when
        both bounds are given.
        """
        if isinstance(resource_ids, str):
            resource_ids = [resource_ids]
        wanted = None if resource_ids is None else set(resource_ids)
        window = None if start is None or end is None else Interval(start=start, end=end)
        return [
            r
            for r in self._store.values()
            if (wanted is None or r.resource_id in wanted)
            and (window is None or overlaps(r.interval, window))
        ]

    def delete(self, reservation_id: str) -> None:
        self._store.pop(reservation_id, None)

    def create(self, candidate: ReservationCreate) -> Result[Reservation]:
        if candidate.end_time <= candidate.start_time:
            return Result.failure(ValidationError("end_time must be after start_time"))

        conflicts = find_conflicts(
            candidate.resource_id, candidate.interval, self._store.values()
        )
        if conflicts:
            return Result.failure(ConflictError(conflicting_ids=[r.id for r in conflicts]))

        reservation = Reservation(**candidate.model_dump())
        self.add(reservation)
        logger.info(
            "reservation stored",
            extra={"reservation_id": reservation.id, "resource_id": reservation.resource_id},
        )
        return Result.success(reservation)

    def update(self, reservation_id: str, changes: ReservationUpdate) -> Result[Reservation]:
        current = self._store.get(reservation_id)
        if current is None:
            return Result.failure(NotFoundError(f"Reservation {reservation_id} not found"))

        data = current.model_dump()
        data.update(changes.model_dump(exclude_unset=True, exclude_none=True))
        if data["end_time"] <= data["start_time"]:
            return Result.failure(ValidationError("end_time must be after start_time"))

        updated = Reservation(**data)
        conflicts = find_conflicts(
            updated.resource_id,
            updated.interval,
            self._store.values(),
            exclude_id=reservation_id,
        )
        # A cancelled reservation no longer occupies its slot.
        if conflicts and updated.status != ReservationStatus.CANCELLED:
            return Result.failure(ConflictError(conflicting_ids=[r.id for r in conflicts]))

        self._store[reservation_id] = updated
        return Result.success(updated)


class TimelineRepository:
    """List-backed store for TimelineEntry instances."""

    def __init__(self) -> None:
        self._entries: list[TimelineEntry] = []

    def add(self, entry: TimelineEntry) -> None:
        self._entries.append(entry)

    def list_for_reservation(self, reservation_id: str) -> list[TimelineEntry]:
        return sorted(
            [e for e in self._entries if e.reservation_id == reservation_id],
            key=lambda e: e.timestamp,
        )
