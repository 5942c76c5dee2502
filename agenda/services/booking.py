"""Client-side booking flow: conflict pre-check, then write through the store.

The pre-check is advisory. Two sessions may both pass it, so the store repeats
the overlap check on every write and its verdict is the one returned.
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from typing import Callable

from agenda.domain.bus import EventBus
from agenda.domain.events import (
    ConflictDetected,
    RecurrenceCommitted,
    ReservationCreated,
    ReservationUpdated,
)
from agenda.domain.models import (
    Interval,
    RecurrenceBatch,
    RecurrenceRequest,
    Reservation,
    ReservationCreate,
    ReservationStatus,
    ReservationUpdate,
)
from agenda.errors import ConflictError, Result, ValidationError
from agenda.repos.memory import ReservationRepository
from agenda.services.conflicts import find_conflicts
from agenda.services.drag import DragController
from agenda.services.grid import TimeGrid
from agenda.services.recurrence import expand, occurrence_note, to_rrule

logger = logging.getLogger(__name__)


class ReservationService:
    def __init__(
        self,
        store: ReservationRepository,
        bus: EventBus,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.bus = bus
        self.clock = clock

    # ------------------------------------------------------------------
    # Single bookings
    # ------------------------------------------------------------------

    def _existing_around(self, resource_id: str, interval: Interval) -> list[Reservation]:
        day_start = datetime.combine(interval.start.date(), time())
        day_end = datetime.combine(interval.end.date(), time()) + timedelta(days=1)
        return self.store.list_reservations(resource_id, day_start, day_end)

    def _precheck(
        self, resource_id: str, interval: Interval, exclude_id: str | None = None
    ) -> ConflictError | None:
        existing = self._existing_around(resource_id, interval)
        conflicts = find_conflicts(resource_id, interval, existing, exclude_id)
        if not conflicts:
            return None
        error = ConflictError(conflicting_ids=[r.id for r in conflicts])
        self._report_conflict(resource_id, interval, error, exclude_id)
        return error

    def _report_conflict(
        self,
        resource_id: str,
        interval: Interval,
        error: ConflictError,
        reservation_id: str | None = None,
    ) -> None:
        logger.info(
            "time slot unavailable",
            extra={"resource_id": resource_id, "reason": "conflict"},
        )
        self.bus.publish(
            ConflictDetected(
                resource_id=resource_id,
                candidate=interval,
                conflicting_ids=error.conflicting_ids,
                reservation_id=reservation_id,
            )
        )

    def create(self, candidate: ReservationCreate) -> Result[Reservation]:
        """Create one reservation, refusing it if the slot is taken."""
        if candidate.end_time <= candidate.start_time:
            return Result.failure(ValidationError("end_time must be after start_time"))

        error = self._precheck(candidate.resource_id, candidate.interval)
        if error is not None:
            return Result.failure(error)

        result = self.store.create(candidate)
        if not result.ok:
            if isinstance(result.error, ConflictError):
                self._report_conflict(candidate.resource_id, candidate.interval, result.error)
            return result

        reservation = result.value
        self.bus.publish(
            ReservationCreated(
                reservation_id=reservation.id, resource_id=reservation.resource_id
            )
        )
        return result

    def update(self, reservation_id: str, changes: ReservationUpdate) -> Result[Reservation]:
        """Apply ``changes``; the reservation never conflicts with itself."""
        current = self.store.get(reservation_id)
        if current is not None and changes.status != ReservationStatus.CANCELLED:
            start = changes.start_time or current.start_time
            end = changes.end_time or current.end_time
            resource_id = changes.resource_id or current.resource_id
            if end > start:
                error = self._precheck(
                    resource_id, Interval(start=start, end=end), exclude_id=reservation_id
                )
                if error is not None:
                    return Result.failure(error)

        result = self.store.update(reservation_id, changes)
        if not result.ok:
            return result

        updated = result.value
        if current is not None and updated.interval != current.interval:
            self.bus.publish(
                ReservationUpdated(
                    reservation_id=reservation_id,
                    previous=current.interval,
                    current=updated.interval,
                )
            )
        return result

    def reschedule(self, reservation_id: str, interval: Interval) -> Result[Reservation]:
        return self.update(
            reservation_id,
            ReservationUpdate(start_time=interval.start, end_time=interval.end),
        )

    def drag_controller(self, grid: TimeGrid, min_duration_minutes: int = 30) -> DragController:
        """Drag controller whose committed gestures are persisted through :meth:`update`."""
        return DragController(
            grid,
            min_duration_minutes=min_duration_minutes,
            on_commit=self.reschedule,
            bus=self.bus,
        )

    # ------------------------------------------------------------------
    # Recurring bookings
    # ------------------------------------------------------------------

    def commit_recurrence(self, request: RecurrenceRequest) -> RecurrenceBatch:
        """Create every occurrence of ``request`` that is neither past nor taken.

        Occurrences are independent: a skipped or failed one never undoes the
        others. The batch only counts as failed when nothing was created.
        """
        occurrences = expand(request.seed, request.frequency, request.count)
        today = self.clock().date()
        batch = RecurrenceBatch(requested=request.count)

        for interval in occurrences:
            if interval.start.date() < today:
                batch.skipped_past.append(interval)
                continue

            if self._precheck(request.resource_id, interval) is not None:
                batch.skipped_conflict.append(interval)
                continue

            note = occurrence_note(len(batch.created), request.count) + (request.notes or "")
            result = self.store.create(
                ReservationCreate(
                    resource_id=request.resource_id,
                    start_time=interval.start,
                    end_time=interval.end,
                    customer_name=request.customer_name,
                    customer_email=request.customer_email,
                    customer_phone=request.customer_phone,
                    notes=note,
                )
            )
            if result.ok:
                batch.created.append(result.value)
                self.bus.publish(
                    ReservationCreated(
                        reservation_id=result.value.id,
                        resource_id=request.resource_id,
                        series_note=note.strip(),
                    )
                )
            elif isinstance(result.error, ConflictError):
                batch.skipped_conflict.append(interval)
            else:
                logger.warning(
                    "occurrence not created: %s",
                    result.error.message,
                    extra={"resource_id": request.resource_id},
                )
                batch.failed.append(interval)

        logger.info(
            "recurring booking %s",
            batch.summary,
            extra={"resource_id": request.resource_id},
        )
        self.bus.publish(
            RecurrenceCommitted(
                resource_id=request.resource_id,
                rule=to_rrule(request.seed, request.frequency, request.count),
                requested=request.count,
                created_ids=[r.id for r in batch.created],
                skipped=len(batch.skipped_past) + len(batch.skipped_conflict),
            )
        )
        return batch


def batch_error(batch: RecurrenceBatch) -> ConflictError | None:
    """Top-level failure of a batch: only when no occurrence was created."""
    if batch.succeeded:
        return None
    return ConflictError(f"{batch.summary}: no occurrence could be booked")
