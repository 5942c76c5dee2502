"""Domain event handlers, wired up at application startup."""

from __future__ import annotations

import logging

from agenda.domain.bus import EventBus
from agenda.domain.events import (
    ConflictDetected,
    RecurrenceCommitted,
    ReservationCreated,
    ReservationUpdated,
)
from agenda.domain.models import TimelineEntry, TimelineEntryType
from agenda.repos.memory import ReservationRepository, TimelineRepository

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Wires domain-event handlers to the bus with access to the repositories."""

    def __init__(
        self,
        bus: EventBus,
        reservation_repo: ReservationRepository,
        timeline_repo: TimelineRepository,
    ) -> None:
        self.bus = bus
        self.reservation_repo = reservation_repo
        self.timeline_repo = timeline_repo
        self._register()

    def _register(self) -> None:
        self.bus.subscribe(ReservationCreated, self.on_reservation_created)
        self.bus.subscribe(ReservationUpdated, self.on_reservation_updated)
        self.bus.subscribe(ConflictDetected, self.on_conflict_detected)
        self.bus.subscribe(RecurrenceCommitted, self.on_recurrence_committed)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_reservation_created(self, event: ReservationCreated) -> None:
        stored = self.reservation_repo.get(event.reservation_id)
        if stored is None:
            return

        payload = {
            "resource_id": stored.resource_id,
            "start_time": stored.start_time.isoformat(),
            "end_time": stored.end_time.isoformat(),
        }
        if event.series_note:
            payload["series"] = event.series_note
        self.timeline_repo.add(
            TimelineEntry(
                reservation_id=event.reservation_id,
                type=TimelineEntryType.CREATED,
                payload=payload,
            )
        )
        logger.info(
            "reservation created",
            extra={"reservation_id": event.reservation_id, "resource_id": event.resource_id},
        )

    def on_reservation_updated(self, event: ReservationUpdated) -> None:
        if self.reservation_repo.get(event.reservation_id) is None:
            return

        self.timeline_repo.add(
            TimelineEntry(
                reservation_id=event.reservation_id,
                type=TimelineEntryType.UPDATED,
                payload={
                    "previous": [
                        event.previous.start.isoformat(),
                        event.previous.end.isoformat(),
                    ],
                    "current": [
                        event.current.start.isoformat(),
                        event.current.end.isoformat(),
                    ],
                },
            )
        )
        logger.info("reservation rescheduled", extra={"reservation_id": event.reservation_id})

    def on_conflict_detected(self, event: ConflictDetected) -> None:
        # Conflicts on brand new candidates have no reservation to attach to.
        if event.reservation_id is None:
            return
        if self.reservation_repo.get(event.reservation_id) is None:
            return

        self.timeline_repo.add(
            TimelineEntry(
                reservation_id=event.reservation_id,
                type=TimelineEntryType.CONFLICT_DETECTED,
                payload={
                    "candidate": [
                        event.candidate.start.isoformat(),
                        event.candidate.end.isoformat(),
                    ],
                    "conflicting_ids": event.conflicting_ids,
                },
            )
        )

    def on_recurrence_committed(self, event: RecurrenceCommitted) -> None:
        for reservation_id in event.created_ids:
            self.timeline_repo.add(
                TimelineEntry(
                    reservation_id=reservation_id,
                    type=TimelineEntryType.RECURRENCE_COMMITTED,
                    payload={
                        "rule": event.rule,
                        "requested": event.requested,
                        "created": len(event.created_ids),
                        "skipped": event.skipped,
                    },
                )
            )
