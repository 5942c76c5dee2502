"""Drag and resize of reservation cards on the day grid.

A gesture goes through three states::

    IDLE --press--> DRAGGING --move--> DRAGGING --release--> COMMITTING --> IDLE

While dragging only a preview interval is produced. Conflicts are checked once,
on release, and a clear interval is handed to ``on_commit`` for persistence.
Only one session exists per controller; pressing again while dragging is not
a supported transition.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum
from typing import Callable

from agenda.domain.bus import EventBus
from agenda.domain.events import ConflictDetected
from agenda.domain.models import DragMode, DragSession, Interval, Reservation
from agenda.errors import ConflictError, Result, SchedulingError
from agenda.services.conflicts import find_conflicts
from agenda.services.grid import TimeGrid
from agenda.services.intervals import shift

logger = logging.getLogger(__name__)

CommitHandler = Callable[[str, Interval], Result]


class DragState(StrEnum):
    IDLE = "idle"
    DRAGGING = "dragging"
    COMMITTING = "committing"


class DragOutcome(StrEnum):
    UNCHANGED = "unchanged"
    COMMITTED = "committed"
    REVERTED = "reverted"


@dataclass(frozen=True)
class DragResult:
    outcome: DragOutcome
    target_id: str
    interval: Interval
    error: SchedulingError | None = None


class DragController:
    def __init__(
        self,
        grid: TimeGrid,
        min_duration_minutes: int = 30,
        on_commit: CommitHandler | None = None,
        bus: EventBus | None = None,
    ) -> None:
        self.grid = grid
        self.min_duration = timedelta(minutes=min_duration_minutes)
        self.on_commit = on_commit
        self.bus = bus
        self.state = DragState.IDLE
        self.session: DragSession | None = None

    def press(self, reservation: Reservation, mode: DragMode, pointer_y: float) -> DragSession:
        """Start a gesture on ``reservation``'s body (MOVE) or one of its edges."""
        origin = reservation.interval
        self.session = DragSession(
            target_id=reservation.id,
            resource_id=reservation.resource_id,
            mode=mode,
            origin_interval=origin,
            pointer_origin=pointer_y,
            preview=origin,
        )
        self.state = DragState.DRAGGING
        return self.session

    def move(self, pointer_y: float) -> Interval | None:
        """Update and return the preview for the current pointer position."""
        session = self.session
        if self.state != DragState.DRAGGING or session is None:
            return None

        minutes = self.grid.delta_minutes(pointer_y - session.pointer_origin)
        candidate = self._candidate(session, timedelta(minutes=minutes))

        if not self.grid.contains(candidate):
            # Out of the visible day: keep the last valid preview.
            return session.preview

        self.session = session.model_copy(update={"preview": candidate})
        logger.debug(
            "preview %s -> %s",
            candidate.start.isoformat(),
            candidate.end.isoformat(),
            extra={"reservation_id": session.target_id},
        )
        return candidate

    def _candidate(self, session: DragSession, delta: timedelta) -> Interval:
        origin = session.origin_interval
        if session.mode == DragMode.MOVE:
            return shift(origin, delta)
        if session.mode == DragMode.RESIZE_START:
            start = origin.start + delta
            if origin.end - start < self.min_duration:
                start = origin.end - self.min_duration
            return Interval(start=start, end=origin.end)
        end = origin.end + delta
        if end - origin.start < self.min_duration:
            end = origin.start + self.min_duration
        return Interval(start=origin.start, end=end)

    def release(self, existing: Sequence[Reservation]) -> DragResult | None:
        """Finish the gesture, checking ``existing`` before emitting the change."""
        session = self.session
        if self.state != DragState.DRAGGING or session is None:
            return None

        self.state = DragState.COMMITTING
        try:
            return self._commit(session, existing)
        finally:
            self.session = None
            self.state = DragState.IDLE

    def _commit(self, session: DragSession, existing: Sequence[Reservation]) -> DragResult:
        origin = session.origin_interval
        candidate = session.preview

        if candidate == origin:
            return DragResult(DragOutcome.UNCHANGED, session.target_id, origin)

        conflicts = find_conflicts(
            session.resource_id, candidate, existing, exclude_id=session.target_id
        )
        if conflicts:
            conflicting_ids = [r.id for r in conflicts]
            logger.info(
                "drag reverted, slot taken",
                extra={"reservation_id": session.target_id, "reason": "conflict"},
            )
            if self.bus is not None:
                self.bus.publish(
                    ConflictDetected(
                        resource_id=session.resource_id,
                        candidate=candidate,
                        conflicting_ids=conflicting_ids,
                        reservation_id=session.target_id,
                    )
                )
            return DragResult(
                DragOutcome.REVERTED,
                session.target_id,
                origin,
                ConflictError(conflicting_ids=conflicting_ids),
            )

        if self.on_commit is not None:
            result = self.on_commit(session.target_id, candidate)
            if not result.ok:
                logger.info(
                    "drag reverted by store: %s",
                    result.error.message,
                    extra={"reservation_id": session.target_id},
                )
                return DragResult(
                    DragOutcome.REVERTED, session.target_id, origin, result.error
                )

        return DragResult(DragOutcome.COMMITTED, session.target_id, candidate)
