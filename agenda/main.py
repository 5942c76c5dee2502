"""FastAPI application: entry point for the agenda scheduling service."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta

from fastapi import FastAPI, HTTPException, Query

from agenda.config import settings
from agenda.domain.bus import EventBus
from agenda.domain.handlers import HandlerRegistry
from agenda.domain.models import (
    AvailabilityRequest,
    CardPlacement,
    ConflictCheckRequest,
    ConflictCheckResponse,
    DragRequest,
    Interval,
    RecurrenceRequest,
    Reservation,
    ReservationCreate,
    ReservationUpdate,
    SlotCandidate,
    TimelineEntry,
)
from agenda.errors import ConflictError, NotFoundError, Result, SchedulingError
from agenda.repos.memory import ReservationRepository, TimelineRepository
from agenda.services.availability import find_available_slots, total_duration_minutes
from agenda.services.booking import ReservationService, batch_error
from agenda.services.conflicts import find_conflicts
from agenda.services.drag import DragOutcome
from agenda.services.grid import TimeGrid
from agenda.services.layout import assign_columns, reservations_on_day


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("reservation_id", "resource_id", "reason"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

app = FastAPI(title="Agenda Scheduling Service")

# ── Singletons (created at import time for simplicity) ────────────────
event_bus = EventBus()
reservation_repo = ReservationRepository()
timeline_repo = TimelineRepository()

handler_registry = HandlerRegistry(
    bus=event_bus,
    reservation_repo=reservation_repo,
    timeline_repo=timeline_repo,
)
reservation_service = ReservationService(store=reservation_repo, bus=event_bus)

grid = TimeGrid(
    start_hour=settings.GRID_START_HOUR,
    end_hour=settings.GRID_END_HOUR,
    row_height_px=settings.ROW_HEIGHT_PX,
    snap_minutes=settings.SNAP_MINUTES,
)


def _raise_for(error: SchedulingError) -> None:
    if isinstance(error, ConflictError):
        raise HTTPException(status_code=409, detail=error.message)
    if isinstance(error, NotFoundError):
        raise HTTPException(status_code=404, detail=error.message)
    raise HTTPException(status_code=422, detail=error.message)


def _unwrap(result: Result[Reservation]) -> Reservation:
    if not result.ok:
        _raise_for(result.error)
    return result.value


# ── Routes ────────────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/reservations", response_model=Reservation, status_code=201)
def create_reservation(payload: ReservationCreate) -> Reservation:
    """Book a single interval; 409 when the slot is already taken."""
    return _unwrap(reservation_service.create(payload))


@app.get("/reservations", response_model=list[Reservation])
def list_reservations(
    resource_id: list[str] | None = Query(default=None),
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Reservation]:
    return reservation_repo.list_reservations(resource_id or None, start, end)


@app.get("/reservations/{reservation_id}", response_model=Reservation)
def get_reservation(reservation_id: str) -> Reservation:
    reservation = reservation_repo.get(reservation_id)
    if reservation is None:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return reservation


@app.patch("/reservations/{reservation_id}", response_model=Reservation)
def update_reservation(reservation_id: str, changes: ReservationUpdate) -> Reservation:
    return _unwrap(reservation_service.update(reservation_id, changes))


@app.get("/reservations/{reservation_id}/timeline", response_model=list[TimelineEntry])
def reservation_timeline(reservation_id: str) -> list[TimelineEntry]:
    if reservation_repo.get(reservation_id) is None:
        raise HTTPException(status_code=404, detail="Reservation not found")
    return timeline_repo.list_for_reservation(reservation_id)


@app.post("/conflicts/check", response_model=ConflictCheckResponse)
def check_conflict(payload: ConflictCheckRequest) -> ConflictCheckResponse:
    candidate = Interval(start=payload.start_time, end=payload.end_time)
    existing = reservation_repo.list_reservations(
        payload.resource_id, payload.start_time, payload.end_time
    )
    conflicts = find_conflicts(
        payload.resource_id, candidate, existing, exclude_id=payload.exclude_id
    )
    return ConflictCheckResponse(
        conflict=bool(conflicts), conflicting_ids=[r.id for r in conflicts]
    )


@app.get("/resources/{resource_id}/layout", response_model=list[CardPlacement])
def day_layout(resource_id: str, day: date) -> list[CardPlacement]:
    """Card positions for the resource's reservations on ``day``, overlaps side by side."""
    midnight = datetime.combine(day, time())
    loaded = reservation_repo.list_reservations(
        resource_id, midnight, midnight + timedelta(days=1)
    )
    day_reservations = reservations_on_day(loaded, day)
    columns = assign_columns(day_reservations)

    by_id = {r.id: r for r in day_reservations}
    placements = []
    for assignment in columns.values():
        top, height = grid.position(by_id[assignment.reservation_id].interval)
        placements.append(
            CardPlacement(
                reservation_id=assignment.reservation_id,
                column=assignment.column,
                total_columns=assignment.total_columns,
                left_percent=assignment.left_percent,
                width_percent=assignment.width_percent,
                top_px=top,
                height_px=height,
            )
        )
    return placements


@app.post("/reservations/{reservation_id}/drag", response_model=Reservation)
def drag_reservation(reservation_id: str, payload: DragRequest) -> Reservation:
    """Apply a finished move/resize gesture; 409 reverts to the original interval."""
    reservation = reservation_repo.get(reservation_id)
    if reservation is None:
        raise HTTPException(status_code=404, detail="Reservation not found")

    controller = reservation_service.drag_controller(grid, settings.MIN_DURATION_MINUTES)
    controller.press(reservation, payload.mode, payload.pointer_origin)
    controller.move(payload.pointer_y)

    day_start = datetime.combine(reservation.start_time.date(), time())
    existing = reservation_repo.list_reservations(
        reservation.resource_id, day_start, day_start + timedelta(days=1)
    )
    result = controller.release(existing)
    if result.outcome == DragOutcome.REVERTED:
        _raise_for(result.error)
    return reservation_repo.get(reservation_id)


@app.post("/recurrences")
def create_recurrence(payload: RecurrenceRequest) -> dict:
    """Book every free future occurrence of a weekly or monthly series."""
    batch = reservation_service.commit_recurrence(payload)
    error = batch_error(batch)
    if error is not None:
        raise HTTPException(status_code=409, detail=error.message)
    return {
        "summary": batch.summary,
        "requested": batch.requested,
        "created": [r.model_dump(mode="json") for r in batch.created],
        "skipped_past": len(batch.skipped_past),
        "skipped_conflict": len(batch.skipped_conflict),
        "failed": len(batch.failed),
    }


@app.post("/availability", response_model=list[SlotCandidate])
def availability(payload: AvailabilityRequest) -> list[SlotCandidate]:
    """Free start times on ``day`` for the summed duration of the selected services."""
    midnight = datetime.combine(payload.day, time())
    existing = reservation_repo.list_reservations(
        payload.resource_ids, midnight, midnight + timedelta(days=1)
    )
    return find_available_slots(
        payload.day,
        total_duration_minutes(payload.services),
        payload.resource_ids,
        existing,
        work_start_hour=settings.WORK_START_HOUR,
        work_end_hour=settings.WORK_END_HOUR,
        slot_interval_minutes=settings.SLOT_INTERVAL_MINUTES,
        now=datetime.now(),
        operating_hours=payload.operating_hours,
    )
