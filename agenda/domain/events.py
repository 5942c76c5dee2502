"""Domain events emitted during the reservation lifecycle."""

from __future__ import annotations

from pydantic import BaseModel

from agenda.domain.models import Interval


class ReservationCreated(BaseModel):
    """Fired when a reservation has been persisted."""

    reservation_id: str
    resource_id: str
    series_note: str | None = None


class ReservationUpdated(BaseModel):
    """Fired after a reservation was moved, resized or otherwise edited."""

    reservation_id: str
    previous: Interval
    current: Interval


class ConflictDetected(BaseModel):
    """Fired when a candidate interval was refused because of a double booking."""

    resource_id: str
    candidate: Interval
    conflicting_ids: list[str]
    reservation_id: str | None = None


class RecurrenceCommitted(BaseModel):
    """Fired once per recurring batch, after every occurrence was attempted."""

    resource_id: str
    rule: str
    requested: int
    created_ids: list[str]
    skipped: int
