"""Tests for the booking flow: pre-check, store re-check, recurrence commit, timeline."""

from __future__ import annotations

from datetime import datetime

import pytest

from agenda.domain.bus import EventBus
from agenda.domain.events import ConflictDetected, RecurrenceCommitted
from agenda.domain.handlers import HandlerRegistry
from agenda.domain.models import (
    DragMode,
    Interval,
    RecurrenceFrequency,
    RecurrenceRequest,
    ReservationCreate,
    ReservationStatus,
    ReservationUpdate,
    TimelineEntryType,
)
from agenda.errors import ConflictError, NotFoundError, ValidationError
from agenda.repos.memory import ReservationRepository, TimelineRepository
from agenda.services.booking import ReservationService, batch_error
from agenda.services.drag import DragOutcome
from agenda.services.grid import TimeGrid

_NOW = datetime(2030, 1, 7, 9, 0)  # a Monday


@pytest.fixture()
def env():
    """Fresh bus + repos + registry + service for each test."""
    bus = EventBus()
    reservation_repo = ReservationRepository()
    timeline_repo = TimelineRepository()
    registry = HandlerRegistry(
        bus=bus, reservation_repo=reservation_repo, timeline_repo=timeline_repo
    )
    service = ReservationService(store=reservation_repo, bus=bus, clock=lambda: _NOW)

    class Env:
        pass

    e = Env()
    e.bus = bus
    e.reservation_repo = reservation_repo
    e.timeline_repo = timeline_repo
    e.registry = registry
    e.service = service
    return e


def _candidate(start: datetime, end: datetime, resource_id: str = "court-1", **kwargs):
    return ReservationCreate(resource_id=resource_id, start_time=start, end_time=end, **kwargs)


def _at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2030, 1, day, hour, minute)


# ---------------------------------------------------------------------------
# Single bookings
# ---------------------------------------------------------------------------


def test_create_stores_and_records_timeline(env):
    result = env.service.create(_candidate(_at(7, 10), _at(7, 11), customer_name="Joana"))

    assert result.ok
    stored = env.reservation_repo.get(result.value.id)
    assert stored.customer_name == "Joana"
    assert stored.customer_email is None
    assert stored.status == ReservationStatus.CONFIRMED

    timeline = env.timeline_repo.list_for_reservation(stored.id)
    assert [e.type for e in timeline] == [TimelineEntryType.CREATED]


def test_create_conflicting_booking_is_refused(env):
    env.service.create(_candidate(_at(7, 10), _at(7, 11)))
    conflicts = []
    env.bus.subscribe(ConflictDetected, conflicts.append)

    result = env.service.create(_candidate(_at(7, 10, 30), _at(7, 11, 30)))

    assert not result.ok
    assert isinstance(result.error, ConflictError)
    assert result.error.message == "Time slot unavailable"
    assert len(env.reservation_repo.list_all()) == 1
    assert len(conflicts) == 1


def test_create_touching_booking_is_accepted(env):
    env.service.create(_candidate(_at(7, 10), _at(7, 11)))
    assert env.service.create(_candidate(_at(7, 11), _at(7, 12))).ok


def test_create_invalid_interval(env):
    result = env.service.create(_candidate(_at(7, 11), _at(7, 10)))
    assert isinstance(result.error, ValidationError)
    with pytest.raises(ValidationError):
        result.unwrap()


def test_store_rechecks_when_client_view_is_stale(env, monkeypatch):
    """Another session booked the slot after our list was loaded."""
    env.service.create(_candidate(_at(7, 10), _at(7, 11)))
    monkeypatch.setattr(env.service, "_existing_around", lambda resource_id, interval: [])

    result = env.service.create(_candidate(_at(7, 10), _at(7, 11)))

    assert isinstance(result.error, ConflictError)
    assert len(env.reservation_repo.list_all()) == 1


def test_update_against_itself_is_not_a_conflict(env):
    created = env.service.create(_candidate(_at(7, 10), _at(7, 11))).value
    result = env.service.update(
        created.id, ReservationUpdate(start_time=_at(7, 10, 30), end_time=_at(7, 11, 30))
    )
    assert result.ok
    assert result.value.interval == Interval(start=_at(7, 10, 30), end=_at(7, 11, 30))

    timeline = env.timeline_repo.list_for_reservation(created.id)
    assert [e.type for e in timeline] == [TimelineEntryType.CREATED, TimelineEntryType.UPDATED]


def test_update_into_another_booking_conflicts(env):
    first = env.service.create(_candidate(_at(7, 10), _at(7, 11))).value
    env.service.create(_candidate(_at(7, 12), _at(7, 13)))

    result = env.service.update(first.id, ReservationUpdate(end_time=_at(7, 12, 30)))

    assert isinstance(result.error, ConflictError)
    assert env.reservation_repo.get(first.id).end_time == _at(7, 11)


def test_update_missing_reservation(env):
    result = env.service.update("missing", ReservationUpdate(notes="x"))
    assert isinstance(result.error, NotFoundError)


def test_cancelled_booking_frees_the_slot(env):
    first = env.service.create(_candidate(_at(7, 10), _at(7, 11))).value
    env.service.update(first.id, ReservationUpdate(status=ReservationStatus.CANCELLED))
    assert env.service.create(_candidate(_at(7, 10), _at(7, 11))).ok


# ---------------------------------------------------------------------------
# Drag through the service
# ---------------------------------------------------------------------------


def test_drag_commit_is_persisted(env):
    booking = env.service.create(_candidate(_at(7, 10), _at(7, 11))).value
    controller = env.service.drag_controller(TimeGrid())

    controller.press(booking, DragMode.MOVE, pointer_y=0)
    controller.move(56)  # one hour
    result = controller.release(env.reservation_repo.list_all())

    assert result.outcome == DragOutcome.COMMITTED
    assert env.reservation_repo.get(booking.id).start_time == _at(7, 11)


def test_drag_onto_neighbour_reverts(env):
    booking = env.service.create(_candidate(_at(7, 10), _at(7, 11))).value
    env.service.create(_candidate(_at(7, 11), _at(7, 12)))
    controller = env.service.drag_controller(TimeGrid())

    controller.press(booking, DragMode.RESIZE_END, pointer_y=0)
    controller.move(28)  # thirty minutes
    result = controller.release(env.reservation_repo.list_all())

    assert result.outcome == DragOutcome.REVERTED
    assert env.reservation_repo.get(booking.id).end_time == _at(7, 11)
    timeline = env.timeline_repo.list_for_reservation(booking.id)
    assert timeline[-1].type == TimelineEntryType.CONFLICT_DETECTED


# ---------------------------------------------------------------------------
# Recurring bookings
# ---------------------------------------------------------------------------


def _weekly(count: int = 4, **kwargs) -> RecurrenceRequest:
    return RecurrenceRequest(
        seed=Interval(start=_at(7, 18), end=_at(7, 19)),
        resource_id="court-1",
        frequency=RecurrenceFrequency.WEEKLY,
        count=count,
        **kwargs,
    )


def test_recurrence_skips_the_taken_week(env):
    env.service.create(_candidate(_at(14, 18), _at(14, 19), customer_name="Outro"))

    batch = env.service.commit_recurrence(_weekly(customer_name="Joana", notes="Futsal"))

    assert batch.summary == "3/4 criadas"
    assert batch.succeeded
    assert batch_error(batch) is None
    assert [r.start_time for r in batch.created] == [_at(7, 18), _at(21, 18), _at(28, 18)]
    assert batch.skipped_conflict == [Interval(start=_at(14, 18), end=_at(14, 19))]
    assert [r.notes for r in batch.created] == [
        "[Reserva Recorrente 1/4] Futsal",
        "[Reserva Recorrente 2/4] Futsal",
        "[Reserva Recorrente 3/4] Futsal",
    ]


def test_recurrence_skips_past_days_but_not_earlier_today(env):
    request = RecurrenceRequest(
        seed=Interval(start=_at(6, 8), end=_at(6, 9)),  # yesterday
        resource_id="court-1",
        frequency=RecurrenceFrequency.WEEKLY,
        count=3,
    )
    batch = env.service.commit_recurrence(request)
    assert len(batch.skipped_past) == 1
    assert len(batch.created) == 2

    today = env.service.commit_recurrence(
        RecurrenceRequest(
            seed=Interval(start=_at(7, 7), end=_at(7, 8)),  # earlier today
            resource_id="court-1",
            count=1,
        )
    )
    assert today.summary == "1/1 criadas"


def test_recurrence_with_nothing_created_is_a_failure(env):
    for day in (7, 14):
        env.service.create(_candidate(_at(day, 17), _at(day, 20)))

    batch = env.service.commit_recurrence(_weekly(count=2))

    assert not batch.succeeded
    assert batch.summary == "0/2 criadas"
    assert isinstance(batch_error(batch), ConflictError)


def test_recurrence_publishes_batch_event_and_timeline(env):
    events = []
    env.bus.subscribe(RecurrenceCommitted, events.append)

    batch = env.service.commit_recurrence(_weekly(count=2))

    assert len(events) == 1
    assert events[0].requested == 2
    assert events[0].created_ids == [r.id for r in batch.created]
    assert events[0].rule.startswith("FREQ=WEEKLY")

    timeline = env.timeline_repo.list_for_reservation(batch.created[0].id)
    assert [e.type for e in timeline] == [
        TimelineEntryType.CREATED,
        TimelineEntryType.RECURRENCE_COMMITTED,
    ]
    assert timeline[0].payload["series"] == "[Reserva Recorrente 1/2]"
