"""Tests for the drag/resize state machine."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from agenda.domain.bus import EventBus
from agenda.domain.events import ConflictDetected
from agenda.domain.models import DragMode, Interval, Reservation
from agenda.errors import ConflictError, NotFoundError, Result
from agenda.services.drag import DragController, DragOutcome, DragState
from agenda.services.grid import TimeGrid

_ROW = 56


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2030, 1, 7, hour, minute)


def _pixels(minutes: float) -> float:
    return minutes / 60 * _ROW


@pytest.fixture()
def booking() -> Reservation:
    return Reservation(resource_id="court-1", start_time=_at(10), end_time=_at(11))


@pytest.fixture()
def commits():
    return []


@pytest.fixture()
def controller(commits) -> DragController:
    def on_commit(target_id: str, interval: Interval) -> Result:
        commits.append((target_id, interval))
        return Result.success(interval)

    return DragController(TimeGrid(row_height_px=_ROW), min_duration_minutes=30, on_commit=on_commit)


def test_press_starts_a_session(controller, booking):
    session = controller.press(booking, DragMode.MOVE, pointer_y=200)
    assert controller.state == DragState.DRAGGING
    assert session.target_id == booking.id
    assert session.origin_interval == booking.interval
    assert session.preview == booking.interval


def test_move_shifts_whole_interval_by_snapped_delta(controller, booking, commits):
    controller.press(booking, DragMode.MOVE, pointer_y=200)
    preview = controller.move(200 + _pixels(17))

    assert preview == Interval(start=_at(10, 30), end=_at(11, 30))

    result = controller.release([booking])
    assert result.outcome == DragOutcome.COMMITTED
    assert result.interval == Interval(start=_at(10, 30), end=_at(11, 30))
    assert commits == [(booking.id, Interval(start=_at(10, 30), end=_at(11, 30)))]
    assert controller.state == DragState.IDLE
    assert controller.session is None


def test_small_movement_snaps_back_and_is_a_no_op(controller, booking, commits):
    controller.press(booking, DragMode.MOVE, pointer_y=200)
    controller.move(200 + _pixels(10))
    result = controller.release([booking])

    assert result.outcome == DragOutcome.UNCHANGED
    assert result.interval == booking.interval
    assert commits == []


def test_resize_end_extends_the_end_only(controller, booking):
    controller.press(booking, DragMode.RESIZE_END, pointer_y=0)
    assert controller.move(_pixels(60)) == Interval(start=_at(10), end=_at(12))


def test_resize_start_moves_the_start_only(controller, booking):
    controller.press(booking, DragMode.RESIZE_START, pointer_y=0)
    assert controller.move(-_pixels(30)) == Interval(start=_at(9, 30), end=_at(11))


@pytest.mark.parametrize("delta_minutes", [-45, -60, -300, -1000, -10_000])
def test_resize_end_never_goes_below_minimum_duration(controller, booking, commits, delta_minutes):
    controller.press(booking, DragMode.RESIZE_END, pointer_y=0)
    controller.move(_pixels(delta_minutes))
    result = controller.release([booking])

    assert result.outcome == DragOutcome.COMMITTED
    assert result.interval == Interval(start=_at(10), end=_at(10, 30))
    assert result.interval.end - result.interval.start >= timedelta(minutes=30)


@pytest.mark.parametrize("delta_minutes", [45, 60, 300, 1000])
def test_resize_start_never_goes_below_minimum_duration(controller, booking, delta_minutes):
    controller.press(booking, DragMode.RESIZE_START, pointer_y=0)
    controller.move(_pixels(delta_minutes))
    result = controller.release([booking])

    assert result.interval == Interval(start=_at(10, 30), end=_at(11))


def test_move_outside_visible_grid_keeps_last_valid_preview(controller, booking):
    controller.press(booking, DragMode.MOVE, pointer_y=0)
    assert controller.move(_pixels(60)) == Interval(start=_at(11), end=_at(12))
    # 07:00 start is above the 08:00 grid start
    assert controller.move(_pixels(-180)) == Interval(start=_at(11), end=_at(12))
    assert controller.session.preview == Interval(start=_at(11), end=_at(12))


def test_move_to_last_row_is_allowed(controller, booking):
    controller.press(booking, DragMode.MOVE, pointer_y=0)
    assert controller.move(_pixels(11 * 60)) == Interval(start=_at(21), end=_at(22))
    assert controller.move(_pixels(11 * 60 + 30)) == Interval(start=_at(21), end=_at(22))


def test_conflict_on_release_reverts(booking, commits):
    bus = EventBus()
    published = []
    bus.subscribe(ConflictDetected, published.append)

    def on_commit(target_id, interval):
        commits.append(interval)
        return Result.success(interval)

    controller = DragController(TimeGrid(), on_commit=on_commit, bus=bus)
    neighbour = Reservation(resource_id="court-1", start_time=_at(11), end_time=_at(12))

    controller.press(booking, DragMode.MOVE, pointer_y=0)
    controller.move(_pixels(30))
    result = controller.release([booking, neighbour])

    assert result.outcome == DragOutcome.REVERTED
    assert result.interval == booking.interval
    assert isinstance(result.error, ConflictError)
    assert result.error.conflicting_ids == [neighbour.id]
    assert commits == []
    assert published[0].reservation_id == booking.id
    assert controller.state == DragState.IDLE


def test_neighbour_on_other_resource_does_not_block(controller, booking):
    other = Reservation(resource_id="court-2", start_time=_at(11), end_time=_at(12))
    controller.press(booking, DragMode.MOVE, pointer_y=0)
    controller.move(_pixels(30))
    assert controller.release([booking, other]).outcome == DragOutcome.COMMITTED


def test_store_refusal_reverts(booking):
    controller = DragController(
        TimeGrid(),
        on_commit=lambda target_id, interval: Result.failure(NotFoundError("gone")),
    )
    controller.press(booking, DragMode.MOVE, pointer_y=0)
    controller.move(_pixels(60))
    result = controller.release([booking])

    assert result.outcome == DragOutcome.REVERTED
    assert isinstance(result.error, NotFoundError)
    assert result.interval == booking.interval


def test_idle_controller_ignores_move_and_release(controller):
    assert controller.move(100) is None
    assert controller.release([]) is None
    assert controller.state == DragState.IDLE
