import os
import sys
import threading
import time
from datetime import date

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import pytest

from booking_engine.creation import cancel_booking, create_booking, delete_booking, reschedule_booking
from booking_engine.errors import (
    BookingNotFound,
    BookingValidationError,
    Busy,
    RoomNotFound,
    SlotConflict,
)
from booking_engine.locking import KeyedLocks
from booking_engine.memory import InMemoryBookingRepository, InMemoryRoomDirectory
from booking_engine.models import BookingStatus, RoomRecord

DAY = date(2024, 6, 1)


@pytest.fixture
def repo():
    return InMemoryBookingRepository()


@pytest.fixture
def rooms():
    return InMemoryRoomDirectory(
        [
            RoomRecord(id=1, name="Conference Room A", capacity=20),
            RoomRecord(id=2, name="Meeting Room B", capacity=10),
            RoomRecord(id=3, name="Old Storage", is_active=False),
        ]
    )


@pytest.fixture
def locks():
    return KeyedLocks()


def request_body(start="10:00 AM", end="11:00 AM", room_id=1, day=DAY, **overrides):
    body = {
        "room_id": room_id,
        "name": "Jane Doe",
        "email": "jane@example.com",
        "phone": "555-0100",
        "date": day.isoformat(),
        "start_time": start,
        "end_time": end,
        "purpose": "Sprint planning",
    }
    body.update(overrides)
    return body


def test_scenario_overlap_rejected_back_to_back_accepted(repo, rooms, locks):
    first = create_booking(request_body(), repo, rooms, locks=locks)
    assert first.status == BookingStatus.CONFIRMED

    with pytest.raises(SlotConflict) as exc_info:
        create_booking(request_body("10:30 AM", "11:30 AM"), repo, rooms, locks=locks)
    assert exc_info.value.conflicting_booking_id == first.id

    after = create_booking(request_body("11:00 AM", "12:00 PM"), repo, rooms, locks=locks)
    before = create_booking(request_body("9:00 AM", "10:00 AM"), repo, rooms, locks=locks)
    assert after.status == before.status == BookingStatus.CONFIRMED
    assert len(repo.all()) == 3


def test_distinct_windows_both_succeed(repo, rooms, locks):
    a = create_booking(request_body("8:00 AM", "9:00 AM"), repo, rooms, locks=locks)
    b = create_booking(request_body("1:00 PM", "2:30 PM"), repo, rooms, locks=locks)
    assert a.id != b.id


def test_same_range_in_other_room_or_date_succeeds(repo, rooms, locks):
    create_booking(request_body(), repo, rooms, locks=locks)
    create_booking(request_body(room_id=2), repo, rooms, locks=locks)
    create_booking(request_body(day=date(2024, 6, 2)), repo, rooms, locks=locks)
    assert len(repo.all()) == 3


def test_times_are_stored_canonically(repo, rooms, locks):
    booking = create_booking(request_body("2:00 pm", "3:30PM"), repo, rooms, locks=locks)
    assert booking.start_time == "2:00 PM"
    assert booking.end_time == "3:30 PM"


def test_validation_reports_every_violated_field(repo, rooms, locks):
    body = request_body(name="   ", email="not-an-email", phone="", purpose=None)
    with pytest.raises(BookingValidationError) as exc_info:
        create_booking(body, repo, rooms, locks=locks)

    fields = {e.field for e in exc_info.value.errors}
    assert {"name", "email", "phone", "purpose"} <= fields
    assert repo.all() == []


def test_validation_rejects_end_before_start(repo, rooms, locks):
    with pytest.raises(BookingValidationError) as exc_info:
        create_booking(request_body("11:00 AM", "10:00 AM"), repo, rooms, locks=locks)
    errors = exc_info.value.detail
    assert errors == [{"field": "end_time", "message": "end_time must be after start_time"}]


def test_validation_rejects_malformed_time(repo, rooms, locks):
    with pytest.raises(BookingValidationError) as exc_info:
        create_booking(request_body(start="10:00"), repo, rooms, locks=locks)
    assert [e.field for e in exc_info.value.errors] == ["start_time"]
    assert "Invalid time format" in exc_info.value.errors[0].message


def test_missing_fields_are_all_listed(repo, rooms, locks):
    with pytest.raises(BookingValidationError) as exc_info:
        create_booking({"room_id": 1}, repo, rooms, locks=locks)
    fields = {e.field for e in exc_info.value.errors}
    assert fields == {"name", "email", "phone", "date", "start_time", "end_time", "purpose"}


def test_unknown_or_inactive_room_is_rejected(repo, rooms, locks):
    with pytest.raises(RoomNotFound):
        create_booking(request_body(room_id=99), repo, rooms, locks=locks)
    with pytest.raises(RoomNotFound):
        create_booking(request_body(room_id=3), repo, rooms, locks=locks)
    assert repo.all() == []


def test_cancel_then_rebook_identical_range(repo, rooms, locks):
    first = create_booking(request_body(), repo, rooms, locks=locks)
    cancelled = cancel_booking(first.id, repo)
    assert cancelled.status == BookingStatus.CANCELLED

    again = create_booking(request_body(), repo, rooms, locks=locks)
    assert again.status == BookingStatus.CONFIRMED
    # the cancelled record stays as history
    assert len(repo.all()) == 2


def test_lock_timeout_raises_busy_and_writes_nothing(repo, rooms, locks):
    with locks.hold((1, DAY)):
        with pytest.raises(Busy):
            create_booking(request_body(), repo, rooms, locks=locks, timeout=0.05)
    assert repo.all() == []


def test_lock_on_one_room_date_does_not_block_others(repo, rooms, locks):
    with locks.hold((1, DAY)):
        create_booking(request_body(room_id=2), repo, rooms, locks=locks, timeout=0.05)
        create_booking(request_body(day=date(2024, 6, 2)), repo, rooms, locks=locks, timeout=0.05)
    assert len(repo.all()) == 2


def test_lock_registry_forgets_released_keys(repo, rooms, locks):
    create_booking(request_body(), repo, rooms, locks=locks)
    with pytest.raises(SlotConflict):
        create_booking(request_body(), repo, rooms, locks=locks)
    assert len(locks) == 0


class SlowRepository(InMemoryBookingRepository):
    """Widens the window between the conflict check and the insert."""

    def find_active_bookings(self, room_id, booking_date):
        found = super().find_active_bookings(room_id, booking_date)
        time.sleep(0.05)
        return found


def test_concurrent_overlapping_requests_only_one_succeeds(rooms, locks):
    repo = SlowRepository()
    ranges = [("10:00 AM", "11:00 AM"), ("10:30 AM", "11:30 AM"), ("9:30 AM", "10:45 AM"), ("10:00 AM", "11:00 AM")]
    outcomes = []
    barrier = threading.Barrier(len(ranges))

    def attempt(start, end):
        barrier.wait()
        try:
            create_booking(request_body(start, end), repo, rooms, locks=locks, timeout=5)
            outcomes.append("created")
        except (SlotConflict, Busy) as exc:
            outcomes.append(type(exc).__name__)

    threads = [threading.Thread(target=attempt, args=r) for r in ranges]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert outcomes.count("created") == 1
    assert len(outcomes) == len(ranges)
    assert len(repo.all()) == 1


def test_concurrent_requests_without_overlap_all_succeed(rooms, locks):
    repo = SlowRepository()
    ranges = [("8:00 AM", "9:00 AM"), ("9:00 AM", "10:00 AM"), ("10:00 AM", "11:00 AM")]
    errors = []

    def attempt(start, end):
        try:
            create_booking(request_body(start, end), repo, rooms, locks=locks, timeout=5)
        except Exception as exc:  # pragma: no cover - reported below
            errors.append(exc)

    threads = [threading.Thread(target=attempt, args=r) for r in ranges]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(repo.all()) == 3


def test_reschedule_ignores_the_booking_itself(repo, rooms, locks):
    booking = create_booking(request_body(), repo, rooms, locks=locks)
    moved = reschedule_booking(
        booking.id, {"start_time": "10:30 AM", "end_time": "11:30 AM"}, repo, rooms, locks=locks
    )
    assert (moved.start_time, moved.end_time) == ("10:30 AM", "11:30 AM")


def test_reschedule_into_other_booking_conflicts(repo, rooms, locks):
    first = create_booking(request_body(), repo, rooms, locks=locks)
    second = create_booking(request_body("1:00 PM", "2:00 PM"), repo, rooms, locks=locks)

    with pytest.raises(SlotConflict) as exc_info:
        reschedule_booking(
            second.id, {"start_time": "10:30 AM", "end_time": "11:30 AM"}, repo, rooms, locks=locks
        )
    assert exc_info.value.conflicting_booking_id == first.id
    assert repo.get(second.id).start_time == "1:00 PM"


def test_reschedule_to_inactive_room_is_rejected(repo, rooms, locks):
    booking = create_booking(request_body(), repo, rooms, locks=locks)
    with pytest.raises(RoomNotFound):
        reschedule_booking(booking.id, {"room_id": 3}, repo, rooms, locks=locks)


def test_reschedule_validates_final_order(repo, rooms, locks):
    booking = create_booking(request_body(), repo, rooms, locks=locks)
    with pytest.raises(BookingValidationError):
        reschedule_booking(booking.id, {"end_time": "9:00 AM"}, repo, rooms, locks=locks)


def test_reactivating_cancelled_booking_rechecks_conflicts(repo, rooms, locks):
    first = create_booking(request_body(), repo, rooms, locks=locks)
    cancel_booking(first.id, repo)
    create_booking(request_body(), repo, rooms, locks=locks)

    with pytest.raises(SlotConflict):
        reschedule_booking(first.id, {"status": "Confirmed"}, repo, rooms, locks=locks)


def test_plain_field_edit_skips_conflict_check(repo, rooms, locks):
    booking = create_booking(request_body(), repo, rooms, locks=locks)
    with locks.hold((1, DAY)):
        updated = reschedule_booking(
            booking.id, {"purpose": "Retro"}, repo, rooms, locks=locks, timeout=0.05
        )
    assert updated.purpose == "Retro"


def test_missing_booking_raises_not_found(repo, rooms, locks):
    with pytest.raises(BookingNotFound):
        cancel_booking(42, repo)
    with pytest.raises(BookingNotFound):
        reschedule_booking(42, {"purpose": "x"}, repo, rooms, locks=locks)


def test_delete_removes_booking(repo, rooms, locks):
    booking = create_booking(request_body(), repo, rooms, locks=locks)
    delete_booking(booking.id, repo)
    assert repo.get(booking.id) is None


def test_booking_may_end_at_midnight(repo, rooms, locks):
    late = create_booking(request_body("11:00 PM", "12:00 AM"), repo, rooms, locks=locks)
    assert late.end_time == "12:00 AM"
    assert late.time_range.end == 24 * 60

    with pytest.raises(SlotConflict):
        create_booking(request_body("11:30 PM", "12:00 AM"), repo, rooms, locks=locks)
    early = create_booking(request_body("12:00 AM", "1:00 AM"), repo, rooms, locks=locks)
    assert early.time_range.start == 0
