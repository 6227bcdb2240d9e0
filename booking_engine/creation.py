import datetime
from typing import Any, Dict, Mapping, Optional, Protocol, Sequence, Union

from .conflicts import blocking_bookings, find_conflict
from .errors import BookingNotFound, BookingValidationError, FieldError, RoomNotFound, SlotConflict
from .locking import booking_locks
from .models import BookingStatus
from .schemas import (
    BookingChanges,
    BookingRequest,
    changes_to_values,
    parse_booking_changes,
    parse_booking_request,
)
from .timerange import TimeRange

DEFAULT_LOCK_TIMEOUT = 5.0


class BookingRepository(Protocol):
    """
    Persistence collaborator for bookings.

    Implementations raise ``StorageError`` when the underlying store fails.
    """

    def find_active_bookings(self, room_id: int, booking_date: datetime.date) -> Sequence[Any]:
        """Bookings of the room on that date whose status is not Cancelled."""

    def insert(self, request: BookingRequest, status: BookingStatus) -> Any:
        """Persist a new booking, assigning its id and creation timestamp."""

    def get(self, booking_id: int) -> Optional[Any]:
        """Return the booking or None."""

    def update(self, booking: Any, values: Dict[str, Any]) -> Any:
        """Apply ``values`` to ``booking`` and persist it."""

    def delete(self, booking: Any) -> None:
        """Remove the booking permanently."""


class RoomDirectory(Protocol):
    def find_room(self, room_id: int) -> Optional[Any]:
        """Return the room (with an ``is_active`` flag) or None."""


class LockProvider(Protocol):
    def hold(self, key: Any, timeout: Optional[float] = None) -> Any:
        """Context manager serializing writers of ``key``."""


def ensure_room_active(rooms: RoomDirectory, room_id: int) -> Any:
    """
    Look the room up and reject it when missing or inactive.

    Raises
    ------
    RoomNotFound
        If the room does not exist or was logically removed.
    """
    room = rooms.find_room(room_id)
    if room is None or not getattr(room, "is_active", True):
        raise RoomNotFound(room_id)
    return room


def create_booking(
    request: Union[BookingRequest, Mapping[str, Any]],
    bookings: BookingRepository,
    rooms: RoomDirectory,
    locks: LockProvider = booking_locks,
    timeout: Optional[float] = DEFAULT_LOCK_TIMEOUT,
) -> Any:
    """
    Create a Confirmed booking if the room is free for the requested range.

    The conflict check and the insert run while holding the lock for the
    booking's (room, date), so two concurrent requests for overlapping
    ranges can never both succeed. Other rooms and dates are not blocked.

    Parameters
    ----------
    request : BookingRequest or Mapping
        Parsed request, or a raw payload to validate.
    bookings : BookingRepository
        Booking persistence.
    rooms : RoomDirectory
        Room lookup.
    locks : LockProvider
        Per-(room, date) serialization.
    timeout : Optional[float]
        Seconds to wait for the lock; None waits forever.

    Returns
    -------
    Any
        The stored booking as returned by the repository.

    Raises
    ------
    BookingValidationError
        If any field is missing or malformed.
    RoomNotFound
        If the room does not exist or is inactive.
    SlotConflict
        If the range overlaps a non-cancelled booking.
    Busy
        If the lock was not acquired in time; nothing is written.
    StorageError
        If the repository fails.
    """
    request = parse_booking_request(request)
    ensure_room_active(rooms, request.room_id)
    candidate = request.time_range

    with locks.hold((request.room_id, request.date), timeout=timeout):
        existing = blocking_bookings(
            bookings.find_active_bookings(request.room_id, request.date),
        )
        conflict = find_conflict(candidate, existing)
        if conflict is not None:
            raise SlotConflict(conflict.id)
        return bookings.insert(request, BookingStatus.CONFIRMED)


def get_booking(booking_id: int, bookings: BookingRepository) -> Any:
    booking = bookings.get(booking_id)
    if booking is None:
        raise BookingNotFound(booking_id)
    return booking


def reschedule_booking(
    booking_id: int,
    changes: Union[BookingChanges, Mapping[str, Any]],
    bookings: BookingRepository,
    rooms: RoomDirectory,
    locks: LockProvider = booking_locks,
    timeout: Optional[float] = DEFAULT_LOCK_TIMEOUT,
) -> Any:
    """
    Apply a partial update to a booking.

    Moving the booking (room, date or times) or bringing a cancelled booking
    back re-runs the room lookup and the conflict check under the lock of
    the target (room, date), ignoring the booking itself. Plain field edits
    and cancellation skip the lock since they cannot create an overlap.
    """
    changes = parse_booking_changes(changes)
    booking = get_booking(booking_id, bookings)
    values = changes_to_values(changes)

    room_id = values.get("room_id", booking.room_id)
    booking_date = values.get("date", booking.date)
    start_time = values.get("start_time", booking.start_time)
    end_time = values.get("end_time", booking.end_time)
    new_status = values.get("status", booking.status)

    try:
        candidate = TimeRange.parse(start_time, end_time)
    except ValueError:
        raise BookingValidationError(
            [FieldError("end_time", "end_time must be after start_time")]
        )

    reactivated = booking.status == BookingStatus.CANCELLED
    if new_status == BookingStatus.CANCELLED or not (changes.reschedules or reactivated):
        return bookings.update(booking, values)

    ensure_room_active(rooms, room_id)
    with locks.hold((room_id, booking_date), timeout=timeout):
        existing = blocking_bookings(
            bookings.find_active_bookings(room_id, booking_date),
            ignore_booking_id=booking.id,
        )
        conflict = find_conflict(candidate, existing)
        if conflict is not None:
            raise SlotConflict(conflict.id)
        return bookings.update(booking, values)


def cancel_booking(booking_id: int, bookings: BookingRepository) -> Any:
    """Mark a booking Cancelled; it stays stored as a historical record."""
    booking = get_booking(booking_id, bookings)
    return bookings.update(booking, {"status": BookingStatus.CANCELLED})


def delete_booking(booking_id: int, bookings: BookingRepository) -> None:
    booking = get_booking(booking_id, bookings)
    bookings.delete(booking)
