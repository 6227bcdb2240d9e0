import datetime
from typing import Any, Iterable, List, Optional

from .models import BookingStatus
from .timerange import TimeRange


def booking_range(booking: Any) -> TimeRange:
    """Return the [start, end) range of a stored booking."""
    return TimeRange.parse(booking.start_time, booking.end_time)


def blocking_bookings(
    bookings: Iterable[Any],
    room_id: Optional[int] = None,
    booking_date: Optional[datetime.date] = None,
    ignore_booking_id: Optional[int] = None,
) -> List[Any]:
    """
    Keep only bookings that can block a new reservation.

    A booking blocks when it is not cancelled and, if given, belongs to
    ``room_id`` on ``booking_date``.

    Parameters
    ----------
    bookings : Iterable
        Booking records (ORM rows or ``BookingRecord``).
    room_id : Optional[int]
        Restrict to this room.
    booking_date : Optional[date]
        Restrict to this calendar date.
    ignore_booking_id : Optional[int]
        Skip this booking (used when rescheduling it).

    Returns
    -------
    List
        The blocking bookings, in the order given.
    """
    result = []
    for booking in bookings:
        if booking.status == BookingStatus.CANCELLED:
            continue
        if room_id is not None and booking.room_id != room_id:
            continue
        if booking_date is not None and booking.date != booking_date:
            continue
        if ignore_booking_id is not None and booking.id == ignore_booking_id:
            continue
        result.append(booking)
    return result


def find_conflict(candidate: TimeRange, existing: Iterable[Any]) -> Optional[Any]:
    """
    Return the first booking in ``existing`` whose range overlaps ``candidate``.

    ``existing`` must already be scoped to one room and date with cancelled
    bookings removed.
    """
    for booking in existing:
        if candidate.overlaps(booking_range(booking)):
            return booking
    return None


def has_conflict(
    room_id: Optional[int],
    booking_date: Optional[datetime.date],
    candidate: TimeRange,
    existing: Iterable[Any],
) -> bool:
    """
    Check whether ``candidate`` overlaps any active booking of the room/date.

    Pure function over the supplied bookings: nothing is read or written.

    Parameters
    ----------
    room_id : Optional[int]
        Room the candidate is for; ``None`` trusts ``existing`` to be scoped.
    booking_date : Optional[date]
        Date the candidate is for; ``None`` trusts ``existing`` to be scoped.
    candidate : TimeRange
        Requested time range.
    existing : Iterable
        Bookings fetched for that room and date.

    Returns
    -------
    bool
        True if at least one booking overlaps the candidate.
    """
    scoped = blocking_bookings(existing, room_id=room_id, booking_date=booking_date)
    return find_conflict(candidate, scoped) is not None
