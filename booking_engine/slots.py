import datetime
from typing import Any, Iterator, Sequence, Union

from .conflicts import blocking_bookings, find_conflict
from .models import TimeSlot
from .timerange import TimeRange, as_minutes


def generate_slots(
    booking_date: datetime.date,
    granularity_minutes: int,
    business_start: Union[int, str],
    business_end: Union[int, str],
    existing_bookings: Sequence[Any],
) -> Iterator[TimeSlot]:
    """
    Yield the bookable slots of a business day, in ascending order.

    Each slot is ``granularity_minutes`` wide; a trailing remainder shorter
    than that is not offered. A slot is unavailable when it overlaps any
    non-cancelled booking in ``existing_bookings`` for ``booking_date``.

    The generator holds no state outside its arguments, so calling it again
    with the same arguments yields an identical sequence.

    Parameters
    ----------
    booking_date : date
        Day the slots are computed for.
    granularity_minutes : int
        Width of every slot, in minutes.
    business_start, business_end : int or str
        Opening and closing time, as minute of day or 12-hour label.
    existing_bookings : Sequence
        Bookings of one room (other dates and cancelled ones are ignored).

    Raises
    ------
    ValueError
        If the granularity is not positive or the business day is empty.
    """
    start, end = as_minutes(business_start), as_minutes(business_end, closing=True)
    if granularity_minutes <= 0:
        raise ValueError("granularity_minutes must be positive")
    if end <= start:
        raise ValueError("business day must end after it starts")

    return _iter_slots(booking_date, granularity_minutes, start, end, existing_bookings)


def _iter_slots(booking_date, granularity, start, end, existing_bookings):
    active = blocking_bookings(existing_bookings, booking_date=booking_date)
    cursor = start
    while cursor + granularity <= end:
        slot_range = TimeRange(cursor, cursor + granularity)
        conflict = find_conflict(slot_range, active)
        yield TimeSlot(
            date=booking_date,
            time_range=slot_range,
            available=conflict is None,
            conflicting_booking_id=None if conflict is None else conflict.id,
        )
        cursor += granularity
