import datetime
from dataclasses import dataclass, field
from enum import Enum as PyEnum
from typing import FrozenSet, Optional

from .timerange import TimeRange


class BookingStatus(str, PyEnum):
    """
    Enumeration of possible booking statuses.

    Values
    ------
    Confirmed
        Booking holds the room for the given time range.
    Pending
        Booking is awaiting confirmation; it still holds the room.
    Cancelled
        Booking has been cancelled and no longer blocks the room.
    """
    CONFIRMED = "Confirmed"
    PENDING = "Pending"
    CANCELLED = "Cancelled"


@dataclass(frozen=True)
class RoomRecord:
    """Minimal view of a room needed by the engine."""
    id: int
    name: str
    capacity: int = 1
    location: str = ""
    amenities: FrozenSet[str] = frozenset()
    is_active: bool = True


@dataclass
class BookingRecord:
    """
    Plain booking record used by the in-memory repository.

    The SQLAlchemy model in the bookings service exposes the same
    attributes, so the engine treats both alike.
    """
    id: int
    room_id: int
    name: str
    email: str
    phone: str
    date: datetime.date
    start_time: str
    end_time: str
    purpose: str
    status: BookingStatus = BookingStatus.CONFIRMED
    created_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    @property
    def time_range(self) -> TimeRange:
        return TimeRange.parse(self.start_time, self.end_time)


@dataclass(frozen=True)
class TimeSlot:
    """
    Fixed-width window of a business day, tagged with availability.

    Derived on every query, never stored.
    """
    date: datetime.date
    time_range: TimeRange
    available: bool
    conflicting_booking_id: Optional[int] = None

    @property
    def start_time(self) -> str:
        return self.time_range.start_label

    @property
    def end_time(self) -> str:
        return self.time_range.end_label

    def as_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "available": self.available,
            "conflicting_booking_id": self.conflicting_booking_id,
        }
