import datetime
import itertools
import threading
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional

from .conflicts import blocking_bookings
from .models import BookingRecord, BookingStatus, RoomRecord
from .schemas import BookingRequest


class InMemoryBookingRepository:
    """
    Dict-backed ``BookingRepository``.

    Used by tests, seeding and profiling. Stored records are copied on the
    way out so callers cannot mutate the store behind its back.
    """

    def __init__(self, records: Iterable[BookingRecord] = ()):
        self._lock = threading.Lock()
        self._records: Dict[int, BookingRecord] = {}
        for record in records:
            self._records[record.id] = record
        self._ids = itertools.count(max(self._records, default=0) + 1)

    def find_active_bookings(self, room_id: int, booking_date: datetime.date) -> List[BookingRecord]:
        with self._lock:
            records = list(self._records.values())
        return [replace(r) for r in blocking_bookings(records, room_id=room_id, booking_date=booking_date)]

    def insert(self, request: BookingRequest, status: BookingStatus) -> BookingRecord:
        with self._lock:
            record = BookingRecord(
                id=next(self._ids),
                status=status,
                **request.model_dump(),
            )
            self._records[record.id] = record
            return replace(record)

    def get(self, booking_id: int) -> Optional[BookingRecord]:
        with self._lock:
            record = self._records.get(booking_id)
            return None if record is None else replace(record)

    def update(self, booking: BookingRecord, values: Dict[str, Any]) -> BookingRecord:
        with self._lock:
            record = replace(self._records[booking.id], **values)
            self._records[record.id] = record
            return replace(record)

    def delete(self, booking: BookingRecord) -> None:
        with self._lock:
            self._records.pop(booking.id, None)

    def all(self) -> List[BookingRecord]:
        with self._lock:
            return [replace(r) for r in self._records.values()]


class InMemoryRoomDirectory:
    """Static ``RoomDirectory`` over a fixed set of rooms."""

    def __init__(self, rooms: Iterable[RoomRecord] = ()):
        self._rooms = {room.id: room for room in rooms}

    def find_room(self, room_id: int) -> Optional[RoomRecord]:
        return self._rooms.get(room_id)

    def add(self, room: RoomRecord) -> None:
        self._rooms[room.id] = room
