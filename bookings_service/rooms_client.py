import logging
import os
from typing import Optional

import httpx

from booking_engine.errors import BookingError
from booking_engine.models import RoomRecord
from common.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)

ROOMS_SERVICE_URL = os.getenv(
    "ROOMS_SERVICE_URL",
    "http://rooms_service:8001",  # Docker internal URL
)

rooms_circuit_breaker = CircuitBreaker(
    name="rooms_service",
    max_failures=3,
    reset_timeout_seconds=30,
)


class RoomLookupFailed(BookingError):
    """The Rooms service could not answer a room lookup."""
    status_code = 502


class RoomServiceUnavailable(RoomLookupFailed):
    status_code = 503


class HttpRoomDirectory:
    """
    ``RoomDirectory`` that asks the Rooms service for a room.

    The Rooms service answers 404 for missing and inactive rooms, which
    maps to ``None`` here.
    """

    def __init__(self, base_url: str = ROOMS_SERVICE_URL, breaker: CircuitBreaker = rooms_circuit_breaker):
        self.base_url = base_url.rstrip("/")
        self.breaker = breaker

    def find_room(self, room_id: int) -> Optional[RoomRecord]:
        if not self.breaker.allow_request():
            raise RoomServiceUnavailable("Rooms service temporarily unavailable (circuit open)")

        try:
            resp = httpx.get(f"{self.base_url}/api/v1/rooms/{room_id}", timeout=5.0)
        except httpx.RequestError as exc:
            self.breaker.record_failure()
            logger.warning("Rooms service unreachable: %s", exc)
            raise RoomLookupFailed("Failed to contact rooms service") from exc

        if resp.status_code == 404:
            self.breaker.record_success()
            return None
        if resp.status_code != 200:
            self.breaker.record_failure()
            raise RoomLookupFailed("Rooms service returned an error when looking up the room")

        self.breaker.record_success()
        data = resp.json()
        return RoomRecord(
            id=data["id"],
            name=data["name"],
            capacity=data.get("capacity", 1),
            location=data.get("location", ""),
            amenities=frozenset(data.get("amenities") or ()),
            is_active=data.get("is_active", True),
        )


room_directory = HttpRoomDirectory()
