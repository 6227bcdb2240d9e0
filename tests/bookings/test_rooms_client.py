import os
import sys

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

import httpx
import pytest

from bookings_service.rooms_client import HttpRoomDirectory, RoomLookupFailed, RoomServiceUnavailable
from common.circuit_breaker import CircuitBreaker


class FakeResponse:
    def __init__(self, status_code, json_body=None):
        self.status_code = status_code
        self._json = json_body or {}

    def json(self):
        return self._json


@pytest.fixture
def directory():
    return HttpRoomDirectory("http://rooms.test/", breaker=CircuitBreaker("rooms", max_failures=2))


def test_found_room_is_mapped_to_record(monkeypatch, directory):
    def fake_get(url, timeout=None):
        assert url == "http://rooms.test/api/v1/rooms/7"
        return FakeResponse(200, {
            "id": 7, "name": "Boardroom", "capacity": 15, "location": "Floor 3",
            "amenities": ["projector", "wifi"], "is_active": True,
        })

    monkeypatch.setattr(httpx, "get", fake_get)
    room = directory.find_room(7)
    assert room.name == "Boardroom"
    assert room.amenities == frozenset({"projector", "wifi"})
    assert room.is_active is True


def test_missing_room_is_none(monkeypatch, directory):
    monkeypatch.setattr(httpx, "get", lambda url, timeout=None: FakeResponse(404))
    assert directory.find_room(7) is None


def test_failures_raise_and_open_the_circuit(monkeypatch, directory):
    def unreachable(url, timeout=None):
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(httpx, "get", unreachable)
    with pytest.raises(RoomLookupFailed):
        directory.find_room(1)

    monkeypatch.setattr(httpx, "get", lambda url, timeout=None: FakeResponse(500))
    with pytest.raises(RoomLookupFailed) as exc_info:
        directory.find_room(1)
    assert exc_info.value.status_code == 502

    with pytest.raises(RoomServiceUnavailable) as exc_info:
        directory.find_room(1)
    assert exc_info.value.status_code == 503
