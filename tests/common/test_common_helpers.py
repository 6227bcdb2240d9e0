import os
import sys
from datetime import datetime, timedelta, timezone

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from common import cache
from common.circuit_breaker import CircuitBreaker


class FakeRedis:
    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value

    def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)

    def scan_iter(self, pattern):
        prefix = pattern.rstrip("*")
        return [k for k in list(self.store) if k.startswith(prefix)]


def test_cache_is_disabled_without_redis_url(monkeypatch):
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.setattr(cache, "_redis_client", None)
    cache.set_cached_json("rooms:all", [1, 2])
    assert cache.get_cached_json("rooms:all") is None


def test_cache_round_trip_and_prefix_invalidation(monkeypatch):
    fake = FakeRedis()
    monkeypatch.setattr(cache, "_redis_client", fake)

    cache.set_cached_json(cache.availability_key(1, "2024-06-01"), [{"available": True}])
    cache.set_cached_json(cache.availability_key(2, "2024-06-01"), [])
    cache.set_cached_json(cache.room_key(1), {"id": 1})

    assert cache.get_cached_json("rooms:availability:1:2024-06-01") == [{"available": True}]

    cache.delete_prefix(cache.AVAILABILITY_PREFIX)
    assert cache.get_cached_json(cache.availability_key(1, "2024-06-01")) is None
    assert cache.get_cached_json(cache.room_key(1)) == {"id": 1}

    cache.delete_keys(cache.room_key(1))
    assert cache.get_cached_json(cache.room_key(1)) is None


def test_circuit_breaker_opens_and_recovers():
    breaker = CircuitBreaker("test", max_failures=2, reset_timeout_seconds=30)
    assert breaker.allow_request()

    breaker.record_failure()
    assert breaker.state == "closed"
    breaker.record_failure()
    assert breaker.state == "open"
    assert not breaker.allow_request()

    breaker.last_failure_time = datetime.now(timezone.utc) - timedelta(seconds=31)
    assert breaker.allow_request()
    assert breaker.state == "half_open"

    breaker.record_success()
    assert breaker.state == "closed"
    assert breaker.failure_count == 0


def test_failed_trial_request_reopens_circuit():
    breaker = CircuitBreaker("test", max_failures=5, reset_timeout_seconds=0)
    for _ in range(5):
        breaker.record_failure()
    assert breaker.allow_request()
    assert breaker.state == "half_open"
    breaker.record_failure()
    assert breaker.state == "open"
