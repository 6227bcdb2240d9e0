import threading
from contextlib import ExitStack, contextmanager
from typing import Dict, Hashable, Iterator, Optional

from .errors import Busy


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class KeyedLocks:
    """
    In-process registry of mutual-exclusion locks, one per key.

    Keys are ``(room_id, date)`` pairs for booking writes. Different keys
    never wait on each other. An entry is dropped as soon as nobody holds
    or waits for it, so the registry does not grow with the calendar.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: Dict[Hashable, _Entry] = {}

    @contextmanager
    def hold(self, key: Hashable, timeout: Optional[float] = None) -> Iterator[None]:
        """
        Hold the lock for ``key`` for the duration of the ``with`` block.

        Raises
        ------
        Busy
            If the lock is not acquired within ``timeout`` seconds.
        """
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.users += 1

        acquired = False
        try:
            acquired = entry.lock.acquire(timeout=-1 if timeout is None else timeout)
            if not acquired:
                raise Busy(key)
            yield
        finally:
            if acquired:
                entry.lock.release()
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)


class LockChain:
    """
    Acquire several lock providers for the same key, in order.

    Each provider exposes ``hold(key, timeout)``; used to pair the
    process-wide ``KeyedLocks`` with a database-level lock.
    """

    def __init__(self, *providers):
        self.providers = providers

    @contextmanager
    def hold(self, key: Hashable, timeout: Optional[float] = None) -> Iterator[None]:
        with ExitStack() as stack:
            for provider in self.providers:
                stack.enter_context(provider.hold(key, timeout=timeout))
            yield


# shared by every request handled in this process
booking_locks = KeyedLocks()
