import threading
from contextlib import contextmanager

from library_api.errors import Busy


class _Entry:
    __slots__ = ("lock", "holders")

    def __init__(self):
        self.lock = threading.Lock()
        self.holders = 0


class KeyedLock:
    """
    One mutex per key, created on first use and dropped once nobody holds
    or waits on it. The registry guard is only taken to find the entry, so
    different keys never wait on each other.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: dict[str, _Entry] = {}

    def _checkout(self, key: str) -> _Entry:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = self._entries[key] = _Entry()
            entry.holders += 1
            return entry

    def _checkin(self, key: str, entry: _Entry):
        with self._guard:
            entry.holders -= 1
            if entry.holders == 0:
                self._entries.pop(key, None)

    @contextmanager
    def hold(self, key: str, timeout: float):
        entry = self._checkout(key)
        try:
            if not entry.lock.acquire(timeout=timeout):
                raise Busy()
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(key, entry)

    def __len__(self):
        with self._guard:
            return len(self._entries)
