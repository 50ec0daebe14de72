import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Generic, TypeVar

V = TypeVar("V")

Clock = Callable[[], datetime]


def utc_clock() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Entry(Generic[V]):
    value: V
    expires_at: datetime


class ExpiringStore(Generic[V]):
    """
    Process-local key → value map where every entry carries an expiry.

    Expired entries are dropped lazily on lookup and in bulk by sweep().
    All access goes through `lock`; subclasses hold it across
    check-then-delete sequences so they stay atomic under the thread pool.
    """

    def __init__(self, ttl: timedelta, clock: Clock | None = None):
        self.ttl = ttl
        self.clock = clock or utc_clock
        self.lock = threading.RLock()
        self._entries: dict[str, Entry[V]] = {}

    def now(self) -> datetime:
        return self.clock()

    def expiry_from_now(self) -> datetime:
        return self.now() + self.ttl

    def is_expired(self, entry: Entry[V]) -> bool:
        return self.now() > entry.expires_at

    def put(self, key: str, value: V, expires_at: datetime) -> None:
        with self.lock:
            self._entries[key] = Entry(value, expires_at)

    def entry(self, key: str) -> Entry[V] | None:
        """Raw entry, expired or not. Callers decide what expiry means."""
        with self.lock:
            return self._entries.get(key)

    def get(self, key: str) -> V | None:
        with self.lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self.is_expired(entry):
                del self._entries[key]
                return None
            return entry.value

    def pop(self, key: str) -> V | None:
        with self.lock:
            entry = self._entries.pop(key, None)
            return entry.value if entry else None

    def sweep(self) -> int:
        """Remove every expired entry; returns how many were dropped."""
        with self.lock:
            expired = [k for k, e in self._entries.items() if self.is_expired(e)]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def clear(self) -> None:
        with self.lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self.lock:
            return key in self._entries
