"""
Expiring Store — In-memory map of secrets and groups with lazy expiry.

Each entry is ``key -> (payload, expires_at)`` where ``expires_at`` is a
clock reading or None for entries that never expire. Expired entries are
evicted when they are next touched, or by :meth:`ExpiringStore.purge_expired`.
Since the map itself is enumerable no separate key index is kept.

Secret bytes live in a bytearray that is zeroed when the entry is
overwritten, removed or expires.
"""
import time
import logging
import threading
from datetime import timedelta
from typing import Any, Callable, NamedTuple, Optional, TypeVar, Union

from .keys import CacheKey

logger = logging.getLogger("neutron.cache")

S = TypeVar("S")
R = TypeVar("R")

SecretTransform = Callable[[S, memoryview, int], R]

TTL = Union[timedelta, float, int, None]

# Pass as ttl for entries that never expire.
INFINITE = None


def ttl_seconds(ttl: TTL) -> Optional[float]:
    """Normalize a TTL to seconds, None meaning no expiry.

    Raises:
        ValueError: If the TTL is zero or negative.
    """
    if ttl is None:
        return None
    seconds = ttl.total_seconds() if isinstance(ttl, timedelta) else float(ttl)
    if seconds <= 0:
        raise ValueError(f"ttl must be positive, got {ttl!r}")
    return seconds


class Secret:
    """Secret bytes plus a flag byte; bytes are only reachable via :meth:`use`."""

    __slots__ = ("_data", "flags")

    def __init__(self, data: Any, flags: int = 0):
        if not 0 <= flags <= 255:
            raise ValueError(f"flags must fit in one byte, got {flags}")
        self._data = bytearray(memoryview(data))
        self.flags = flags

    def __len__(self) -> int:
        return len(self._data)

    def use(self, state: S, transform: SecretTransform) -> R:
        """Call ``transform(state, view, flags)`` with a read-only view.

        The view is released when the transform returns; it must not be
        kept.
        """
        view = memoryview(self._data).toreadonly()
        try:
            return transform(state, view, self.flags)
        finally:
            view.release()

    def wipe(self) -> None:
        self._data[:] = bytes(len(self._data))

    def __repr__(self) -> str:
        return f"<Secret {len(self._data)} bytes flags={self.flags}>"


Group = tuple  # tuple[CacheKey, ...]


class _Entry(NamedTuple):
    payload: Union[Secret, Group]
    expires_at: Optional[float]


def _discard(entry: Optional[_Entry]) -> None:
    if entry is not None and isinstance(entry.payload, Secret):
        entry.payload.wipe()


class ExpiringStore:
    """Thread-safe TTL map from CacheKey to Secret or Group.

    Args:
        clock: Monotonic time source in seconds (injectable for tests).
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[CacheKey, _Entry] = {}
        self._lock = threading.RLock()

    def _live(self, key: CacheKey) -> Optional[_Entry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            del self._entries[key]
            _discard(entry)
            logger.debug("Key %s expired", key)
            return None
        return entry

    def _put(self, key: CacheKey, entry: _Entry) -> None:
        previous = self._entries.get(key)
        self._entries[key] = entry
        if previous is not None and previous.payload is not entry.payload:
            _discard(previous)

    def set_secret(self, key: CacheKey, data: Any, flags: int = 0, ttl: TTL = INFINITE) -> None:
        """Insert or overwrite a secret; a new TTL replaces the previous one."""
        seconds = ttl_seconds(ttl)
        secret = Secret(data, flags)
        with self._lock:
            expires_at = None if seconds is None else self._clock() + seconds
            self._put(key, _Entry(secret, expires_at))

    def set_group(self, key: CacheKey, members) -> None:
        """Store an ordered member list that never expires."""
        group = tuple(members)
        with self._lock:
            self._put(key, _Entry(group, None))

    def use_secret(self, key: CacheKey, state: S, transform: SecretTransform) -> tuple[bool, Optional[R]]:
        """Apply transform to a live secret; ``(False, None)`` on miss."""
        with self._lock:
            entry = self._live(key)
            if entry is None or not isinstance(entry.payload, Secret):
                return False, None
            return True, entry.payload.use(state, transform)

    def get_group(self, key: CacheKey) -> Optional[Group]:
        """Return the member keys of a live group, or None."""
        with self._lock:
            entry = self._live(key)
            if entry is None or isinstance(entry.payload, Secret):
                return None
            return entry.payload

    def remove(self, key: CacheKey) -> bool:
        """Evict one entry. Returns True when something was removed."""
        with self._lock:
            entry = self._entries.pop(key, None)
        _discard(entry)
        return entry is not None

    def purge_expired(self) -> int:
        """Evict every expired entry now. Returns the number evicted."""
        with self._lock:
            expired = [key for key in list(self._entries) if self._live(key) is None]
        return len(expired)

    def export(self, state: S, transform: SecretTransform) -> list[tuple[CacheKey, Any]]:
        """Snapshot live entries in insertion order.

        Secrets are passed through transform while the lock is held, so a
        concurrent removal cannot wipe them half way; groups are returned
        as their member tuples.
        """
        with self._lock:
            self.purge_expired()
            return [
                (
                    key,
                    entry.payload.use(state, transform)
                    if isinstance(entry.payload, Secret)
                    else entry.payload,
                )
                for key, entry in self._entries.items()
            ]

    def keys(self) -> list[CacheKey]:
        """Live keys in insertion order."""
        with self._lock:
            self.purge_expired()
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        for entry in entries:
            _discard(entry)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return isinstance(key, CacheKey) and self._live(key) is not None

    def __len__(self) -> int:
        with self._lock:
            self.purge_expired()
            return len(self._entries)
