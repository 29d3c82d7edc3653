"""
PersistentSecretsCache — Transform-gated secrets, saved through PersistentCache.

Provides the secrets API used by the authentication layer:
- ``set(key, data, flags, ttl)`` — cache secret bytes with an optional TTL
- ``include_in_group(group_key, member_keys)`` — name an ordered set of keys
- ``try_use(key, state, transform)`` — run transform over the secret bytes
- ``try_use_group(group_key, state, transform)`` — same, for every live member
- ``remove(key)`` — evict one secret or group

Secret bytes are never handed out. ``transform(state, view, flags)`` receives
a read-only ``memoryview`` that is released as soon as it returns, so the
transform must copy whatever it needs to keep.

Security Note:
    Never log secret bytes. Only log key names and byte counts.
"""
import time
import logging
from typing import Any, Callable, Iterable, Optional, Protocol, TypeVar

from .data import SecretRecord, SecretsEntry
from .keys import CacheKey
from .persistent import PersistentCache
from .store import INFINITE, TTL, ExpiringStore, SecretTransform

logger = logging.getLogger("neutron.cache")

S = TypeVar("S")
R = TypeVar("R")

_DEFAULT_TTL = object()


class SecretsCache(Protocol):
    """Secrets cache capability offered to the authentication layer."""

    def set(self, key: CacheKey, data: bytes, flags: int = 0, ttl: TTL = INFINITE) -> None:
        """Cache secret bytes under key; ttl None means no expiry."""
        ...

    def include_in_group(self, group_key: CacheKey, member_keys: Iterable[CacheKey]) -> None:
        """Store an ordered list of member keys under group_key."""
        ...

    def try_use(self, key: CacheKey, state: S, transform: SecretTransform) -> tuple[bool, Optional[R]]:
        """Return ``(True, transform(...))`` on hit, ``(False, None)`` on miss."""
        ...

    def try_use_group(
        self, group_key: CacheKey, state: S, transform: SecretTransform,
    ) -> tuple[bool, Optional[list[R]]]:
        """Transform every live member; ``(False, None)`` if the group is absent."""
        ...

    def remove(self, key: CacheKey) -> None:
        """Evict one entry."""
        ...


def _to_record(_state: Any, view: memoryview, flags: int) -> SecretRecord:
    return SecretRecord(data=bytes(view), flags=flags)


class PersistentSecretsCache:
    """Secrets cache backed by an :class:`ExpiringStore` and a PersistentCache.

    Entries found in the persistent cache are loaded on construction and
    never expire (the file does not record expiry). Call :meth:`save`, or
    use the instance as a context manager, to write entries back.

    Args:
        cache: Shared persistence handle.
        default_ttl: TTL applied when ``set`` gets no explicit ttl.
        clock: Monotonic time source in seconds.
    """

    def __init__(
        self,
        cache: PersistentCache,
        default_ttl: TTL = INFINITE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._cache = cache
        self._default_ttl = default_ttl
        self._store = ExpiringStore(clock=clock)
        self._closed = False
        self.reload()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set(self, key: CacheKey, data: bytes, flags: int = 0, ttl: Any = _DEFAULT_TTL) -> None:
        """Cache secret bytes, replacing any previous value and expiry.

        Args:
            key: Cache key.
            data: Secret bytes (any bytes-like object; it is copied).
            flags: One byte of caller-defined flags.
            ttl: ``timedelta`` or seconds; ``None`` for no expiry. Defaults
                to the cache's default_ttl.

        Raises:
            ValueError: If ttl is not positive or flags do not fit a byte.
            TypeError: If data is not a bytes-like object.
        """
        if ttl is _DEFAULT_TTL:
            ttl = self._default_ttl
        self._store.set_secret(key, data, flags, ttl)
        logger.debug("Set %d-byte value for key %s", len(data), key)

    def include_in_group(self, group_key: CacheKey, member_keys: Iterable[CacheKey]) -> None:
        """Store the ordered member keys of a group (never expires)."""
        members = tuple(member_keys)
        self._store.set_group(group_key, members)
        logger.debug("Group %s includes %d key(s)", group_key, len(members))

    def try_use(self, key: CacheKey, state: S, transform: SecretTransform) -> tuple[bool, Optional[R]]:
        """Run ``transform(state, view, flags)`` over a cached secret.

        Returns:
            ``(True, result)`` on hit; ``(False, None)`` when the key is
            absent, expired or names a group.
        """
        found, result = self._store.use_secret(key, state, transform)
        if not found:
            logger.debug("Key %s not found", key)
        return found, result

    def try_use_group(
        self, group_key: CacheKey, state: S, transform: SecretTransform,
    ) -> tuple[bool, Optional[list[R]]]:
        """Run transform over every live member of a group, in order.

        Missing or expired members are skipped.

        Returns:
            ``(True, results)`` when the group exists, even if results is
            empty; ``(False, None)`` when it does not.
        """
        members = self._store.get_group(group_key)
        if members is None:
            logger.debug("Group key %s not found", group_key)
            return False, None
        logger.debug("Found %d cache keys for %s", len(members), group_key)
        results = []
        for member in members:
            found, result = self.try_use(member, state, transform)
            if found:
                results.append(result)
        return True, results

    def remove(self, key: CacheKey) -> None:
        """Evict one entry; removing a group leaves its members cached."""
        if self._store.remove(key):
            logger.debug("Removed entry for key %s", key)

    def keys(self) -> list[CacheKey]:
        """Live cache keys (secrets and groups)."""
        return self._store.keys()

    def clear(self) -> None:
        """Evict every entry from memory."""
        self._store.clear()
        logger.debug("Secrets cache cleared")

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return key in self._store

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def entries(self) -> dict[str, SecretsEntry]:
        """Serialize live entries for the persistent cache."""
        entries: dict[str, SecretsEntry] = {}
        for key, payload in self._store.export(None, _to_record):
            if isinstance(payload, SecretRecord):
                entries[str(key)] = payload
            else:
                entries[str(key)] = [str(member) for member in payload]
        return entries

    def reload(self) -> None:
        """Replace in-memory entries with those held by the persistent cache."""
        self._store.clear()
        count = 0
        for name, entry in self._cache.secrets_entries.items():
            key = CacheKey.parse(name)
            if isinstance(entry, SecretRecord):
                self._store.set_secret(key, entry.data, entry.flags, INFINITE)
            else:
                self._store.set_group(key, [CacheKey.parse(m) for m in entry])
            count += 1
        logger.debug("Loaded %d secrets cache entries", count)

    def save(self) -> None:
        """Hand live entries to the persistent cache and write the file."""
        entries = self.entries()
        self._cache.set_secrets_entries(entries)
        self._cache.save()
        logger.debug("Saved %d secrets cache entries", len(entries))

    def close(self) -> None:
        """Final save; later calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        self.save()

    def __enter__(self) -> "PersistentSecretsCache":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
