"""
PersistentSessionCache — The session record, saved through PersistentCache.
"""
import logging
from typing import Optional

from .data import SessionRecord
from .persistent import PersistentCache

logger = logging.getLogger("neutron.cache")


class PersistentSessionCache:
    """Keeps the single session record between runs."""

    def __init__(self, cache: PersistentCache):
        self._cache = cache

    @property
    def session(self) -> Optional[SessionRecord]:
        return self._cache.session

    @property
    def has_session(self) -> bool:
        return self._cache.session is not None

    def save_session(self, session: SessionRecord) -> None:
        """Store the session and persist the cache file."""
        self._cache.session = session
        self._cache.save()
        logger.info("Session saved for session ID %s", session.id)

    def clear_session(self) -> None:
        """Drop the session and persist the cache file."""
        self._cache.session = None
        self._cache.save()
        logger.info("Session cleared.")
