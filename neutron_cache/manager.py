"""
Cache wiring — One persistence handle shared by the session and secrets caches.
"""
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Optional

from .conf import CacheConfig
from .persistent import PersistentCache
from .secrets import PersistentSecretsCache
from .session import PersistentSessionCache
from .vault.protector import BlobProtector

logger = logging.getLogger("neutron.cache")


@dataclass
class Caches:
    """The three cache objects of one process."""

    persistent: PersistentCache
    session: PersistentSessionCache
    secrets: PersistentSecretsCache

    def reset(self) -> None:
        """Forget the session and all secrets, and delete the cache file."""
        self.secrets.clear()
        self.persistent.clear()


@contextmanager
def open_caches(
    config: Optional[CacheConfig] = None,
    protector: Optional[BlobProtector] = None,
) -> Iterator[Caches]:
    """Open the caches described by config (default: from environment).

    The secrets are saved when the block exits, including on error.
    """
    config = config or CacheConfig.from_env()
    persistent = PersistentCache(config.path, protector=protector, app_name=config.app_name)
    caches = Caches(
        persistent=persistent,
        session=PersistentSessionCache(persistent),
        secrets=PersistentSecretsCache(persistent, default_ttl=config.default_ttl),
    )
    try:
        yield caches
    finally:
        caches.secrets.close()
        logger.debug("Caches closed")
