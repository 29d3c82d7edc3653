"""Neutron Cache.

Encrypted, persistent session and secrets cache.
"""
from .version import __version__
from .exceptions import CacheError, CryptoError, FormatError
from .keys import CacheKey
from .store import INFINITE, ExpiringStore
from .data import PersistentCacheData, SecretRecord, SessionRecord
from .persistent import PersistentCache
from .session import PersistentSessionCache
from .secrets import PersistentSecretsCache, SecretsCache
from .conf import CacheConfig
from .manager import Caches, open_caches

__all__ = (
    "__version__",
    "CacheError",
    "CryptoError",
    "FormatError",
    "CacheKey",
    "INFINITE",
    "ExpiringStore",
    "PersistentCacheData",
    "SecretRecord",
    "SessionRecord",
    "PersistentCache",
    "PersistentSessionCache",
    "PersistentSecretsCache",
    "SecretsCache",
    "CacheConfig",
    "Caches",
    "open_caches",
)
