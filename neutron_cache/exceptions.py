"""Exceptions raised by the cache layers."""


class CacheError(Exception):
    """Base class for all cache errors."""


class FormatError(CacheError, ValueError):
    """A cache key string or a cache document has an invalid shape."""


class CryptoError(CacheError):
    """Protected data could not be decrypted (wrong key, tampered or truncated)."""
