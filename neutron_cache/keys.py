"""
Cache Keys — Structured identifiers for cached secrets and groups.

A key names a value held by some holder, optionally scoped by a context:

- ``holder_name:holder_id:value_name``
- ``context_name:context_id:holder_name:holder_id:value_name``

The ``:``-joined form is used as the JSON property name in the cache file,
so it must stay stable across releases.

Note:
    Fields are not escaped. A field that contains ``:`` produces a string
    that parses back into a different key (or fails to parse). This is a
    known limitation of the on-disk format.
"""
from typing import Optional

from .exceptions import FormatError

SEPARATOR = ":"

_FIELDS = ('context_name', 'context_id', 'holder_name', 'holder_id', 'value_name')


class CacheKey:
    """Immutable 3-part or 5-part cache key.

    Examples:
        >>> CacheKey("svc", "user1", "token")
        >>> CacheKey("share", "42", "node", "7", "passphrase")
    """

    __slots__ = _FIELDS

    def __init__(self, *parts: str) -> None:
        if len(parts) == 3:
            values = (None, None) + tuple(parts)
        elif len(parts) == 5:
            values = tuple(parts)
        else:
            raise FormatError(
                f"CacheKey takes 3 or 5 parts, got {len(parts)}"
            )
        for part in parts:
            if not isinstance(part, str):
                raise TypeError(
                    f"CacheKey parts must be str, got {type(part).__name__}"
                )
        for name, value in zip(_FIELDS, values):
            object.__setattr__(self, name, value)

    def __setattr__(self, key: str, value) -> None:
        raise AttributeError(f"CacheKey is immutable (cannot set {key!r})")

    def __delattr__(self, key: str) -> None:
        raise AttributeError(f"CacheKey is immutable (cannot delete {key!r})")

    @property
    def context(self) -> Optional[tuple[str, str]]:
        """The ``(context_name, context_id)`` pair, or None for 3-part keys."""
        if self.context_name is None:
            return None
        return (self.context_name, self.context_id)

    @property
    def parts(self) -> tuple[str, ...]:
        """Present fields in canonical order."""
        head = () if self.context is None else self.context
        return head + (self.holder_name, self.holder_id, self.value_name)

    @classmethod
    def parse(cls, text: Optional[str]) -> "CacheKey":
        """Parse the canonical ``:``-joined form.

        Args:
            text: Key string, as produced by ``str(key)``.

        Returns:
            The parsed CacheKey.

        Raises:
            FormatError: If text is empty/whitespace or does not split into
                exactly 3 or 5 parts.
        """
        if text is None or not text.strip():
            raise FormatError("CacheKey string cannot be empty")
        parts = text.split(SEPARATOR)
        if len(parts) not in (3, 5):
            raise FormatError(
                f"Invalid CacheKey format. Expected 3 or 5 parts, "
                f"but got {len(parts)}"
            )
        return cls(*parts)

    def __str__(self) -> str:
        return SEPARATOR.join(self.parts)

    def __repr__(self) -> str:
        return f"CacheKey({', '.join(repr(p) for p in self.parts)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CacheKey):
            return NotImplemented
        return self.parts == other.parts

    def __hash__(self) -> int:
        return hash(self.parts)

    def __reduce__(self):
        return (self.__class__, self.parts)
