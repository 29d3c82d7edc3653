"""
Cache Data — Models for the persisted cache document.

The document stored (encrypted) in the cache file::

    {
      "session": {"id": ..., "accessToken": ..., ...} | null,
      "secrets": {
        "<cache key>": {"bytes": "<base64>", "flags": <0..255>},
        "<group key>": ["<cache key>", ...]
      }
    }

Documents written by older releases are accepted too: PascalCase session
and secret fields, ``"secrets": null``, and the secrets-only layout where
the secrets map sits at the top level.
"""
import base64
import binascii
import logging
from typing import Any, Optional, Union

import orjson
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)

from .exceptions import FormatError
from .keys import CacheKey

logger = logging.getLogger("neutron.cache")


class SessionRecord(BaseModel):
    """Authenticated session tokens kept between runs."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(
        default="", alias="id", validation_alias=AliasChoices("id", "Id"),
    )
    access_token: str = Field(
        default="",
        repr=False,
        alias="accessToken",
        validation_alias=AliasChoices("accessToken", "AccessToken"),
    )
    refresh_token: str = Field(
        default="",
        repr=False,
        alias="refreshToken",
        validation_alias=AliasChoices("refreshToken", "RefreshToken"),
    )
    user_id: Optional[str] = Field(
        default=None,
        alias="userId",
        validation_alias=AliasChoices("userId", "UserId"),
    )
    username: Optional[str] = Field(
        default=None,
        alias="username",
        validation_alias=AliasChoices("username", "Username"),
    )
    email: Optional[str] = Field(
        default=None,
        alias="email",
        validation_alias=AliasChoices("email", "UserEmailAddress"),
    )


class SecretRecord(BaseModel):
    """Persisted form of a secret: base64 bytes plus the flag byte."""

    model_config = ConfigDict(populate_by_name=True)

    data: bytes = Field(
        alias="bytes",
        validation_alias=AliasChoices("bytes", "Bytes"),
        repr=False,
    )
    flags: int = Field(
        default=0,
        ge=0,
        le=255,
        alias="flags",
        validation_alias=AliasChoices("flags", "Flags"),
    )

    @field_validator("data", mode="before")
    @classmethod
    def decode_base64(cls, v: Any) -> Any:
        """Decode the base64 text stored on disk."""
        if isinstance(v, str):
            try:
                return base64.b64decode(v, validate=True)
            except binascii.Error as err:
                raise ValueError(f"Secret bytes are not valid base64: {err}") from err
        return v

    @field_serializer("data")
    def encode_base64(self, v: bytes) -> str:
        return base64.b64encode(v).decode("ascii")


SecretsEntry = Union[SecretRecord, list[str]]


class PersistentCacheData(BaseModel):
    """Top-level cache document: optional session and the secrets map."""

    session: Optional[SessionRecord] = None
    secrets: dict[str, SecretsEntry] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def unwrap_legacy_layout(cls, data: Any) -> Any:
        """Accept the secrets-only layout written by older releases."""
        if isinstance(data, dict) and data and not (
            "session" in data or "secrets" in data
        ):
            logger.info(
                "Cache document uses the secrets-only layout (%d entries)",
                len(data),
            )
            return {"session": None, "secrets": data}
        return data

    @field_validator("secrets", mode="before")
    @classmethod
    def null_secrets(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("secrets")
    @classmethod
    def validate_keys(cls, v: dict[str, SecretsEntry]) -> dict[str, SecretsEntry]:
        """Every property name and group member must be a valid cache key."""
        for name, entry in v.items():
            CacheKey.parse(name)
            if isinstance(entry, list):
                for member in entry:
                    CacheKey.parse(member)
        return v

    @property
    def is_empty(self) -> bool:
        return self.session is None and not self.secrets

    def to_json(self) -> bytes:
        """Serialize to indented UTF-8 JSON."""
        return orjson.dumps(
            self.model_dump(mode="json", by_alias=True),
            option=orjson.OPT_INDENT_2,
        )

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "PersistentCacheData":
        """Parse a cache document.

        Args:
            text: UTF-8 JSON text (str or bytes).

        Returns:
            The parsed document. ``null`` yields an empty document.

        Raises:
            FormatError: If the text is not JSON or does not match the schema.
        """
        try:
            parsed = orjson.loads(text)
        except orjson.JSONDecodeError as err:
            raise FormatError(f"Cache document is not valid JSON: {err}") from err
        if parsed is None:
            return cls()
        try:
            return cls.model_validate(parsed)
        except ValidationError as err:
            raise FormatError(
                f"Cache document has an invalid shape: {err.error_count()} error(s)"
            ) from err
