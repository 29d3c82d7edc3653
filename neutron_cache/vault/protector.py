"""
Blob Protectors — Platform-selected encryption of the cache file.

Two variants share one contract (``encrypt``, ``decrypt``, ``harden``):

- :class:`AesGcmProtector`: AES-256-GCM with a key derived from machine and
  user identity; the file is restricted to mode 0600. Used on Linux/macOS.
- :class:`DpapiProtector`: Windows DPAPI, scoped to the current user by the
  OS; no key derivation and no permission change needed.

:func:`default_protector` picks the variant once; callers never branch on
the platform themselves.
"""
import os
import sys
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Union

from ..exceptions import CryptoError
from .crypto import DERIVATION_SALT, build_entropy, seal, unseal
from .entropy import get_machine_id, get_username

logger = logging.getLogger("neutron.cache")

APP_NAME = "NeutronDrive"

OWNER_READ_WRITE = 0o600


class BlobProtector(ABC):
    """Encrypts and decrypts whole blobs for storage at rest."""

    @abstractmethod
    def encrypt(self, plaintext: bytes) -> bytes:
        """Return the protected form of plaintext."""

    @abstractmethod
    def decrypt(self, blob: bytes) -> bytes:
        """Return the plaintext of a protected blob.

        Raises:
            CryptoError: If the blob cannot be authenticated or is truncated.
        """

    def harden(self, path: Union[str, Path]) -> None:
        """Restrict a written file to its owner. No-op by default."""


class AesGcmProtector(BlobProtector):
    """AES-256-GCM protector keyed from ``"<app>|<machine-id>|<user>"``.

    Args:
        app_name: Application name mixed into the key.
        machine_id: Override for the detected machine id.
        username: Override for the current OS user name.
    """

    def __init__(
        self,
        app_name: str = APP_NAME,
        machine_id: Optional[str] = None,
        username: Optional[str] = None,
    ):
        self._app_name = app_name
        self._machine_id = machine_id if machine_id is not None else get_machine_id()
        self._username = username if username is not None else get_username()

    def _entropy(self) -> bytes:
        return build_entropy(self._app_name, self._machine_id, self._username)

    def encrypt(self, plaintext: bytes) -> bytes:
        return seal(plaintext, self._entropy())

    def decrypt(self, blob: bytes) -> bytes:
        return unseal(blob, self._entropy())

    def harden(self, path: Union[str, Path]) -> None:
        """chmod 600 when the file exists."""
        path = Path(path)
        if not path.exists():
            return
        os.chmod(path, OWNER_READ_WRITE)

    def __repr__(self) -> str:
        return f"<AesGcmProtector app={self._app_name!r} user={self._username!r}>"


class DpapiProtector(BlobProtector):
    """Windows DPAPI protector (``CryptProtectData``, current-user scope)."""

    def __init__(self, app_name: str = APP_NAME):
        import win32crypt  # pylint: disable=import-outside-toplevel,import-error
        self._api = win32crypt
        self._description = app_name

    def encrypt(self, plaintext: bytes) -> bytes:
        try:
            return self._api.CryptProtectData(
                plaintext, self._description, DERIVATION_SALT, None, None, 0,
            )
        except Exception as err:  # pywintypes.error
            raise CryptoError(f"DPAPI protect failed: {err}") from err

    def decrypt(self, blob: bytes) -> bytes:
        try:
            _, plaintext = self._api.CryptUnprotectData(
                blob, DERIVATION_SALT, None, None, 0,
            )
        except Exception as err:  # pywintypes.error
            raise CryptoError(f"DPAPI unprotect failed: {err}") from err
        return plaintext

    def __repr__(self) -> str:
        return "<DpapiProtector>"


def default_protector(app_name: str = APP_NAME) -> BlobProtector:
    """Select the protector for the running platform."""
    if sys.platform == "win32":
        logger.debug("Using DPAPI cache protection")
        return DpapiProtector(app_name)
    logger.debug("Using AES-GCM cache protection")
    return AesGcmProtector(app_name)
