"""
PersistentCache — One encrypted file holding the session and the secrets.

Provides the persistence layer shared by the session and secrets caches:
- ``load()`` — read, decrypt (or migrate legacy plaintext) and parse the file
- ``save()`` — encrypt and rewrite the whole file, or delete it when empty
- ``clear()`` — drop in-memory state and delete the file

Failures never propagate to the host: the in-memory state stays
authoritative and the error is logged. Writes are a single full rewrite
(not crash-atomic); a truncated file loads as an empty cache.

Note:
    Only one process should use a given cache file at a time. Concurrent
    processes are not coordinated and may overwrite each other's file.
"""
import logging
import threading
from pathlib import Path
from typing import Optional, Union

from .data import PersistentCacheData, SecretsEntry, SessionRecord
from .exceptions import CryptoError
from .vault.protector import APP_NAME, BlobProtector, default_protector

logger = logging.getLogger("neutron.cache")


class PersistentCache:
    """Encrypted single-file store for ``{session, secrets}``.

    The file is loaded on construction. Use as a context manager to
    guarantee a final :meth:`save`.

    Args:
        path: Cache file location.
        protector: Blob protector; defaults to the platform protector.
        app_name: Application name used by the default protector.
    """

    def __init__(
        self,
        path: Union[str, Path],
        protector: Optional[BlobProtector] = None,
        app_name: str = APP_NAME,
    ):
        self._path = Path(path)
        self._protector = protector or default_protector(app_name)
        self._lock = threading.Lock()
        self._data = PersistentCacheData()
        self.load()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------

    @property
    def session(self) -> Optional[SessionRecord]:
        with self._lock:
            return self._data.session

    @session.setter
    def session(self, value: Optional[SessionRecord]) -> None:
        with self._lock:
            self._data.session = value

    @property
    def secrets_entries(self) -> dict[str, SecretsEntry]:
        """Copy of the persisted secrets map (canonical key → entry)."""
        with self._lock:
            return dict(self._data.secrets)

    def set_secrets_entries(self, entries: dict[str, SecretsEntry]) -> None:
        """Replace the secrets map written by the next :meth:`save`."""
        with self._lock:
            self._data.secrets = dict(entries)

    @property
    def is_empty(self) -> bool:
        with self._lock:
            return self._data.is_empty

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _read_document(self) -> Optional[str]:
        raw = self._path.read_bytes()
        if not raw:
            return None
        try:
            plaintext = self._protector.decrypt(raw)
        except CryptoError:
            plaintext = raw
            logger.warning(
                "Cache file at %s is unencrypted, migrating to encrypted format.",
                self._path,
            )
        text = plaintext.decode("utf-8")
        return text if text.strip() else None

    def load(self) -> None:
        """Replace in-memory state with the file contents.

        A missing, empty or unreadable file leaves the cache empty.
        """
        with self._lock:
            self._data = PersistentCacheData()
            try:
                if not self._path.exists():
                    logger.info(
                        "Cache file not found at %s, starting with an empty cache.",
                        self._path,
                    )
                    return
                text = self._read_document()
                if text is None:
                    logger.warning("Cache file at %s is empty.", self._path)
                    return
                self._data = PersistentCacheData.from_json(text)
                logger.info("Cache loaded from %s", self._path)
            except Exception as err:
                logger.error(
                    "Failed to load cache from %s: %s", self._path, err, exc_info=True
                )

    def save(self) -> None:
        """Write the whole document, or delete the file when nothing is left."""
        with self._lock:
            try:
                if self._data.is_empty:
                    logger.info("Cache is empty, nothing to persist.")
                    self._path.unlink(missing_ok=True)
                    return
                blob = self._protector.encrypt(self._data.to_json())
                self._path.parent.mkdir(parents=True, exist_ok=True)
                self._path.write_bytes(blob)
                self._protector.harden(self._path)
                logger.info("Cache persisted to %s", self._path)
            except Exception as err:
                logger.error(
                    "Failed to persist cache to %s: %s", self._path, err, exc_info=True
                )

    def clear(self) -> None:
        """Forget everything and delete the cache file."""
        with self._lock:
            self._data = PersistentCacheData()
            try:
                self._path.unlink(missing_ok=True)
            except OSError as err:
                logger.error("Failed to delete cache file %s: %s", self._path, err)
                return
            logger.info("Cache cleared.")

    def __enter__(self) -> "PersistentCache":
        return self

    def __exit__(self, *exc_info) -> None:
        self.save()

    def __repr__(self) -> str:
        return f"<PersistentCache path={str(self._path)!r}>"
