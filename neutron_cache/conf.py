"""
Cache Configuration — Cache file location and validated settings.

Reads overrides from environment variables:
    NEUTRON_CACHE_PATH = <path to the cache file>
    NEUTRON_APP_NAME = <application name, default "NeutronDrive">
    NEUTRON_CACHE_DEFAULT_TTL = <seconds, unset means secrets never expire>

Without ``NEUTRON_CACHE_PATH`` the file lives at
``<data dir>/<app name>/cache.json`` where the data dir is ``$XDG_DATA_HOME``
or the platform's local application-data directory.
"""
import os
import sys
import logging
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .vault.protector import APP_NAME

logger = logging.getLogger("neutron.cache")

CACHE_FILE_NAME = "cache.json"


def _local_app_data() -> Path:
    if sys.platform == "win32":
        local = os.environ.get("LOCALAPPDATA")
        if local:
            return Path(local)
        return Path.home() / "AppData" / "Local"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support"
    return Path.home() / ".local" / "share"


def default_data_dir(app_name: str = APP_NAME) -> Path:
    """Return (and create) the application data directory.

    Raises:
        FileExistsError: If a regular file already occupies the path.
    """
    base = os.environ.get("XDG_DATA_HOME")
    root = Path(base) if base else _local_app_data()
    data_dir = root / app_name
    if data_dir.is_file():
        raise FileExistsError(
            f"Cannot create data directory: a file already exists at '{data_dir}'"
        )
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def default_cache_path(app_name: str = APP_NAME) -> Path:
    """Return the default cache file path for app_name."""
    return default_data_dir(app_name) / CACHE_FILE_NAME


class CacheConfig(BaseModel):
    """Validated cache configuration."""

    path: Path
    app_name: str = Field(default=APP_NAME, min_length=1)
    default_ttl: Optional[float] = Field(default=None, gt=0)

    @field_validator("app_name")
    @classmethod
    def validate_app_name(cls, v: str) -> str:
        """The app name is one field of the key entropy; '|' would blur it."""
        if "|" in v:
            raise ValueError(f"app_name cannot contain '|': {v!r}")
        return v

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Create CacheConfig by loading values from environment.

        Returns:
            Populated CacheConfig instance.
        """
        app_name = os.environ.get("NEUTRON_APP_NAME", APP_NAME)
        raw_path = os.environ.get("NEUTRON_CACHE_PATH")
        path = Path(raw_path).expanduser() if raw_path else default_cache_path(app_name)
        raw_ttl = os.environ.get("NEUTRON_CACHE_DEFAULT_TTL")
        default_ttl = float(raw_ttl) if raw_ttl else None
        logger.debug("Cache path resolved to %s", path)
        return cls(path=path, app_name=app_name, default_ttl=default_ttl)
