"""Shared fixtures for the cache tests."""
import pytest

from neutron_cache.persistent import PersistentCache
from neutron_cache.vault.protector import AesGcmProtector


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def protector():
    """Protector with fixed host entropy (machine m1, user alice)."""
    return AesGcmProtector(app_name="NeutronDrive", machine_id="m1", username="alice")


@pytest.fixture
def cache_path(tmp_path):
    return tmp_path / "NeutronDrive" / "cache.json"


@pytest.fixture
def persistent(cache_path, protector):
    """A PersistentCache over a fresh file."""
    return PersistentCache(cache_path, protector=protector)
