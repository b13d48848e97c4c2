from datetime import datetime, timedelta, timezone

import pytest

from fluentia.application.reconciler import SyncReconciler
from fluentia.infrastructure.adapters.kv_store import MemoryKeyValueStore
from fluentia.infrastructure.adapters.memory_remote import MemoryProgressStore
from fluentia.infrastructure.cache import LocalProgressCache

T0 = datetime(2024, 3, 10, 9, 30, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock for deterministic timestamps."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def tick(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs) if kwargs else timedelta(milliseconds=1)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def cache(kv):
    return LocalProgressCache(kv)


@pytest.fixture
def remote():
    return MemoryProgressStore()


@pytest.fixture
def reconciler(cache, remote, clock):
    return SyncReconciler(cache=cache, remote=remote, clock=clock)


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Isolate config and storage from the real home directory
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "FLUENTIA_USER_ID",
        "FLUENTIA_REMOTE_BACKEND",
        "FLUENTIA_CACHE_FILE",
        "FLUENTIA_DATA_DIR",
        "FLUENTIA_SUPABASE_URL",
        "FLUENTIA_SUPABASE_KEY",
    ):
        monkeypatch.delenv(var, raising=False)
    return home
