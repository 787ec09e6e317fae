"""
Pytest configuration and shared fixtures for tiercache tests.

Stores are opened in ``tmp_path`` with a fixed clock so expiry can be
tested without sleeping.
"""

from __future__ import annotations

import sqlite3
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from tiercache.config.models.settings import TierCacheSettings
from tiercache.core.maintenance import MaintenancePolicy
from tiercache.services.object_cache import ObjectCache, open_cache
from tiercache.services.sqlite_cache.store import DurableStore

FIXED_NOW = 1_700_000_000


class FakeClock:
    """Settable epoch-seconds clock."""

    def __init__(self, now: float = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def settings(cache_dir: Path) -> TierCacheSettings:
    """Settings pointing at ``cache_dir`` with maintenance disabled."""
    return TierCacheSettings(
        store={"directory": cache_dir},
        maintenance={"enabled": False},
    )


@pytest.fixture
def store(cache_dir: Path, clock: FakeClock) -> Generator[DurableStore, None, None]:
    store = DurableStore.open(cache_dir, clock=clock)
    yield store
    store.close()


@pytest.fixture
def make_cache(
    settings: TierCacheSettings, clock: FakeClock
) -> Generator[Callable[..., ObjectCache], None, None]:
    """Open cache sessions that are closed after the test if still open."""
    opened: list[ObjectCache] = []

    def _make(**kwargs: object) -> ObjectCache:
        kwargs.setdefault("settings", settings)
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("maintenance_policy", MaintenancePolicy.never())
        cache = open_cache(**kwargs)  # type: ignore[arg-type]
        opened.append(cache)
        return cache

    yield _make

    for cache in opened:
        if not cache.closed:
            cache.close()


@pytest.fixture
def db_path(cache_dir: Path) -> Path:
    return cache_dir / "tiercache.db"


@pytest.fixture
def read_rows(db_path: Path) -> Callable[[], dict[str, int]]:
    """Return a reader of ``name -> expires`` for every row.

    Reads over a separate connection, as another process would.
    """

    def _read() -> dict[str, int]:
        conn = sqlite3.connect(str(db_path))
        try:
            return dict(conn.execute("SELECT name, expires FROM object_cache").fetchall())
        finally:
            conn.close()

    return _read
