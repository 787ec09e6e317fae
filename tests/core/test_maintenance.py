"""Tests for the two-pass cleanup policy."""

from __future__ import annotations

import sqlite3
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from tiercache.config.models.cache_settings import MaintenanceSettings
from tiercache.core.maintenance import CleanupResult, Maintenance, MaintenancePolicy
from tiercache.services.sqlite_cache.store import DurableStore
from tiercache.shared.constants import BASE_DAY, BASE_WEEK, StoreFormat

OFFSET = StoreFormat.NOEXPIRE_TIMESTAMP_OFFSET


def insert_raw(db_path: Path, name: str, expires: int) -> None:
    """Write a row the way another process would."""
    conn = sqlite3.connect(str(db_path))
    try:
        with conn:
            conn.execute(
                "INSERT INTO object_cache (name, value, expires) VALUES (?, ?, ?)",
                (name, b"", expires),
            )
    finally:
        conn.close()


class TestMaintenancePolicy:
    """Test the probability gate."""

    def test_never_does_not_run(self) -> None:
        assert MaintenancePolicy.never().should_run() is False

    def test_always_runs(self) -> None:
        policy = MaintenancePolicy.always()

        assert all(policy.should_run() for _ in range(20))

    def test_draw_decides(self, mocker: Any) -> None:
        # Given
        rng = mocker.Mock()
        policy = MaintenancePolicy(inverse_probability=1000, rng=rng)

        # When & Then
        rng.randint.return_value = 1
        assert policy.should_run() is True
        rng.randint.return_value = 2
        assert policy.should_run() is False
        rng.randint.assert_called_with(1, 1000)

    def test_rejects_zero_probability(self) -> None:
        with pytest.raises(ValueError, match="inverse_probability"):
            MaintenancePolicy(inverse_probability=0)

    def test_from_settings(self) -> None:
        settings = MaintenanceSettings(
            enabled=False, inverse_probability=10, retention_seconds=60, vacuum=False
        )

        policy = MaintenancePolicy.from_settings(settings)

        assert policy.enabled is False
        assert policy.inverse_probability == 10
        assert policy.retention_seconds == 60
        assert policy.vacuum is False


class TestCleanup:
    """Test expired and over-age row removal."""

    def test_two_pass_cleanup(
        self,
        store: DurableStore,
        db_path: Path,
        clock: Any,
        read_rows: Callable[[], dict[str, int]],
    ) -> None:
        # Given
        now = int(clock.now)
        insert_raw(db_path, "default|expired", now - 1)
        insert_raw(db_path, "default|ttl", now + 100)
        insert_raw(db_path, "default|old_forever", now - 8 * BASE_DAY + OFFSET)
        insert_raw(db_path, "default|young_forever", now - BASE_DAY + OFFSET)

        # When
        result = store.cleanup(BASE_WEEK)

        # Then
        assert result == CleanupResult(expired=1, stale=1)
        assert set(read_rows()) == {
            StoreFormat.CREATED_MARKER,
            "default|ttl",
            "default|young_forever",
        }

    def test_created_marker_survives_retention(
        self, store: DurableStore, clock: Any, read_rows: Callable[[], dict[str, int]]
    ) -> None:
        # Given - the marker is older than the retention window
        clock.advance(30 * BASE_DAY)

        # When
        result = store.cleanup(BASE_WEEK)

        # Then
        assert result.removed == 0
        assert StoreFormat.CREATED_MARKER in read_rows()

    def test_expired_row_is_invisible_before_cleanup(
        self, store: DurableStore, db_path: Path, clock: Any,
        read_rows: Callable[[], dict[str, int]],
    ) -> None:
        insert_raw(db_path, "default|stale", int(clock.now) - 1)

        assert store.get_one("default|stale") == (False, None)
        assert "default|stale" in read_rows()


class TestMaintenance:
    """Test the maintenance runner."""

    def test_maybe_clean_up_skips_when_not_drawn(self, mocker: Any) -> None:
        target = mocker.Mock()

        result = Maintenance(MaintenancePolicy.never()).maybe_clean_up(target)

        assert result is None
        target.cleanup.assert_not_called()

    def test_maybe_clean_up_runs_and_vacuums(self, mocker: Any) -> None:
        # Given
        target = mocker.Mock()
        target.cleanup.return_value = CleanupResult(expired=3, stale=1)
        policy = MaintenancePolicy.always(retention_seconds=60, vacuum=True)

        # When
        result = Maintenance(policy).maybe_clean_up(target)

        # Then
        assert result == CleanupResult(expired=3, stale=1, vacuumed=True)
        target.cleanup.assert_called_once_with(60)
        target.vacuum.assert_called_once_with()

    def test_clean_up_on_real_store(
        self, store: DurableStore, read_rows: Callable[[], dict[str, int]]
    ) -> None:
        result = Maintenance(MaintenancePolicy.never()).clean_up(store, 0, vacuum=True)

        assert result.vacuumed is True
        assert StoreFormat.CREATED_MARKER in read_rows()
