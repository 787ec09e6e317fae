"""Update operations for the durable store.

Single-row and group deletes, full flushes and expiry cleanup.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from typing import Any

from tiercache.core.maintenance import CleanupResult
from tiercache.core.naming import group_like_pattern
from tiercache.core.statistics import elapsed_ms
from tiercache.services.sqlite_cache.operations.base import BaseOperation
from tiercache.shared.constants import StoreFormat
from tiercache.shared.errors import wrap_sqlite_error

logger = logging.getLogger(__name__)


class UpdateOperations(BaseOperation):
    """Update/delete operations for cache management."""

    def __init__(self, *args: Any, noexpire_offset: int, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.noexpire_offset = noexpire_offset

    def delete(self, name: str) -> bool:
        """Delete one row by exact name.

        Returns:
            True if a row was deleted
        """
        self._validate_connection()
        start = time.perf_counter()

        cursor = self.statements.deleteone.execute({"name": name})

        self.statistics.record_delete(elapsed_ms(start))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.debug("Cache deleted: name=%s", name[:50])
        return deleted

    def delete_group(self, group: str) -> int:
        """Delete every row whose name starts with ``group|``.

        Returns:
            Number of deleted rows
        """
        self._validate_connection()
        cursor = self.statements.deletegroup.execute({"pattern": group_like_pattern(group)})
        deleted_count = cursor.rowcount
        logger.debug("Flushed group %s (%d rows)", group, deleted_count)
        return deleted_count

    def delete_all(self, *, keep_samples: bool = False) -> int:
        """Delete every row except the created marker.

        Args:
            keep_samples: Also keep the monitoring samples

        Returns:
            Number of deleted rows
        """
        self._validate_connection()
        if keep_samples:
            sql = f"DELETE FROM {self.table_name} WHERE name NOT LIKE :pattern ESCAPE :escape"
            params: dict[str, Any] = {
                "pattern": group_like_pattern(StoreFormat.RESERVED_GROUP),
                "escape": StoreFormat.LIKE_ESCAPE,
            }
        else:
            sql = f"DELETE FROM {self.table_name} WHERE name <> :marker"
            params = {"marker": StoreFormat.CREATED_MARKER}

        try:
            cursor = self.conn.execute(sql, params)
        except sqlite3.Error as e:
            raise wrap_sqlite_error(e, "delete_all") from e

        logger.info("Cleared %d cache rows", cursor.rowcount)
        return cursor.rowcount

    def cleanup(self, now: int, retention_seconds: int) -> CleanupResult:
        """Two-pass expiry purge; the caller provides the transaction.

        Pass one removes rows whose ``expires`` has passed. Pass two removes
        non-expiring rows written more than ``retention_seconds`` ago: such a
        row has ``expires = written_at + offset``, so it is over age when
        ``expires`` lies between ``offset`` and ``offset + now - retention``.
        The created marker is exempt.
        """
        self._validate_connection()
        offset = self.noexpire_offset
        try:
            expired = self.conn.execute(
                f"DELETE FROM {self.table_name} WHERE expires <= :now",
                {"now": now},
            ).rowcount
            stale = self.conn.execute(
                f"DELETE FROM {self.table_name} "
                "WHERE expires BETWEEN :offset AND :end AND name <> :marker",
                {
                    "offset": offset,
                    "end": now + offset - retention_seconds,
                    "marker": StoreFormat.CREATED_MARKER,
                },
            ).rowcount
        except sqlite3.Error as e:
            raise wrap_sqlite_error(e, "cleanup") from e

        return CleanupResult(expired=expired, stale=stale)
