"""Query operations for the durable store.

Point reads and session-start preloading.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Any

from tiercache.core.naming import preload_glob, split_name
from tiercache.core.statistics import elapsed_ms
from tiercache.services.sqlite_cache.operations.base import BaseOperation
from tiercache.shared.constants import StoreFormat
from tiercache.shared.errors import CacheSerializationError, wrap_sqlite_error

if TYPE_CHECKING:
    from tiercache.config.models.cache_settings import PreloadPattern

logger = logging.getLogger(__name__)


class QueryOperations(BaseOperation):
    """Query operations for cache retrieval."""

    def get(self, name: str) -> tuple[bool, Any]:
        """Read one live row.

        Rows whose ``expires`` is before the session's ``now`` are invisible
        even if cleanup has not removed them yet. A blob the codec cannot
        decode counts as a miss.

        Args:
            name: Canonical name

        Returns:
            ``(found, value)``
        """
        self._validate_connection()
        start = time.perf_counter()

        row = self.statements.getone.execute({"name": name}).fetchone()
        self.statistics.record_select(name, elapsed_ms(start))

        if row is None:
            return False, None

        try:
            return True, self.codec.decode(row[0])
        except CacheSerializationError as e:
            logger.warning("Failed to decode cached value for %s: %s", name[:50], e.message)
            return False, None

    def preload(self, patterns: Iterable[PreloadPattern]) -> Iterator[tuple[str, str, Any]]:
        """Yield ``(group, key, value)`` for live rows matching any pattern.

        Rows in the reserved group and rows that fail to decode are skipped.
        """
        self._validate_connection()
        globs = [preload_glob(p.group, p.key) for p in patterns]
        if not globs:
            return

        clauses = " UNION ALL ".join(
            f"SELECT name, value FROM {self.table_name} "
            f"WHERE name GLOB :p{i} AND expires >= :now"
            for i in range(len(globs))
        )
        params: dict[str, Any] = {f"p{i}": glob for i, glob in enumerate(globs)}
        params["now"] = self.statements.now

        try:
            rows = self.conn.execute(clauses, params).fetchall()
        except sqlite3.Error as e:
            raise wrap_sqlite_error(e, "preload") from e

        for name, blob in rows:
            group, key = split_name(name)
            if group == StoreFormat.RESERVED_GROUP:
                continue
            try:
                value = self.codec.decode(blob)
            except CacheSerializationError as e:
                logger.warning("Skipping undecodable preload row %s: %s", name[:50], e.message)
                continue
            yield group, key, value
