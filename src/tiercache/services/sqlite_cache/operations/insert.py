"""Insert operations for the durable store.

Upserts replayed from the write batcher and insert-if-absent samples.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

from tiercache.core.statistics import elapsed_ms
from tiercache.services.sqlite_cache.operations.base import BaseOperation

if TYPE_CHECKING:
    from tiercache.core.batcher import Put

logger = logging.getLogger(__name__)


class InsertOperations(BaseOperation):
    """Insert operations for cache storage."""

    def __init__(self, *args: Any, noexpire_offset: int, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.noexpire_offset = noexpire_offset

    def put(self, op: Put) -> None:
        """Insert or update one row.

        ``expires_offset`` 0 stores the row as non-expiring
        (``now + noexpire_offset``); anything else expires
        ``expires_offset`` seconds after the session's ``now``.

        Raises:
            CacheSerializationError: If the value cannot be encoded
            InfrastructureError: If the statement fails
        """
        self._validate_connection()
        start = time.perf_counter()
        name = op.name
        offset = op.expires_offset if op.expires_offset > 0 else self.noexpire_offset

        self.statements.putone.execute(
            {"name": name, "value": self.codec.encode(op.value), "expires": offset}
        )

        self.statistics.record_insert(name, elapsed_ms(start))
        logger.debug("Cache stored: name=%s, expires_offset=%d", name[:50], offset)

    def add_sample(self, name: str, record: dict[str, Any], expires: int) -> bool:
        """Insert a sample row unless its bucket already has one.

        Returns:
            True if a row was inserted
        """
        self._validate_connection()
        cursor = self.statements.addone.execute(
            {"name": name, "value": self.codec.encode(record), "expires": expires}
        )
        return cursor.rowcount > 0
