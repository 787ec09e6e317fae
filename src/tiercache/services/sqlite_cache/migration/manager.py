"""Schema manager for the durable store.

Creates the cache table, its expiry index and the "created" marker row,
all inside one transaction.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING

from tiercache.shared.constants import StoreFormat
from tiercache.shared.errors import (
    ErrorCode,
    SchemaError,
    TierCacheError,
    wrap_sqlite_error,
)

if TYPE_CHECKING:
    from tiercache.services.sqlite_cache.transaction.manager import TransactionManager

logger = logging.getLogger(__name__)


class SchemaManager:
    """Database schema manager."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        transactions: TransactionManager,
        table_name: str = StoreFormat.DEFAULT_TABLE,
    ) -> None:
        """Initialize schema manager.

        Args:
            conn: SQLite database connection
            transactions: Transaction manager bound to the same connection
            table_name: Cache table name
        """
        self.conn = conn
        self.transactions = transactions
        self.table_name = table_name

    def table_exists(self) -> bool:
        """Return True if the cache table exists."""
        cursor = self.conn.execute(
            "SELECT COUNT(*) FROM sqlite_master WHERE type='table' AND tbl_name = ?",
            (self.table_name,),
        )
        return cursor.fetchone()[0] > 0

    def ensure_schema(self, now: int, noexpire_offset: int) -> bool:
        """Create the cache table if it does not exist.

        An existing table is detected without taking the write lock; the
        IMMEDIATE transaction is only entered (and the check repeated) when
        DDL is needed. The table has no rowid since ``name`` is already the
        key; the index on ``expires`` keeps range deletes cheap.

        Args:
            now: Current epoch seconds
            noexpire_offset: Offset used for non-expiring rows

        Returns:
            True if the table was created by this call

        Raises:
            SchemaError: If the DDL fails (nothing is left behind)
            StoreUnavailableError: If another process holds the lock too long
        """
        tbl = self.table_name
        created = False
        try:
            if self.table_exists():
                return False
            with self.transactions.transaction("ensure_schema"):
                if not self.table_exists():
                    self.conn.execute(
                        f"""
                        CREATE TABLE IF NOT EXISTS {tbl} (
                           name TEXT NOT NULL COLLATE BINARY PRIMARY KEY,
                           value BLOB,
                           expires INT
                        ) WITHOUT ROWID"""
                    )
                    self.conn.execute(
                        f"CREATE INDEX IF NOT EXISTS {tbl}_expires ON {tbl} (expires)"
                    )
                    self.conn.execute(
                        f"INSERT INTO {tbl} (name, value, expires) VALUES (?, ?, ?)",
                        (
                            StoreFormat.CREATED_MARKER,
                            str(now).encode("ascii"),
                            now + noexpire_offset,
                        ),
                    )
                    created = True
        except sqlite3.Error as e:
            raise wrap_sqlite_error(
                e,
                "ensure_schema",
                default=SchemaError,
                code=ErrorCode.SCHEMA_ERROR,
                additional_data={"table": tbl},
            ) from e
        except TierCacheError as e:
            if e.code is ErrorCode.TRANSACTION_FAILED:
                raise SchemaError(
                    ErrorCode.SCHEMA_ERROR,
                    f"Could not create cache schema: {e.message}",
                    e.context,
                    e.original_error,
                ) from e
            raise

        if created:
            logger.info("Created cache table %s", tbl)
        return created

    def validate_schema(self) -> bool:
        """Return True if the table and its expiry index are present."""
        try:
            cursor = self.conn.execute(
                "SELECT name FROM sqlite_master WHERE type='index' AND tbl_name = ? AND name = ?",
                (self.table_name, f"{self.table_name}_expires"),
            )
            return self.table_exists() and cursor.fetchone() is not None
        except sqlite3.Error:
            logger.exception("Schema validation failed")
            return False
