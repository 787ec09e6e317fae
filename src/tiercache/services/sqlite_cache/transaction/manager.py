"""Transaction manager for the durable store.

One transaction at a time; commit on success, rollback on any exception.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Generator
from contextlib import contextmanager

from tiercache.shared.errors import (
    ErrorCode,
    ErrorContext,
    TransactionError,
    wrap_sqlite_error,
)

logger = logging.getLogger(__name__)


class TransactionManager:
    """Transaction management for cache operations.

    The connection must be in autocommit mode (``isolation_level=None``) so
    that BEGIN/COMMIT/ROLLBACK issued here are the only transaction
    boundaries.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialize transaction manager.

        Args:
            conn: SQLite database connection
        """
        self.conn = conn
        self._active = False

    @property
    def active(self) -> bool:
        """True while a transaction opened here is in progress."""
        return self._active

    def begin(self, operation: str = "transaction") -> None:
        """Begin a write transaction.

        IMMEDIATE takes the write lock up front, so contention with another
        process is resolved by the busy timeout here rather than failing
        halfway through the batch.

        Raises:
            TransactionError: If a transaction is already active
            StoreUnavailableError: If the lock could not be acquired in time
        """
        if self._active:
            raise TransactionError(
                ErrorCode.NESTED_TRANSACTION,
                "A transaction is already active on this store",
                ErrorContext(operation=operation),
            )
        try:
            self.conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error as e:
            raise wrap_sqlite_error(
                e, f"{operation}:begin", default=TransactionError, code=ErrorCode.TRANSACTION_FAILED
            ) from e
        self._active = True

    def commit(self, operation: str = "transaction") -> None:
        """Commit the current transaction."""
        try:
            self.conn.execute("COMMIT")
        except sqlite3.Error as e:
            raise wrap_sqlite_error(
                e, f"{operation}:commit", default=TransactionError, code=ErrorCode.TRANSACTION_FAILED
            ) from e
        finally:
            if not self.conn.in_transaction:
                self._active = False

    def rollback(self) -> None:
        """Rollback the current transaction.

        Failures are logged and not raised so they never mask the error
        that caused the rollback.
        """
        try:
            if self.conn.in_transaction:
                self.conn.execute("ROLLBACK")
        except sqlite3.Error:
            logger.exception("Rollback failed")
        finally:
            self._active = False

    @contextmanager
    def transaction(self, operation: str = "transaction") -> Generator[None, None, None]:
        """Context manager for transactions.

        Automatically commits on success or rolls back on exception.

        Example:
            >>> with transaction_manager.transaction("flush"):
            ...     statements.putone.execute(params)
            ...     statements.deleteone.execute(params)
        """
        self.begin(operation)
        try:
            yield
        except BaseException:
            self.rollback()
            raise
        try:
            self.commit(operation)
        except BaseException:
            self.rollback()
            raise
