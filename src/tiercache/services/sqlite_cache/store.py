"""Durable store facade.

This module ties the schema, transaction and statement layers together
over one SQLite connection, using modular operations the same way for
reads, writes and maintenance.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Callable, Iterable, Iterator
from contextlib import AbstractContextManager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from tiercache.core.maintenance import CleanupResult
from tiercache.core.statistics import CacheStatistics, elapsed_ms
from tiercache.security.permissions import (
    ensure_writable_directory,
    set_secure_file_permissions,
)
from tiercache.services.sqlite_cache.codec import PickleCodec, ValueCodec
from tiercache.services.sqlite_cache.migration.manager import SchemaManager
from tiercache.services.sqlite_cache.operations.insert import InsertOperations
from tiercache.services.sqlite_cache.operations.query import QueryOperations
from tiercache.services.sqlite_cache.operations.update import UpdateOperations
from tiercache.services.sqlite_cache.statements import Statement, StatementSet
from tiercache.services.sqlite_cache.transaction.manager import TransactionManager
from tiercache.shared.constants import StoreDefaults, StoreFormat
from tiercache.shared.errors import (
    ErrorCode,
    ErrorContext,
    InfrastructureError,
    StoreUnavailableError,
    TierCacheError,
    TransactionError,
    wrap_sqlite_error,
)
from tiercache.shared.logging import log_operation_error, log_operation_success

if TYPE_CHECKING:
    from tiercache.config.models.cache_settings import PreloadPattern, StoreSettings
    from tiercache.core.batcher import Delete, Put

logger = logging.getLogger(__name__)


class DurableStore:
    """SQLite-backed tier 2 of the cache.

    One instance owns one connection for the lifetime of a session. The
    session's ``now`` is read once at open and baked into the prepared
    statements.

    Attributes:
        path: Path to the SQLite database file
        statistics: Session instrumentation shared with the cache facade
        conn: SQLite database connection (None once closed)

    Example:
        >>> store = DurableStore.open(Path("/tmp/cache"))
        >>> store.get_one("default|answer")
        (False, None)
        >>> store.close()
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        path: Path,
        *,
        table_name: str = StoreFormat.DEFAULT_TABLE,
        noexpire_offset: int = StoreFormat.NOEXPIRE_TIMESTAMP_OFFSET,
        codec: ValueCodec | None = None,
        statistics: CacheStatistics | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Wrap an already configured connection.

        Use :meth:`open` instead; it also tunes the engine, creates the
        schema and prepares the statements.
        """
        self.conn: sqlite3.Connection | None = conn
        self.path = path
        self.table_name = table_name
        self.noexpire_offset = noexpire_offset
        self.codec = codec or PickleCodec()
        self.statistics = statistics or CacheStatistics()
        self._clock = clock
        self.now = int(clock())

        self._transactions = TransactionManager(conn)
        self._schema = SchemaManager(conn, self._transactions, table_name)
        self.statements: StatementSet | None = None

    @classmethod
    def open(
        cls,
        directory: Path | str,
        filename: str = StoreFormat.DEFAULT_FILENAME,
        busy_timeout_ms: int = StoreDefaults.BUSY_TIMEOUT_MS,
        *,
        table_name: str = StoreFormat.DEFAULT_TABLE,
        noexpire_offset: int = StoreFormat.NOEXPIRE_TIMESTAMP_OFFSET,
        journal_mode: str = StoreDefaults.JOURNAL_MODE,
        codec: ValueCodec | None = None,
        statistics: CacheStatistics | None = None,
        clock: Callable[[], float] = time.time,
    ) -> DurableStore:
        """Open or create the database file and get it ready for a session.

        Args:
            directory: Directory holding the database file (created if missing)
            filename: Database file name
            busy_timeout_ms: How long to wait for another process's lock
            table_name: Cache table name
            noexpire_offset: Offset added to now for non-expiring rows
            journal_mode: SQLite journal mode
            codec: Value codec (pickle by default)
            statistics: Instrumentation to record into
            clock: Epoch-seconds clock

        Returns:
            A store with schema and statements in place

        Raises:
            StoreUnavailableError: If the directory is not writable, the file
                cannot be opened or another process holds the lock too long
            SchemaError: If the table cannot be created
            PrepareError: If a statement does not compile against the table
        """
        start = time.perf_counter()
        path = ensure_writable_directory(directory) / filename
        context = ErrorContext(
            operation="open_store",
            file_path=str(path),
            additional_data={"busy_timeout_ms": busy_timeout_ms},
        )
        db_is_new = not path.exists()

        try:
            conn = sqlite3.connect(
                str(path),
                timeout=busy_timeout_ms / 1000.0,
                isolation_level=None,  # BEGIN/COMMIT are issued explicitly
            )
        except sqlite3.Error as e:
            error = StoreUnavailableError(
                ErrorCode.STORE_UNAVAILABLE,
                f"Cannot open cache database: {e!s}",
                context,
                e,
            )
            log_operation_error(logger, error, "open_store")
            raise error from e

        store = cls(
            conn,
            path,
            table_name=table_name,
            noexpire_offset=noexpire_offset,
            codec=codec,
            statistics=statistics,
            clock=clock,
        )
        try:
            store._configure(journal_mode)
            store._schema.ensure_schema(store.now, noexpire_offset)
            store._prepare_session()
        except sqlite3.Error as e:
            conn.close()
            error = wrap_sqlite_error(
                e,
                "open_store",
                default=StoreUnavailableError,
                code=ErrorCode.STORE_UNAVAILABLE,
                additional_data={"file_path": str(path)},
            )
            log_operation_error(logger, error, "open_store")
            raise error from e
        except TierCacheError as e:
            conn.close()
            log_operation_error(logger, e, "open_store")
            raise

        if db_is_new:
            try:
                set_secure_file_permissions(path)
            except InfrastructureError as e:
                logger.warning(
                    "Failed to set secure permissions for DB file %s: %s", path, e.message
                )

        store.statistics.open_ms = elapsed_ms(start)
        log_operation_success(
            logger,
            "open_store",
            store.statistics.open_ms,
            context=context,
        )
        return store

    @classmethod
    def from_settings(
        cls,
        settings: StoreSettings,
        *,
        codec: ValueCodec | None = None,
        statistics: CacheStatistics | None = None,
        clock: Callable[[], float] = time.time,
    ) -> DurableStore:
        """Open a store described by a ``StoreSettings`` section."""
        return cls.open(
            settings.directory,
            settings.filename,
            settings.busy_timeout_ms,
            table_name=settings.table_name,
            noexpire_offset=settings.noexpire_offset,
            journal_mode=settings.journal_mode,
            codec=codec,
            statistics=statistics,
            clock=clock,
        )

    def _configure(self, journal_mode: str) -> None:
        """Tune the engine for a cache workload.

        Writes may be lost on power failure; LIKE is byte-exact so group
        patterns never match across case.
        """
        conn = self._require_open("configure")
        conn.execute(f"PRAGMA synchronous = {StoreDefaults.SYNCHRONOUS}")
        conn.execute(f"PRAGMA encoding = '{StoreDefaults.ENCODING}'")
        conn.execute("PRAGMA case_sensitive_like = true")
        conn.execute(f"PRAGMA journal_mode = {journal_mode}")

    def _prepare_session(self) -> None:
        conn = self._require_open("prepare")
        self.statements = StatementSet.build(self, self.table_name, self.now)
        args = (conn, self.statements, self.codec, self.statistics, self.table_name)
        self._query_ops = QueryOperations(*args)
        self._insert_ops = InsertOperations(*args, noexpire_offset=self.noexpire_offset)
        self._update_ops = UpdateOperations(*args, noexpire_offset=self.noexpire_offset)

    def _require_open(self, operation: str) -> sqlite3.Connection:
        if self.conn is None:
            raise InfrastructureError(
                ErrorCode.STORE_CLOSED,
                "Database connection not initialized",
                ErrorContext(operation=operation, file_path=str(self.path)),
            )
        return self.conn

    @property
    def closed(self) -> bool:
        return self.conn is None

    def prepare(self, sql: str, label: str) -> Statement:
        """Compile a parameterized statement for reuse during the session.

        Raises:
            PrepareError: On malformed SQL or a schema mismatch
        """
        statement = Statement(self._require_open("prepare"), sql, label)
        statement.compile()
        return statement

    def with_transaction(self, operation: str = "transaction") -> AbstractContextManager[None]:
        """Scope one write transaction; nested use raises TransactionError."""
        self._require_open(operation)
        return self._transactions.transaction(operation)

    def put_one(self, op: Put) -> None:
        self._require_open("put_one")
        self._insert_ops.put(op)

    def delete_one(self, op: Delete) -> bool:
        self._require_open("delete_one")
        return self._update_ops.delete(op.name)

    def get_one(self, name: str) -> tuple[bool, Any]:
        """Point read of one live row by canonical name."""
        self._require_open("get_one")
        return self._query_ops.get(name)

    def delete_group(self, group: str) -> int:
        """Delete every row of ``group`` right away (autocommit)."""
        self._require_open("delete_group")
        return self._update_ops.delete_group(group)

    def preload_rows(self, patterns: Iterable[PreloadPattern]) -> Iterator[tuple[str, str, Any]]:
        self._require_open("preload")
        return self._query_ops.preload(patterns)

    def add_sample(self, name: str, record: dict[str, Any], expires: int) -> bool:
        self._require_open("add_sample")
        return self._insert_ops.add_sample(name, record, expires)

    def delete_all(self, *, keep_samples: bool = False) -> int:
        self._require_open("delete_all")
        return self._update_ops.delete_all(keep_samples=keep_samples)

    def cleanup(self, retention_seconds: int) -> CleanupResult:
        """Purge expired and over-age rows in one transaction.

        Raises:
            StoreUnavailableError: If the write lock was not granted in time
            TransactionError: If the purge failed (nothing was deleted)
        """
        self._require_open("cleanup")
        start = time.perf_counter()
        now = int(self._clock())
        try:
            with self.with_transaction("cleanup"):
                result = self._update_ops.cleanup(now, retention_seconds)
        except (StoreUnavailableError, TransactionError):
            raise
        except TierCacheError as e:
            raise TransactionError(
                ErrorCode.TRANSACTION_FAILED,
                f"Cleanup rolled back: {e.message}",
                ErrorContext(
                    operation="cleanup",
                    additional_data={"retention_seconds": retention_seconds},
                ),
                original_error=e,
            ) from e

        log_operation_success(
            logger,
            "cleanup",
            elapsed_ms(start),
            result_info={"expired": result.expired, "stale": result.stale},
        )
        return result

    def vacuum(self) -> None:
        """Rebuild the file to reclaim free pages; never inside a transaction."""
        conn = self._require_open("vacuum")
        start = time.perf_counter()
        try:
            conn.execute("VACUUM")
        except sqlite3.Error as e:
            raise wrap_sqlite_error(e, "vacuum") from e
        log_operation_success(logger, "vacuum", elapsed_ms(start))

    def sqlite_version(self) -> str:
        """Version of the SQLite library behind this connection."""
        conn = self._require_open("sqlite_version")
        return conn.execute("SELECT sqlite_version()").fetchone()[0]

    def row_counts(self) -> dict[str, int]:
        """Row totals for operators.

        Returns:
            Dictionary with ``total``, ``expired`` (still physically present)
            and ``samples`` counts
        """
        conn = self._require_open("row_counts")
        tbl = self.table_name
        try:
            total = conn.execute(f"SELECT COUNT(*) FROM {tbl}").fetchone()[0]
            expired = conn.execute(
                f"SELECT COUNT(*) FROM {tbl} WHERE expires < ?", (self.now,)
            ).fetchone()[0]
            samples = conn.execute(
                f"SELECT COUNT(*) FROM {tbl} WHERE name GLOB ?",
                (StoreFormat.SAMPLE_PREFIX + "*",),
            ).fetchone()[0]
        except sqlite3.Error as e:
            raise wrap_sqlite_error(e, "row_counts") from e
        return {"total": total, "expired": expired, "samples": samples}

    @property
    def file_size(self) -> int:
        """Size of the database file in bytes (0 if it does not exist)."""
        try:
            return self.path.stat().st_size
        except FileNotFoundError:
            return 0

    def close(self) -> None:
        """Close database connection."""
        if self.conn is None:
            return
        if self._transactions.active:
            self._transactions.rollback()
        self.conn.close()
        self.conn = None
        logger.debug("Closed cache database: %s", self.path)
