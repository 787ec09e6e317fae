"""Base operation class for durable store operations.

This module provides shared functionality for all store operations.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tiercache.shared.errors import ErrorCode, ErrorContext, InfrastructureError

if TYPE_CHECKING:
    import sqlite3

    from tiercache.core.statistics import CacheStatistics
    from tiercache.services.sqlite_cache.codec import ValueCodec
    from tiercache.services.sqlite_cache.statements import StatementSet

logger = logging.getLogger(__name__)


class BaseOperation:
    """Base class for store operations with shared functionality."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        statements: StatementSet,
        codec: ValueCodec,
        statistics: CacheStatistics,
        table_name: str,
    ) -> None:
        """Initialize base operation.

        Args:
            conn: SQLite database connection
            statements: Statements prepared for this session
            codec: Value codec
            statistics: Session instrumentation
            table_name: Cache table name
        """
        self.conn = conn
        self.statements = statements
        self.codec = codec
        self.statistics = statistics
        self.table_name = table_name

    def _validate_connection(self) -> None:
        """Validate database connection is available.

        Raises:
            InfrastructureError: If connection is not initialized
        """
        if self.conn is None:
            raise InfrastructureError(
                ErrorCode.STORE_CLOSED,
                "Database connection not initialized",
                ErrorContext(operation=type(self).__name__),
            )
