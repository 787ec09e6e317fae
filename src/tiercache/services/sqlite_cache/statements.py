"""Prepared statements for the durable store.

sqlite3 compiles each distinct SQL string once and keeps it in the
connection's statement cache, so a ``Statement`` only has to hold the SQL
text. Compilation is checked up front with ``EXPLAIN`` so a malformed
statement or a schema mismatch fails at open time, not mid-session.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from dataclasses import dataclass
from typing import Any

from tiercache.shared.constants import StoreFormat
from tiercache.shared.errors import (
    ErrorCode,
    ErrorContext,
    PrepareError,
    wrap_sqlite_error,
)

logger = logging.getLogger(__name__)

_NAMED_PARAM = re.compile(r"(?<!:):([A-Za-z_][A-Za-z0-9_]*)")


class Statement:
    """A parameterized statement bound to one connection."""

    def __init__(self, conn: sqlite3.Connection, sql: str, label: str) -> None:
        self.conn = conn
        self.sql = sql
        self.label = label
        self.params = tuple(dict.fromkeys(_NAMED_PARAM.findall(sql)))

    def compile(self) -> None:
        """Check that the statement compiles against the current schema.

        Raises:
            PrepareError: On malformed SQL or a missing table/column
        """
        try:
            self.conn.execute(f"EXPLAIN {self.sql}", dict.fromkeys(self.params)).fetchall()
        except sqlite3.Error as e:
            raise PrepareError(
                ErrorCode.PREPARE_FAILED,
                f"Cannot prepare {self.label}: {e!s}",
                ErrorContext(operation="prepare", additional_data={"statement": self.label}),
                original_error=e,
            ) from e

    def execute(self, params: dict[str, Any] | None = None) -> sqlite3.Cursor:
        """Run the statement.

        Raises:
            StoreUnavailableError: If another process holds the lock too long
            InfrastructureError: On any other engine failure
        """
        try:
            return self.conn.execute(self.sql, params or {})
        except sqlite3.Error as e:
            raise wrap_sqlite_error(
                e,
                self.label,
                additional_data={"statement": self.label},
            ) from e

    def __repr__(self) -> str:
        return f"Statement({self.label!r})"


@dataclass(frozen=True)
class StatementSet:
    """The statements a session reuses for its whole lifetime.

    ``now`` is fixed when the set is built: upserts compute
    ``expires = now + :expires`` and reads hide rows with ``expires < now``.
    """

    now: int
    putone: Statement
    addone: Statement
    getone: Statement
    deleteone: Statement
    deletegroup: Statement

    @classmethod
    def build(cls, store: Any, table_name: str, now: int) -> StatementSet:
        """Prepare every statement through ``store.prepare``."""
        escape = StoreFormat.LIKE_ESCAPE
        return cls(
            now=now,
            putone=store.prepare(
                f"""
                INSERT INTO {table_name} (name, value, expires)
                VALUES (:name, :value, {now} + :expires)
                ON CONFLICT(name)
                DO UPDATE SET value=excluded.value, expires=excluded.expires""",
                "putone",
            ),
            addone=store.prepare(
                f"""
                INSERT INTO {table_name} (name, value, expires)
                VALUES (:name, :value, :expires)
                ON CONFLICT(name) DO NOTHING""",
                "addone",
            ),
            getone=store.prepare(
                f"SELECT value FROM {table_name} WHERE name = :name AND expires >= {now}",
                "getone",
            ),
            deleteone=store.prepare(
                f"DELETE FROM {table_name} WHERE name = :name",
                "deleteone",
            ),
            deletegroup=store.prepare(
                f"DELETE FROM {table_name} WHERE name LIKE :pattern ESCAPE '{escape}'",
                "deletegroup",
            ),
        )
