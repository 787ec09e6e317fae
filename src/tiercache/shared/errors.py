"""Errors raised by tiercache.

Every failure carries an ``ErrorCode`` and an ``ErrorContext`` whose
extra data is restricted to primitives, so it can be written straight
into a structured log line. The underlying exception, if any, is kept
on ``original_error``.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Union

PrimitiveContextValue = Union[str, int, float, bool]

# Context fields hidden from safe_dict() unless the caller says otherwise
SAFE_DICT_MASK_KEYS: tuple[str, ...] = ()


class ErrorCode(str, Enum):
    """Codes for every error tiercache raises."""

    # file system
    DIRECTORY_NOT_WRITABLE = "DIRECTORY_NOT_WRITABLE"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    PERMISSION_DENIED = "PERMISSION_DENIED"

    # durable store
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    STORE_BUSY = "STORE_BUSY"
    STORE_CLOSED = "STORE_CLOSED"
    PREPARE_FAILED = "PREPARE_FAILED"
    SCHEMA_ERROR = "SCHEMA_ERROR"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"
    NESTED_TRANSACTION = "NESTED_TRANSACTION"
    STATEMENT_FAILED = "STATEMENT_FAILED"

    # values and names
    CACHE_SERIALIZATION_ERROR = "CACHE_SERIALIZATION_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_KEY = "INVALID_KEY"
    INVALID_GROUP = "INVALID_GROUP"

    # configuration and CLI
    CONFIG_ERROR = "CONFIG_ERROR"
    CLI_UNEXPECTED_ERROR = "CLI_UNEXPECTED_ERROR"


def _to_primitive(key: str, val: Any) -> PrimitiveContextValue:
    if isinstance(val, (str, int, float, bool)):
        return val
    if isinstance(val, Path):
        return str(val)
    if isinstance(val, Enum):
        return val.value
    if isinstance(val, Decimal):
        return float(val)
    msg = f"Context value {key!r} has unsupported type {type(val).__name__}"
    raise TypeError(msg)


@dataclass(frozen=True)
class ErrorContext:
    """Where an error happened.

    Attributes:
        file_path: Database file or directory involved, if any
        operation: Name of the failing operation
        additional_data: Extra primitive values; Path, Enum and Decimal
            values are converted on construction
    """

    file_path: str | None = None
    operation: str | None = None
    additional_data: dict[str, PrimitiveContextValue] | None = None

    def __post_init__(self) -> None:
        data = self.additional_data
        if data is None:
            return
        if not isinstance(data, dict):
            msg = f"additional_data must be a dict, not {type(data).__name__}"
            raise TypeError(msg)
        object.__setattr__(
            self, "additional_data", {k: _to_primitive(k, v) for k, v in data.items()}
        )

    def safe_dict(self, *, mask_keys: tuple[str, ...] | None = None) -> dict[str, Any]:
        """Context as a log-ready dict; ``additional_data`` is always present."""
        hidden = SAFE_DICT_MASK_KEYS if mask_keys is None else mask_keys
        out: dict[str, Any] = {
            name: value
            for name, value in (("file_path", self.file_path), ("operation", self.operation))
            if value is not None and name not in hidden
        }
        show_data = self.additional_data is not None and "additional_data" not in hidden
        out["additional_data"] = self.additional_data if show_data else {}
        return out


class TierCacheError(Exception):
    """Root of the tiercache error hierarchy."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.context = context or ErrorContext()
        self.original_error = original_error
        super().__init__(str(self))

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context.safe_dict(),
            "original_error": None if self.original_error is None else str(self.original_error),
        }


class DomainError(TierCacheError):
    """A cache rule was broken: a bad key, group or value."""


class InfrastructureError(TierCacheError):
    """The file system or the SQLite engine failed."""


class ApplicationError(TierCacheError):
    """Bad configuration or CLI usage."""


class StoreUnavailableError(InfrastructureError):
    """The durable store could not be opened or its lock was not released in time.

    Recoverable: a session may continue with the in-memory tier only.
    """


class PrepareError(InfrastructureError):
    """A statement could not be compiled against the current schema."""


class SchemaError(InfrastructureError):
    """The cache table or its index could not be created."""


class TransactionError(InfrastructureError):
    """A multi-statement unit failed and was rolled back."""


class CacheValidationError(DomainError):
    """A key or group was rejected before touching the store."""


class CacheSerializationError(DomainError):
    """A value could not be encoded to, or decoded from, a byte blob."""


_BUSY_MARKERS = ("database is locked", "database is busy", "database table is locked")


def is_busy_error(error: BaseException) -> bool:
    """Return True if a sqlite3 error means another process holds the lock."""
    if not isinstance(error, sqlite3.OperationalError):
        return False
    text = str(error).lower()
    return any(marker in text for marker in _BUSY_MARKERS)


def wrap_sqlite_error(
    error: sqlite3.Error,
    operation: str,
    *,
    default: type[InfrastructureError] = InfrastructureError,
    code: ErrorCode = ErrorCode.STATEMENT_FAILED,
    additional_data: dict[str, Any] | None = None,
) -> InfrastructureError:
    """Translate a sqlite3 error into the cache error taxonomy.

    Lock contention always becomes StoreUnavailableError; anything else
    becomes ``default``.
    """
    context = ErrorContext(operation=operation, additional_data=additional_data)
    if is_busy_error(error):
        return StoreUnavailableError(
            ErrorCode.STORE_BUSY,
            f"Store busy during {operation}: {error!s}",
            context,
            error,
        )
    return default(code, f"SQLite {operation} failed: {error!s}", context, error)


def create_validation_error(
    message: str,
    field: str | None = None,
    operation: str | None = None,
    code: ErrorCode = ErrorCode.VALIDATION_ERROR,
) -> CacheValidationError:
    """Build a CacheValidationError naming the rejected field."""
    data = {"field": field} if field else None
    return CacheValidationError(code, message, ErrorContext(operation=operation, additional_data=data))


def create_config_error(
    message: str,
    config_key: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> ApplicationError:
    """Build a CONFIG_ERROR naming the offending setting."""
    data = {"config_key": config_key} if config_key else None
    return ApplicationError(
        ErrorCode.CONFIG_ERROR,
        message,
        ErrorContext(operation=operation, additional_data=data),
        original_error,
    )
