"""
Tests for the tiercache error hierarchy.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from tiercache.shared.errors import (
    ApplicationError,
    CacheValidationError,
    DomainError,
    ErrorCode,
    ErrorContext,
    InfrastructureError,
    StoreUnavailableError,
    TierCacheError,
    TransactionError,
    create_config_error,
    create_validation_error,
    is_busy_error,
    wrap_sqlite_error,
)


class TestErrorContext:
    """Test cases for ErrorContext frozen dataclass."""

    def test_empty_context(self) -> None:
        context = ErrorContext()

        assert context.safe_dict() == {"additional_data": {}}

    def test_additional_data_is_coerced_to_primitives(self) -> None:
        context = ErrorContext(
            operation="open_store",
            additional_data={"path": Path("/tmp/c.db"), "code": ErrorCode.STORE_BUSY},
        )

        assert context.additional_data == {"path": "/tmp/c.db", "code": "STORE_BUSY"}

    def test_rejects_non_primitive_data(self) -> None:
        with pytest.raises(TypeError):
            ErrorContext(additional_data={"rows": [1, 2]})  # type: ignore[dict-item]

    def test_safe_dict_masks_keys(self) -> None:
        context = ErrorContext(file_path="/tmp/c.db", operation="open_store")

        assert context.safe_dict(mask_keys=("file_path",)) == {
            "operation": "open_store",
            "additional_data": {},
        }


class TestTierCacheError:
    """Test the base error and its hierarchy."""

    def test_str_and_to_dict(self) -> None:
        error = InfrastructureError(
            ErrorCode.STATEMENT_FAILED,
            "boom",
            ErrorContext(operation="flush"),
            original_error=ValueError("inner"),
        )

        assert str(error) == "STATEMENT_FAILED: boom"
        assert error.to_dict() == {
            "code": "STATEMENT_FAILED",
            "message": "boom",
            "context": {"operation": "flush", "additional_data": {}},
            "original_error": "inner",
        }

    def test_hierarchy(self) -> None:
        assert issubclass(StoreUnavailableError, InfrastructureError)
        assert issubclass(TransactionError, InfrastructureError)
        assert issubclass(CacheValidationError, DomainError)
        assert issubclass(ApplicationError, TierCacheError)


class TestSqliteErrorMapping:
    """Test translation of sqlite3 errors."""

    def test_locked_database_is_busy(self) -> None:
        error = sqlite3.OperationalError("database is locked")

        wrapped = wrap_sqlite_error(error, "flush", default=TransactionError)

        assert is_busy_error(error) is True
        assert isinstance(wrapped, StoreUnavailableError)
        assert wrapped.code == ErrorCode.STORE_BUSY
        assert wrapped.original_error is error

    def test_other_errors_use_default(self) -> None:
        error = sqlite3.IntegrityError("NOT NULL constraint failed")

        wrapped = wrap_sqlite_error(
            error, "flush", default=TransactionError, code=ErrorCode.TRANSACTION_FAILED
        )

        assert is_busy_error(error) is False
        assert type(wrapped) is TransactionError
        assert wrapped.code == ErrorCode.TRANSACTION_FAILED


class TestFactories:
    """Test error factory helpers."""

    def test_create_validation_error(self) -> None:
        error = create_validation_error("bad key", field="key", operation="get")

        assert isinstance(error, CacheValidationError)
        assert error.code == ErrorCode.VALIDATION_ERROR
        assert error.context.additional_data == {"field": "key"}

    def test_create_config_error(self) -> None:
        error = create_config_error("bad codec", config_key="codec")

        assert isinstance(error, ApplicationError)
        assert error.code == ErrorCode.CONFIG_ERROR
