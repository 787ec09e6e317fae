"""Tests for structured logging helpers."""

from __future__ import annotations

import json
import logging
from collections.abc import Generator
from pathlib import Path

import pytest

from tiercache.shared.errors import ErrorCode, ErrorContext, StoreUnavailableError
from tiercache.shared.logging import (
    StructuredFormatter,
    log_operation_error,
    log_operation_success,
    setup_structured_logger,
)


@pytest.fixture
def json_logger(tmp_path: Path) -> Generator[tuple[logging.Logger, Path], None, None]:
    log_file = tmp_path / "tiercache.log"
    logger = setup_structured_logger(
        "tiercache.tests.logging", "DEBUG", str(log_file), use_rich_console=False
    )
    yield logger, log_file
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def read_entries(log_file: Path) -> list[dict]:
    return [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]


class TestStructuredFormatter:
    """Test JSON rendering of records."""

    def test_includes_structured_fields(self) -> None:
        record = logging.LogRecord("tiercache", logging.INFO, __file__, 1, "done", None, None)
        record.operation = "flush"
        record.duration_ms = 1.5

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["message"] == "done"
        assert entry["operation"] == "flush"
        assert entry["duration_ms"] == 1.5


class TestOperationLogging:
    """Test the operation helpers end to end."""

    def test_success_and_error_records(self, json_logger: tuple[logging.Logger, Path]) -> None:
        # Given
        logger, log_file = json_logger
        error = StoreUnavailableError(
            ErrorCode.STORE_BUSY,
            "database is locked",
            ErrorContext(operation="flush", additional_data={"ops": 3}),
        )

        # When
        log_operation_success(logger, "open_store", 2.0, result_info={"rows": 1})
        log_operation_error(logger, error)

        # Then
        success, failure = read_entries(log_file)
        assert success["operation"] == "open_store"
        assert success["result_info"] == {"rows": 1}
        assert failure["level"] == "ERROR"
        assert failure["error_code"] == "STORE_BUSY"
        assert failure["operation"] == "flush"
        assert failure["context"]["additional_data"] == {"ops": 3}
