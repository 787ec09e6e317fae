"""
CLI Error Handling Utilities

Maps exceptions raised by a command to a console message, a structured
log record and an exit code.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.markup import escape

from tiercache.shared.constants import CLIDefaults, CLIMessages
from tiercache.shared.errors import (
    ApplicationError,
    ErrorCode,
    ErrorContext,
    TierCacheError,
)
from tiercache.shared.logging import log_operation_error

logger = logging.getLogger(__name__)


def handle_cli_error(error: Exception, command: str, console: Console | None = None) -> int:
    """Report an error raised by ``command``.

    Args:
        error: The exception that occurred
        command: The CLI command being executed
        console: Console to print to (stderr by default)

    Returns:
        Exit code for the CLI command
    """
    console = console or Console(stderr=True)

    if isinstance(error, TierCacheError):
        cache_error = error
    else:
        cache_error = ApplicationError(
            ErrorCode.CLI_UNEXPECTED_ERROR,
            f"Unexpected error: {error!s}",
            ErrorContext(operation=command),
            original_error=error,
        )

    log_operation_error(logger, cache_error, command)
    console.print(CLIMessages.ERROR.format(error=escape(cache_error.message)))
    return CLIDefaults.EXIT_ERROR
