"""File permission utilities for the cache database.

Cache rows can hold anything an application chose to memoize, so new
database files are made owner-only.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from tiercache.shared.errors import (
    ErrorCode,
    ErrorContext,
    InfrastructureError,
    StoreUnavailableError,
)

logger = logging.getLogger(__name__)


def set_secure_file_permissions(file_path: Path | str) -> None:
    """Set secure file permissions (600 - owner read/write only).

    Args:
        file_path: Path to the file to secure

    Raises:
        InfrastructureError: If permission setting fails
    """
    file_path = Path(file_path)

    context = ErrorContext(
        operation="set_secure_file_permissions",
        file_path=str(file_path),
    )

    if not file_path.exists():
        logger.error("File not found: %s", file_path)
        raise InfrastructureError(
            ErrorCode.FILE_NOT_FOUND,
            f"Cannot set permissions: file does not exist: {file_path}",
            context,
        )

    try:
        # Windows only honours the read-only bit; this is best effort there.
        file_path.chmod(0o600)
        logger.debug(
            "Permissions (600) set for: %s (platform=%s)", file_path, sys.platform
        )
    except OSError as e:
        logger.exception("Failed to set permissions: %s", file_path)
        raise InfrastructureError(
            ErrorCode.PERMISSION_DENIED,
            f"Cannot set permissions: {file_path}",
            context,
            original_error=e,
        ) from e


def ensure_writable_directory(directory: Path | str) -> Path:
    """Create ``directory`` if needed and check that files can be created in it.

    Args:
        directory: Directory that will hold the database file

    Returns:
        The directory as a Path

    Raises:
        StoreUnavailableError: If the directory cannot be created or written
    """
    directory = Path(directory)
    context = ErrorContext(
        operation="ensure_writable_directory",
        file_path=str(directory),
    )

    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StoreUnavailableError(
            ErrorCode.DIRECTORY_NOT_WRITABLE,
            f"Cannot create cache directory: {directory}",
            context,
            original_error=e,
        ) from e

    if not os.access(directory, os.W_OK | os.X_OK):
        raise StoreUnavailableError(
            ErrorCode.DIRECTORY_NOT_WRITABLE,
            f"Cache directory is not writable: {directory}",
            context,
        )

    return directory
