"""Tests for file permission utilities.

Tests follow the Failure-First pattern:
1. Test failure cases first
2. Test edge cases
3. Test happy path
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from tiercache.security.permissions import (
    ensure_writable_directory,
    set_secure_file_permissions,
)
from tiercache.shared.errors import ErrorCode, InfrastructureError, StoreUnavailableError


class TestSetSecureFilePermissions:
    """Test file permission setting functionality."""

    def test_set_permissions_file_not_found(self, tmp_path: Path) -> None:
        with pytest.raises(InfrastructureError) as exc_info:
            set_secure_file_permissions(tmp_path / "nonexistent.db")

        assert exc_info.value.code == ErrorCode.FILE_NOT_FOUND
        assert "does not exist" in exc_info.value.message

    @pytest.mark.skipif(sys.platform == "win32", reason="Unix-specific test")
    def test_set_unix_permissions_success(self, tmp_path: Path) -> None:
        # Given
        test_file = tmp_path / "test.db"
        test_file.touch()

        # When
        set_secure_file_permissions(test_file)

        # Then
        file_mode = os.stat(test_file).st_mode & 0o777
        assert file_mode == 0o600, f"Expected 0o600, got {oct(file_mode)}"


class TestEnsureWritableDirectory:
    """Test cache directory checks."""

    def test_path_blocked_by_file(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("x")

        with pytest.raises(StoreUnavailableError) as exc_info:
            ensure_writable_directory(blocker / "cache")

        assert exc_info.value.code == ErrorCode.DIRECTORY_NOT_WRITABLE

    @pytest.mark.skipif(
        sys.platform == "win32" or (hasattr(os, "geteuid") and os.geteuid() == 0),
        reason="needs POSIX permissions enforced for the current user",
    )
    def test_read_only_directory(self, tmp_path: Path) -> None:
        read_only = tmp_path / "ro"
        read_only.mkdir()
        read_only.chmod(0o500)
        try:
            with pytest.raises(StoreUnavailableError):
                ensure_writable_directory(read_only)
        finally:
            read_only.chmod(0o700)

    def test_creates_nested_directories(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b"

        assert ensure_writable_directory(target) == target
        assert target.is_dir()
