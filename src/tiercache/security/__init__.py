"""Security helpers for tiercache."""

from tiercache.security.permissions import (
    ensure_writable_directory,
    set_secure_file_permissions,
)

__all__ = ["ensure_writable_directory", "set_secure_file_permissions"]
