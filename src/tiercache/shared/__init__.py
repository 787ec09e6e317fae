"""Tiercache Shared Module.

This package contains constants, error handling and logging helpers used across tiercache.
"""

__all__ = ["constants", "errors", "logging"]
