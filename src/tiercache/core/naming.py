"""Canonical names for cache rows.

A canonical name is ``group + "|" + key``. Groups may not contain the
delimiter, so splitting on the first delimiter always recovers the pair.
The same delimiter is used for group-prefix patterns.
"""

from __future__ import annotations

from tiercache.shared.constants import CacheDefaults, StoreFormat
from tiercache.shared.errors import ErrorCode, create_validation_error

CacheKey = str | int

DELIMITER = StoreFormat.DELIMITER
_ESCAPE = StoreFormat.LIKE_ESCAPE


def validate_key(key: object, operation: str | None = None) -> CacheKey:
    """Check that ``key`` is an integer or a non-blank string.

    Raises:
        CacheValidationError: If the key is not usable
    """
    # bool is an int subclass but never a sensible cache key
    if isinstance(key, int) and not isinstance(key, bool):
        return key
    if isinstance(key, str):
        if key.strip():
            return key
        raise create_validation_error(
            "Cache key must not be an empty string",
            field="key",
            operation=operation,
            code=ErrorCode.INVALID_KEY,
        )
    raise create_validation_error(
        f"Cache key must be integer or non-empty string, {type(key).__name__} given",
        field="key",
        operation=operation,
        code=ErrorCode.INVALID_KEY,
    )


def normalize_group(group: object, operation: str | None = None) -> str:
    """Return the group name to use, mapping empty groups to ``"default"``.

    Raises:
        CacheValidationError: If the group is not a string, contains the
            delimiter, or is reserved for the cache's own rows
    """
    if group is None or group == "":
        return CacheDefaults.DEFAULT_GROUP
    if not isinstance(group, str):
        raise create_validation_error(
            f"Cache group must be a string, {type(group).__name__} given",
            field="group",
            operation=operation,
            code=ErrorCode.INVALID_GROUP,
        )
    if DELIMITER in group:
        raise create_validation_error(
            f"Cache group must not contain {DELIMITER!r}",
            field="group",
            operation=operation,
            code=ErrorCode.INVALID_GROUP,
        )
    if group == StoreFormat.RESERVED_GROUP:
        raise create_validation_error(
            f"Cache group {group!r} is reserved",
            field="group",
            operation=operation,
            code=ErrorCode.INVALID_GROUP,
        )
    return group


def canonical_name(group: str, key: CacheKey) -> str:
    """Compose the persisted name for ``key`` in ``group``."""
    return f"{group}{DELIMITER}{key}"


def split_name(name: str) -> tuple[str, str]:
    """Split a persisted name back into ``(group, key)``.

    Raises:
        ValueError: If ``name`` has no delimiter
    """
    group, sep, key = name.partition(DELIMITER)
    if not sep:
        msg = f"Not a canonical cache name: {name!r}"
        raise ValueError(msg)
    return group, key


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so ``text`` matches literally."""
    return (
        text.replace(_ESCAPE, _ESCAPE + _ESCAPE)
        .replace("%", _ESCAPE + "%")
        .replace("_", _ESCAPE + "_")
    )


def group_like_pattern(group: str) -> str:
    """LIKE pattern matching every name in ``group`` (used with ESCAPE '\\')."""
    return escape_like(group) + DELIMITER + "%"


def preload_glob(group_glob: str, key_glob: str) -> str:
    """GLOB pattern for a group/key glob pair."""
    return f"{group_glob}{DELIMITER}{key_glob}"
