"""Tests for canonical cache names."""

from __future__ import annotations

import pytest

from tiercache.core.naming import (
    canonical_name,
    group_like_pattern,
    normalize_group,
    preload_glob,
    split_name,
    validate_key,
)
from tiercache.shared.errors import CacheValidationError, ErrorCode


class TestValidateKey:
    """Test key validation."""

    @pytest.mark.parametrize("key", ["", "   ", None, 1.5, True, b"raw", ["a"]])
    def test_rejects_unusable_keys(self, key: object) -> None:
        with pytest.raises(CacheValidationError) as exc_info:
            validate_key(key, "get")

        assert exc_info.value.code == ErrorCode.INVALID_KEY

    @pytest.mark.parametrize("key", ["answer", 0, 42, -7, "a|b"])
    def test_accepts_strings_and_integers(self, key: object) -> None:
        assert validate_key(key) == key


class TestNormalizeGroup:
    """Test group normalization."""

    @pytest.mark.parametrize("group", [None, ""])
    def test_empty_group_becomes_default(self, group: object) -> None:
        assert normalize_group(group) == "default"

    @pytest.mark.parametrize("group", ["a|b", "tiercache", 3])
    def test_rejects_invalid_groups(self, group: object) -> None:
        with pytest.raises(CacheValidationError) as exc_info:
            normalize_group(group, "set")

        assert exc_info.value.code == ErrorCode.INVALID_GROUP


class TestCanonicalName:
    """Test name composition and splitting."""

    def test_split_recovers_group_and_key(self) -> None:
        # Given - keys may contain the delimiter, groups may not
        name = canonical_name("posts", "a|b")

        # When
        group, key = split_name(name)

        # Then
        assert name == "posts|a|b"
        assert (group, key) == ("posts", "a|b")

    def test_split_rejects_names_without_delimiter(self) -> None:
        with pytest.raises(ValueError, match="Not a canonical cache name"):
            split_name("orphan")

    def test_group_like_pattern_escapes_wildcards(self) -> None:
        assert group_like_pattern("a") == "a|%"
        assert group_like_pattern("100%_x\\y") == "100\\%\\_x\\\\y|%"

    def test_preload_glob(self) -> None:
        assert preload_glob("options", "*") == "options|*"
