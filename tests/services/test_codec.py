"""Tests for value codecs."""

from __future__ import annotations

import pytest

from tiercache.services.sqlite_cache.codec import OrjsonCodec, PickleCodec, get_codec
from tiercache.shared.errors import ApplicationError, CacheSerializationError, ErrorCode


class TestPickleCodec:
    """Test the default binary codec."""

    def test_preserves_python_types(self) -> None:
        codec = PickleCodec()
        value = {"ids": (1, 2), "flags": {True, False}, 3: None}

        assert codec.decode(codec.encode(value)) == value

    def test_unpicklable_value_raises(self) -> None:
        with pytest.raises(CacheSerializationError) as exc_info:
            PickleCodec().encode(lambda: None)

        assert exc_info.value.code == ErrorCode.CACHE_SERIALIZATION_ERROR

    def test_garbage_blob_raises(self) -> None:
        with pytest.raises(CacheSerializationError):
            PickleCodec().decode(b"\x00\xff")


class TestOrjsonCodec:
    """Test the JSON codec."""

    def test_tuples_come_back_as_lists(self) -> None:
        codec = OrjsonCodec()

        assert codec.decode(codec.encode({"ids": (1, 2)})) == {"ids": [1, 2]}

    def test_non_json_value_raises(self) -> None:
        with pytest.raises(CacheSerializationError):
            OrjsonCodec().encode(object())

    def test_invalid_json_raises(self) -> None:
        with pytest.raises(CacheSerializationError):
            OrjsonCodec().decode(b"{not json")


class TestGetCodec:
    """Test codec lookup by name."""

    @pytest.mark.parametrize(("name", "codec_type"), [("pickle", PickleCodec), ("orjson", OrjsonCodec)])
    def test_known_names(self, name: str, codec_type: type) -> None:
        assert isinstance(get_codec(name), codec_type)

    def test_unknown_name_is_config_error(self) -> None:
        with pytest.raises(ApplicationError) as exc_info:
            get_codec("yaml")

        assert exc_info.value.code == ErrorCode.CONFIG_ERROR
