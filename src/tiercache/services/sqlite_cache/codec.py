"""Value codecs.

The durable store only deals in byte blobs. A codec turns cached Python
values into blobs and back.
"""

from __future__ import annotations

import logging
import pickle
from typing import Any, Protocol

import orjson

from tiercache.shared.errors import (
    CacheSerializationError,
    ErrorCode,
    ErrorContext,
    create_config_error,
)

logger = logging.getLogger(__name__)


class ValueCodec(Protocol):
    """Encode/decode interface used by the store operations."""

    name: str

    def encode(self, value: Any) -> bytes: ...

    def decode(self, blob: bytes) -> Any: ...


class PickleCodec:
    """Binary codec for arbitrary picklable values."""

    name = "pickle"

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL) -> None:
        self.protocol = protocol

    def encode(self, value: Any) -> bytes:
        try:
            return pickle.dumps(value, protocol=self.protocol)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise CacheSerializationError(
                ErrorCode.CACHE_SERIALIZATION_ERROR,
                f"Cannot pickle value of type {type(value).__name__}",
                ErrorContext(operation="encode", additional_data={"codec": self.name}),
                original_error=e,
            ) from e

    def decode(self, blob: bytes) -> Any:
        try:
            return pickle.loads(blob)  # noqa: S301 - blobs are written by this cache only
        except (pickle.UnpicklingError, EOFError, TypeError, AttributeError, ValueError, ImportError) as e:
            raise CacheSerializationError(
                ErrorCode.CACHE_SERIALIZATION_ERROR,
                "Cannot unpickle cached value",
                ErrorContext(operation="decode", additional_data={"codec": self.name}),
                original_error=e,
            ) from e


class OrjsonCodec:
    """JSON codec for JSON-compatible values.

    Tuples come back as lists and dict keys as strings.
    """

    name = "orjson"

    def encode(self, value: Any) -> bytes:
        try:
            return orjson.dumps(value, option=orjson.OPT_NON_STR_KEYS)
        except TypeError as e:
            raise CacheSerializationError(
                ErrorCode.CACHE_SERIALIZATION_ERROR,
                f"Cannot serialize value of type {type(value).__name__} to JSON",
                ErrorContext(operation="encode", additional_data={"codec": self.name}),
                original_error=e,
            ) from e

    def decode(self, blob: bytes) -> Any:
        try:
            return orjson.loads(blob)
        except orjson.JSONDecodeError as e:
            raise CacheSerializationError(
                ErrorCode.CACHE_SERIALIZATION_ERROR,
                "Cannot decode cached JSON value",
                ErrorContext(operation="decode", additional_data={"codec": self.name}),
                original_error=e,
            ) from e


_CODECS: dict[str, type[PickleCodec] | type[OrjsonCodec]] = {
    PickleCodec.name: PickleCodec,
    OrjsonCodec.name: OrjsonCodec,
}


def get_codec(name: str) -> ValueCodec:
    """Return a codec instance by name.

    Raises:
        ApplicationError: If the name is unknown
    """
    try:
        codec_cls = _CODECS[name]
    except KeyError as e:
        raise create_config_error(
            f"Unknown codec {name!r}; expected one of {', '.join(sorted(_CODECS))}",
            config_key="codec",
            operation="get_codec",
            original_error=e,
        ) from e
    logger.debug("Using %s codec", name)
    return codec_cls()
