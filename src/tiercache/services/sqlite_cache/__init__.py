"""SQLite durable store with modular operations.

Query, insert, update, schema and transaction concerns each live in their
own module; ``DurableStore`` composes them over one connection.
"""

from tiercache.services.sqlite_cache.codec import OrjsonCodec, PickleCodec, ValueCodec, get_codec
from tiercache.services.sqlite_cache.store import DurableStore

__all__ = ["DurableStore", "OrjsonCodec", "PickleCodec", "ValueCodec", "get_codec"]
