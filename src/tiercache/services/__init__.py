"""Services module for tiercache.

The durable store and the cache session built on top of it.
"""

from .object_cache import CacheResult, ObjectCache, open_cache
from .sqlite_cache import DurableStore

__all__ = ["CacheResult", "DurableStore", "ObjectCache", "open_cache"]
