"""
tiercache - Two-tier persistent object cache

An in-process lookup tier backed by a single-file SQLite store, with
write batching, a negative cache, probabilistic maintenance and
instrumentation samples.
"""

__version__ = "0.1.0"

from .config import TierCacheSettings, load_settings
from .core import CleanupResult, MaintenancePolicy
from .services import CacheResult, DurableStore, ObjectCache, open_cache

__all__ = [
    "CacheResult",
    "CleanupResult",
    "DurableStore",
    "MaintenancePolicy",
    "ObjectCache",
    "TierCacheSettings",
    "__version__",
    "load_settings",
    "open_cache",
]
