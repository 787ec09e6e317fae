"""
Core components for tiercache.

The in-memory tier, the write batcher, the negative cache, maintenance
policy and instrumentation. Nothing here opens a database file.
"""

from .batcher import Delete, PendingOp, Put, WriteBatcher
from .lookup import LookupTier
from .maintenance import CleanupResult, Maintenance, MaintenancePolicy
from .negative import NegativeCache
from .statistics import CacheStatistics, SampleRecorder

__all__ = [
    "CacheStatistics",
    "CleanupResult",
    "Delete",
    "LookupTier",
    "Maintenance",
    "MaintenancePolicy",
    "NegativeCache",
    "PendingOp",
    "Put",
    "SampleRecorder",
    "WriteBatcher",
]
