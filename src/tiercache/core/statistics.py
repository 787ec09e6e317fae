"""
Cache Instrumentation Module

Counts tier hits and misses and times every store round-trip during a
session. At session close the totals can be persisted as one sample row
per time bucket.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from tiercache.config.models.cache_settings import MonitoringOptions
from tiercache.shared.constants import MonitoringDefaults, StoreFormat

logger = logging.getLogger(__name__)


def elapsed_ms(start: float) -> float:
    """Milliseconds since ``start`` (a ``time.perf_counter()`` reading)."""
    return (time.perf_counter() - start) * 1000.0


@dataclass
class CacheStatistics:
    """Counters and timing samples for one session.

    Attributes:
        ram_hits: Reads answered by the in-memory tier
        ram_misses: Reads the in-memory tier could not answer
        disk_hits: Store reads that found a live row
        disk_misses: Store reads that found nothing (or were short-circuited)
        negative_hits: Store reads skipped because the name was known absent
        open_ms: Time spent opening the store
        update_ms: Time spent in close (flush + maintenance)
        select_ms: One entry per store point read
        insert_ms: One entry per persisted put
        delete_ms: One entry per persisted single-row delete
    """

    ram_hits: int = 0
    ram_misses: int = 0
    disk_hits: int = 0
    disk_misses: int = 0
    negative_hits: int = 0
    open_ms: float = 0.0
    update_ms: float = 0.0
    select_ms: list[float] = field(default_factory=list)
    insert_ms: list[float] = field(default_factory=list)
    delete_ms: list[float] = field(default_factory=list)
    select_names: list[str] = field(default_factory=list)
    insert_names: list[str] = field(default_factory=list)

    @property
    def ram_hit_ratio(self) -> float:
        total = self.ram_hits + self.ram_misses
        return self.ram_hits / total if total > 0 else 0.0

    def record_ram_hit(self) -> None:
        self.ram_hits += 1

    def record_ram_miss(self) -> None:
        self.ram_misses += 1

    def record_disk_hit(self) -> None:
        self.disk_hits += 1

    def record_disk_miss(self) -> None:
        self.disk_misses += 1

    def record_negative_hit(self) -> None:
        self.negative_hits += 1

    def record_select(self, name: str, duration_ms: float) -> None:
        self.select_ms.append(duration_ms)
        self.select_names.append(name)

    def record_insert(self, name: str, duration_ms: float) -> None:
        self.insert_ms.append(duration_ms)
        self.insert_names.append(name)

    def record_delete(self, duration_ms: float) -> None:
        self.delete_ms.append(duration_ms)

    def to_record(self, now: float, *, verbose: bool = False) -> dict[str, Any]:
        """Build the sample payload persisted at session close."""
        record: dict[str, Any] = {
            "time": now,
            "ram_hits": self.ram_hits,
            "ram_misses": self.ram_misses,
            "disk_hits": self.disk_hits,
            "disk_misses": self.disk_misses,
            "negative_hits": self.negative_hits,
            "open_ms": self.open_ms,
            "select_ms": list(self.select_ms),
            "insert_ms": list(self.insert_ms),
            "delete_ms": list(self.delete_ms),
            "update_ms": self.update_ms,
        }
        if verbose:
            record["select_names"] = list(self.select_names)
            record["insert_names"] = list(self.insert_names)
        return record


class SampleSink(Protocol):
    """Where samples go; the durable store implements this."""

    def add_sample(self, name: str, record: dict[str, Any], expires: int) -> bool: ...


def bucket_timestamp(now: float, resolution: float) -> int | float:
    """Round ``now`` down to a multiple of ``resolution``.

    Resolutions of a second or more give an integer bucket; finer
    resolutions keep millisecond precision.
    """
    resolution = round(resolution or MonitoringDefaults.RESOLUTION_SECONDS, 3)
    if resolution >= 1.0:
        resolution = round(resolution, 0)
    timestamp = round(now - math.fmod(now, resolution), 3)
    return int(timestamp) if resolution >= 1.0 else timestamp


def sample_name(timestamp: int | float) -> str:
    """Reserved row name for the sample of one bucket."""
    return StoreFormat.SAMPLE_PREFIX + str(timestamp).rjust(StoreFormat.SAMPLE_BUCKET_WIDTH, "0")


class SampleRecorder:
    """Persists one sample per bucket; first writer for a bucket wins."""

    def __init__(
        self,
        options: MonitoringOptions,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.options = options
        self._clock = clock

    def capture(self, statistics: CacheStatistics, sink: SampleSink) -> bool:
        """Persist the session's sample if capture is enabled.

        Never raises: failures are logged at debug level and reported as
        False.

        Returns:
            True if a new sample row was written
        """
        if not self.options.capture:
            return False
        try:
            now = self._clock()
            record = statistics.to_record(now, verbose=self.options.verbose)
            name = sample_name(bucket_timestamp(now, self.options.resolution))
            expires = int(now + self.options.lifetime)
            written = sink.add_sample(name, record, expires)
        except Exception:  # noqa: BLE001
            logger.debug("Discarded monitoring sample", exc_info=True)
            return False

        if written:
            logger.debug("Captured monitoring sample %s", name)
        return written
