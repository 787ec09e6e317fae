"""Two-tier object cache session.

``ObjectCache`` is the handle a host process holds for one request: reads
go to the in-memory tier, then the negative cache, then the durable
store; writes land in memory at once and are persisted in one
transaction when the session closes.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Any

from tiercache.config.models.settings import TierCacheSettings
from tiercache.core.batcher import WriteBatcher
from tiercache.core.lookup import LookupTier
from tiercache.core.maintenance import CleanupResult, Maintenance, MaintenancePolicy
from tiercache.core.naming import CacheKey, canonical_name, normalize_group, validate_key
from tiercache.core.negative import NegativeCache
from tiercache.core.statistics import CacheStatistics, SampleRecorder, elapsed_ms
from tiercache.services.sqlite_cache.codec import get_codec
from tiercache.services.sqlite_cache.store import DurableStore
from tiercache.shared.constants import CacheDefaults, CacheFeature
from tiercache.shared.errors import (
    CacheValidationError,
    ErrorCode,
    ErrorContext,
    StoreUnavailableError,
    TransactionError,
)
from tiercache.shared.logging import log_operation_error, log_validation_error

logger = logging.getLogger(__name__)

KeyNamespacer = Callable[[str, str], str]


@dataclass(frozen=True)
class CacheResult:
    """Outcome of a read.

    ``found`` is the only presence signal; ``value`` may legitimately be
    ``False``, ``0`` or ``None``.
    """

    found: bool
    value: Any = None

    def __bool__(self) -> bool:
        return self.found


_MISS = CacheResult(found=False)


class ObjectCache:
    """One cache session over an optional durable store.

    Opening runs the maintenance check and preloads the configured
    patterns; :meth:`close` flushes queued writes, may run maintenance
    again and records an instrumentation sample. Without a store (or once
    the store turns unavailable) the cache keeps working from memory only.

    Example:
        >>> with open_cache(Path("/tmp/cache")) as cache:
        ...     cache.set("answer", 42)
        ...     cache.get("answer")
        CacheResult(found=True, value=42)
    """

    def __init__(
        self,
        store: DurableStore | None,
        settings: TierCacheSettings | None = None,
        *,
        maintenance_policy: MaintenancePolicy | None = None,
        key_namespacer: KeyNamespacer | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Start a session.

        Args:
            store: Opened durable store, or None for a memory-only session
            settings: Cache settings (maintenance, monitoring, preload)
            maintenance_policy: Overrides the policy built from settings
            key_namespacer: Rewrites ``(group, key)`` to the key to store
            clock: Epoch-seconds clock for instrumentation
        """
        self.settings = settings or TierCacheSettings()
        self.store = store
        self.statistics = store.statistics if store is not None else CacheStatistics()
        self.negative_cache = NegativeCache()
        self.batcher = WriteBatcher(self.negative_cache)
        self.lookup = LookupTier(self.batcher)
        self.maintenance = Maintenance(
            maintenance_policy or MaintenancePolicy.from_settings(self.settings.maintenance)
        )
        self.recorder = SampleRecorder(self.settings.monitoring, clock=clock)
        self.key_namespacer = key_namespacer
        self._degraded = store is None
        self._closed = False

        if store is not None:
            try:
                self._maintain_at_open(store)
                self._preload(store)
            except Exception:
                store.close()
                raise

    def __enter__(self) -> ObjectCache:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def degraded(self) -> bool:
        """True when the session runs from memory only."""
        return self._degraded

    @property
    def closed(self) -> bool:
        return self._closed

    # session lifecycle

    def _maintain_at_open(self, store: DurableStore) -> None:
        try:
            self.maintenance.maybe_clean_up(store)
        except (StoreUnavailableError, TransactionError) as e:
            logger.warning("Skipped cache maintenance at open: %s", e.message)

    def _preload(self, store: DurableStore) -> None:
        patterns = self.settings.preload
        if not patterns:
            return
        try:
            self.lookup.preload(store, patterns)
        except StoreUnavailableError as e:
            self._degrade(e)

    def _degrade(self, error: StoreUnavailableError) -> None:
        if not self._degraded:
            logger.warning("Cache store unavailable, continuing from memory: %s", error.message)
        self._degraded = True

    def close(self) -> None:
        """Persist queued writes and end the session.

        Safe to call more than once.

        Raises:
            TransactionError: If the flush failed; nothing was persisted
        """
        if self._closed:
            return
        self._closed = True

        if self.store is None:
            if self.batcher:
                logger.warning(
                    "No cache store, discarded %d pending writes", self.batcher.discard_all()
                )
            return

        start = time.perf_counter()
        try:
            if self._degraded:
                dropped = self.batcher.discard_all()
                if dropped:
                    logger.warning("Cache store unavailable, discarded %d pending writes", dropped)
                return

            try:
                self.batcher.flush(self.store)
            except StoreUnavailableError as e:
                self._degrade(e)
                return
            except TransactionError as e:
                log_operation_error(logger, e, "close")
                raise

            try:
                self.maintenance.maybe_clean_up(self.store)
            except StoreUnavailableError as e:
                logger.warning("Skipped cache maintenance at close: %s", e.message)

            self.statistics.update_ms = elapsed_ms(start)
            self.recorder.capture(self.statistics, self.store)
        finally:
            self.store.close()

    # helpers

    def _resolve(self, key: object, group: object, operation: str) -> tuple[str, str] | None:
        """Validate and namespace one ``(group, key)`` pair.

        Returns:
            ``(group, key)`` with the key as a string, or None if rejected
        """
        try:
            valid_key = validate_key(key, operation)
            valid_group = normalize_group(group, operation)
        except CacheValidationError as e:
            field = (e.context.additional_data or {}).get("field", "key")
            log_validation_error(
                logger, str(field), key if field == "key" else group, e.message,
                context={"operation": operation},
            )
            return None

        name_key = str(valid_key)
        if self.key_namespacer is not None:
            name_key = str(self.key_namespacer(valid_group, name_key))
        return valid_group, name_key

    def _lookup(self, group: str, key: str, *, force: bool = False) -> CacheResult:
        """Read through tier 1, the negative cache and the store."""
        name = canonical_name(group, key)
        bypass = force and not self.batcher.has_pending(name)

        if not bypass:
            found, value = self.lookup.get(group, key)
            if found:
                self.statistics.record_ram_hit()
                return CacheResult(True, value)
        self.statistics.record_ram_miss()

        if not bypass and self.negative_cache.is_marked_absent(name):
            self.statistics.record_negative_hit()
            return _MISS

        if self._degraded or self.store is None:
            return _MISS

        try:
            found, value = self.store.get_one(name)
        except StoreUnavailableError as e:
            self._degrade(e)
            return _MISS

        if not found:
            self.statistics.record_disk_miss()
            self.negative_cache.mark_absent(name)
            return _MISS

        self.statistics.record_disk_hit()
        self.lookup.fill(group, key, value)
        return CacheResult(True, value)

    def _check_expire(self, expire: object, operation: str) -> int | None:
        if isinstance(expire, int) and not isinstance(expire, bool) and expire >= 0:
            return expire
        log_validation_error(
            logger, "expire", expire, "Expiration must be a non-negative integer",
            context={"operation": operation},
        )
        return None

    # reads

    def get(
        self,
        key: CacheKey,
        group: str = CacheDefaults.DEFAULT_GROUP,
        *,
        force: bool = False,
    ) -> CacheResult:
        """Read one item.

        Args:
            key: Item key
            group: Item group
            force: Re-read the store even if the item is in memory, unless
                this session has an unflushed write for it

        Returns:
            CacheResult; ``found`` is False for misses and invalid keys
        """
        resolved = self._resolve(key, group, "get")
        if resolved is None:
            return _MISS
        return self._lookup(*resolved, force=force)

    def get_multiple(
        self,
        keys: Iterable[CacheKey],
        group: str = CacheDefaults.DEFAULT_GROUP,
        *,
        force: bool = False,
    ) -> dict[CacheKey, CacheResult]:
        return {key: self.get(key, group, force=force) for key in keys}

    # writes

    def set(
        self,
        key: CacheKey,
        value: Any,
        group: str = CacheDefaults.DEFAULT_GROUP,
        expire: int = CacheDefaults.NO_EXPIRATION,
    ) -> bool:
        """Store an item; persisted when the session closes.

        Args:
            expire: Seconds until expiry, 0 for no expiration

        Returns:
            False if the key, group or expiration was rejected
        """
        resolved = self._resolve(key, group, "set")
        expire_seconds = self._check_expire(expire, "set")
        if resolved is None or expire_seconds is None:
            return False
        group_name, name_key = resolved
        self.lookup.set(group_name, name_key, value, expire_seconds)
        return True

    def set_multiple(
        self,
        items: Mapping[CacheKey, Any],
        group: str = CacheDefaults.DEFAULT_GROUP,
        expire: int = CacheDefaults.NO_EXPIRATION,
    ) -> dict[CacheKey, bool]:
        return {key: self.set(key, value, group, expire) for key, value in items.items()}

    def add(
        self,
        key: CacheKey,
        value: Any,
        group: str = CacheDefaults.DEFAULT_GROUP,
        expire: int = CacheDefaults.NO_EXPIRATION,
    ) -> bool:
        """Store an item only if neither tier has it."""
        resolved = self._resolve(key, group, "add")
        if resolved is None:
            return False
        if self._lookup(*resolved):
            return False
        return self.set(key, value, group, expire)

    def add_multiple(
        self,
        items: Mapping[CacheKey, Any],
        group: str = CacheDefaults.DEFAULT_GROUP,
        expire: int = CacheDefaults.NO_EXPIRATION,
    ) -> dict[CacheKey, bool]:
        return {key: self.add(key, value, group, expire) for key, value in items.items()}

    def replace(
        self,
        key: CacheKey,
        value: Any,
        group: str = CacheDefaults.DEFAULT_GROUP,
        expire: int = CacheDefaults.NO_EXPIRATION,
    ) -> bool:
        """Store an item only if it already exists."""
        resolved = self._resolve(key, group, "replace")
        if resolved is None:
            return False
        if not self._lookup(*resolved):
            return False
        return self.set(key, value, group, expire)

    def delete(self, key: CacheKey, group: str = CacheDefaults.DEFAULT_GROUP) -> bool:
        """Remove an item from both tiers.

        Returns:
            False if the item did not exist or the key was rejected
        """
        resolved = self._resolve(key, group, "delete")
        if resolved is None:
            return False
        if not self._lookup(*resolved):
            return False
        self.lookup.remove(*resolved)
        return True

    def delete_multiple(
        self,
        keys: Iterable[CacheKey],
        group: str = CacheDefaults.DEFAULT_GROUP,
    ) -> dict[CacheKey, bool]:
        return {key: self.delete(key, group) for key in keys}

    def incr(
        self,
        key: CacheKey,
        offset: int = 1,
        group: str = CacheDefaults.DEFAULT_GROUP,
    ) -> int | float | None:
        """Add ``offset`` to a numeric item.

        Non-numeric values count as 0 and the result never drops below 0.
        The result is stored without expiration.

        Returns:
            The new value, or None if the item does not exist
        """
        resolved = self._resolve(key, group, "incr")
        if resolved is None:
            return None
        current = self._lookup(*resolved)
        if not current:
            return None
        value = max(_as_number(current.value) + offset, 0)
        self.lookup.set(*resolved, value, CacheDefaults.NO_EXPIRATION)
        return value

    def decr(
        self,
        key: CacheKey,
        offset: int = 1,
        group: str = CacheDefaults.DEFAULT_GROUP,
    ) -> int | float | None:
        """Subtract ``offset`` from a numeric item; see :meth:`incr`."""
        return self.incr(key, -offset, group)

    # flushing

    def flush(self, *, keep_samples: bool = False, vacuum: bool = False) -> bool:
        """Empty both tiers.

        Every row except the created marker is deleted at once, along with
        this session's queued writes.

        Args:
            keep_samples: Keep persisted instrumentation samples
            vacuum: Compact the file afterwards

        Returns:
            False if the store could not be emptied
        """
        self.flush_runtime()
        dropped = self.batcher.discard_all()
        if dropped:
            logger.debug("Discarded %d pending writes on flush", dropped)
        if self._degraded or self.store is None:
            return self.store is None

        try:
            self.store.delete_all(keep_samples=keep_samples)
            if vacuum:
                self.store.vacuum()
        except StoreUnavailableError as e:
            self._degrade(e)
            return False
        return True

    def flush_runtime(self) -> bool:
        """Forget everything held in memory; the store is untouched."""
        self.lookup.clear()
        self.negative_cache.reset()
        return True

    def flush_group(self, group: str) -> bool:
        """Delete every item of ``group`` from both tiers right away.

        Returns:
            False if the group was rejected or the store was unavailable;
            in a degraded session the rows stay in the store
        """
        try:
            group_name = normalize_group(group, "flush_group")
        except CacheValidationError as e:
            log_validation_error(
                logger, "group", group, e.message, context={"operation": "flush_group"}
            )
            return False

        store = None if self._degraded else self.store
        try:
            self.lookup.flush_group(group_name, store)
        except StoreUnavailableError as e:
            self._degrade(e)
            return False
        return not (self._degraded and self.store is not None)

    # operator helpers

    def supports(self, feature: str) -> bool:
        return feature in CacheFeature.SUPPORTED

    def cleanup(
        self,
        retention_seconds: int | None = None,
        *,
        vacuum: bool = False,
    ) -> CleanupResult:
        """Run maintenance now, regardless of the probability gate.

        Raises:
            StoreUnavailableError: If there is no usable store
            TransactionError: If the purge failed
        """
        if self._degraded or self.store is None:
            raise StoreUnavailableError(
                ErrorCode.STORE_UNAVAILABLE,
                "No cache store to clean up",
                ErrorContext(operation="cleanup"),
            )
        return self.maintenance.clean_up(self.store, retention_seconds, vacuum=vacuum)

    def sqlite_version(self) -> str | None:
        if self.store is None or self.store.closed:
            return None
        return self.store.sqlite_version()


def _as_number(value: Any) -> int | float:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int | float):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


def open_cache(
    directory: Path | str | None = None,
    filename: str | None = None,
    timeout_ms: int | None = None,
    settings: TierCacheSettings | None = None,
    *,
    degrade_on_unavailable: bool = True,
    maintenance_policy: MaintenancePolicy | None = None,
    key_namespacer: KeyNamespacer | None = None,
    clock: Callable[[], float] = time.time,
) -> ObjectCache:
    """Open a cache session.

    Arguments left as None come from ``settings`` (or the defaults).

    Args:
        directory: Directory holding the database file
        filename: Database file name
        timeout_ms: Busy timeout in milliseconds
        settings: Cache settings
        degrade_on_unavailable: Return a memory-only session instead of
            raising when the store cannot be opened
        maintenance_policy: Overrides the maintenance policy from settings
        key_namespacer: Rewrites ``(group, key)`` to the key to store
        clock: Epoch-seconds clock

    Raises:
        StoreUnavailableError: If the store cannot be opened and
            ``degrade_on_unavailable`` is False
        SchemaError: If the table cannot be created
        PrepareError: If the statements do not compile
    """
    settings = settings or TierCacheSettings()
    overrides: dict[str, Any] = {}
    if directory is not None:
        overrides["directory"] = Path(directory)
    if filename is not None:
        overrides["filename"] = filename
    if timeout_ms is not None:
        overrides["busy_timeout_ms"] = timeout_ms
    if overrides:
        settings = settings.model_copy(
            update={"store": settings.store.model_copy(update=overrides)}
        )

    store: DurableStore | None
    try:
        store = DurableStore.from_settings(
            settings.store,
            codec=get_codec(settings.codec),
            clock=clock,
        )
    except StoreUnavailableError:
        if not degrade_on_unavailable:
            raise
        logger.warning("Cache store unavailable, opening a memory-only session")
        store = None

    return ObjectCache(
        store,
        settings,
        maintenance_policy=maintenance_policy,
        key_namespacer=key_namespacer,
        clock=clock,
    )
