"""In-memory lookup tier.

Maps ``group -> key -> value`` for the current session. Writes go to the
write batcher; only group flushes and preloading touch the store directly.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Protocol

from tiercache.core.naming import CacheKey

if TYPE_CHECKING:
    from tiercache.config.models.cache_settings import PreloadPattern
    from tiercache.core.batcher import WriteBatcher

logger = logging.getLogger(__name__)

_MISSING = object()


class LookupSource(Protocol):
    """Store surface used by the lookup tier."""

    def delete_group(self, group: str) -> int: ...

    def preload_rows(
        self, patterns: Iterable[PreloadPattern]
    ) -> Iterable[tuple[str, str, Any]]: ...


class LookupTier:
    """Tier 1 of the cache.

    The session facade passes keys as strings so that ``1`` and ``"1"``
    address the same entry here and in the store.
    """

    def __init__(self, batcher: WriteBatcher) -> None:
        self._groups: dict[str, dict[CacheKey, Any]] = {}
        self._batcher = batcher

    def __len__(self) -> int:
        return sum(len(items) for items in self._groups.values())

    @property
    def groups(self) -> list[str]:
        return list(self._groups)

    def contains(self, group: str, key: CacheKey) -> bool:
        items = self._groups.get(group)
        return items is not None and key in items

    def get(self, group: str, key: CacheKey) -> tuple[bool, Any]:
        """Return ``(found, value)``; ``found`` is False when unmapped."""
        value = self._groups.get(group, {}).get(key, _MISSING)
        if value is _MISSING:
            return False, None
        return True, value

    def fill(self, group: str, key: CacheKey, value: Any) -> None:
        """Map a value read from the store; nothing is persisted."""
        self._groups.setdefault(group, {})[key] = value

    def set(self, group: str, key: CacheKey, value: Any, expire: int = 0) -> bool:
        """Map ``value`` and queue a put unless it is the same object as before.

        Returns:
            True if a put was queued
        """
        items = self._groups.setdefault(group, {})
        former = items.get(key, _MISSING)
        items[key] = value
        if former is value:
            return False
        self._batcher.enqueue_put(key, value, group, expire)
        return True

    def remove(self, group: str, key: CacheKey) -> None:
        """Unmap ``key`` and queue a persistent delete."""
        items = self._groups.get(group)
        if items is not None:
            items.pop(key, None)
        self._batcher.enqueue_delete(key, group)

    def flush_group(self, group: str, store: LookupSource | None) -> int:
        """Drop ``group`` from memory and delete it from the store right away.

        Queued ops for the group are discarded so closing the session does
        not bring the rows back.

        Returns:
            Number of rows deleted from the store
        """
        self._groups.pop(group, None)
        discarded = self._batcher.discard_group(group)
        if discarded:
            logger.debug("Discarded %d pending ops for group %s", discarded, group)
        if store is None:
            return 0
        return store.delete_group(group)

    def clear(self) -> None:
        self._groups.clear()

    def preload(self, store: LookupSource, patterns: Iterable[PreloadPattern]) -> int:
        """Load rows matching the group/key glob pairs into memory.

        Returns:
            Number of entries loaded
        """
        loaded = 0
        for group, key, value in store.preload_rows(patterns):
            self._groups.setdefault(group, {})[key] = value
            loaded += 1
        logger.debug("Preloaded %d cache entries", loaded)
        return loaded
