"""Deferred write batching.

Mutations made during a session are queued in the order issued and
replayed against the store in one transaction when the session closes.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, Union

from tiercache.core.naming import CacheKey, canonical_name
from tiercache.core.statistics import elapsed_ms
from tiercache.shared.errors import (
    ErrorCode,
    ErrorContext,
    StoreUnavailableError,
    TierCacheError,
    TransactionError,
)
from tiercache.shared.logging import log_operation_success

if TYPE_CHECKING:
    from contextlib import AbstractContextManager

    from tiercache.core.negative import NegativeCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Put:
    """Insert-or-update of one item. ``expires_offset`` 0 means no expiration."""

    key: CacheKey
    value: Any
    group: str
    expires_offset: int = 0

    @property
    def name(self) -> str:
        return canonical_name(self.group, self.key)


@dataclass(frozen=True)
class Delete:
    """Removal of one item."""

    key: CacheKey
    group: str

    @property
    def name(self) -> str:
        return canonical_name(self.group, self.key)


PendingOp = Union[Put, Delete]


class BatchTarget(Protocol):
    """Store surface the batcher replays against."""

    def with_transaction(self, operation: str) -> AbstractContextManager[None]: ...

    def put_one(self, op: Put) -> None: ...

    def delete_one(self, op: Delete) -> None: ...


class WriteBatcher:
    """Queue of pending mutations for one session."""

    def __init__(self, negative_cache: NegativeCache) -> None:
        self._queue: list[PendingOp] = []
        self._negative = negative_cache

    def __len__(self) -> int:
        return len(self._queue)

    def __iter__(self) -> Iterator[PendingOp]:
        return iter(self._queue)

    @property
    def pending(self) -> tuple[PendingOp, ...]:
        return tuple(self._queue)

    def enqueue_put(
        self, key: CacheKey, value: Any, group: str, expires_offset: int = 0
    ) -> Put:
        """Queue a put; the name is no longer known to be absent."""
        op = Put(key, value, group, expires_offset)
        self._queue.append(op)
        self._negative.clear(op.name)
        return op

    def enqueue_delete(self, key: CacheKey, group: str) -> Delete:
        """Queue a delete; the name is known absent from now on."""
        op = Delete(key, group)
        self._queue.append(op)
        self._negative.clear(op.name)
        self._negative.mark_absent(op.name)
        return op

    def has_pending(self, name: str) -> bool:
        """True if a queued op targets ``name``."""
        return any(op.name == name for op in self._queue)

    def discard_group(self, group: str) -> int:
        """Drop queued ops for ``group``; returns how many were dropped."""
        before = len(self._queue)
        self._queue = [op for op in self._queue if op.group != group]
        return before - len(self._queue)

    def discard_all(self) -> int:
        """Drop every queued op; returns how many were dropped."""
        dropped = len(self._queue)
        self._queue.clear()
        return dropped

    def flush(self, store: BatchTarget) -> int:
        """Replay every queued op in one transaction.

        The queue is emptied whatever the outcome.

        Returns:
            Number of ops applied

        Raises:
            StoreUnavailableError: If the write lock was not granted in time
            TransactionError: If any op failed (nothing was persisted)
        """
        if not self._queue:
            return 0

        ops, self._queue = self._queue, []
        start = time.perf_counter()
        try:
            with store.with_transaction("flush"):
                for op in ops:
                    match op:
                        case Put():
                            store.put_one(op)
                        case Delete():
                            store.delete_one(op)
        except StoreUnavailableError:
            logger.warning("Store busy, discarded %d pending cache writes", len(ops))
            raise
        except TransactionError:
            raise
        except TierCacheError as e:
            raise TransactionError(
                ErrorCode.TRANSACTION_FAILED,
                f"Flush rolled back: {e.message}",
                ErrorContext(operation="flush", additional_data={"ops": len(ops)}),
                original_error=e,
            ) from e

        log_operation_success(
            logger,
            "flush",
            elapsed_ms(start),
            result_info={"ops": len(ops)},
        )
        return len(ops)
