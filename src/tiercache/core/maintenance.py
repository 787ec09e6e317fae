"""Probabilistic store maintenance.

Most sessions skip maintenance entirely; one in ``inverse_probability``
purges expired and over-age rows and, optionally, compacts the file.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from tiercache.shared.constants import MaintenanceDefaults

if TYPE_CHECKING:
    from tiercache.config.models.cache_settings import MaintenanceSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CleanupResult:
    """Outcome of one cleanup pass."""

    expired: int = 0
    stale: int = 0
    vacuumed: bool = False

    @property
    def removed(self) -> int:
        return self.expired + self.stale


class CleanupTarget(Protocol):
    """Store surface used by maintenance."""

    def cleanup(self, retention_seconds: int) -> CleanupResult: ...

    def vacuum(self) -> None: ...


@dataclass
class MaintenancePolicy:
    """When to run maintenance.

    ``should_run()`` draws from ``rng`` so tests can pass a seeded
    ``random.Random`` or use :meth:`always` / :meth:`never`.
    """

    inverse_probability: int = MaintenanceDefaults.INVERSE_PROBABILITY
    retention_seconds: int = MaintenanceDefaults.RETENTION_SECONDS
    vacuum: bool = True
    enabled: bool = True
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def __post_init__(self) -> None:
        if self.inverse_probability < 1:
            msg = f"inverse_probability must be >= 1, got {self.inverse_probability}"
            raise ValueError(msg)

    @classmethod
    def from_settings(cls, settings: MaintenanceSettings) -> MaintenancePolicy:
        return cls(
            inverse_probability=settings.inverse_probability,
            retention_seconds=settings.retention_seconds,
            vacuum=settings.vacuum,
            enabled=settings.enabled,
        )

    @classmethod
    def always(cls, retention_seconds: int = MaintenanceDefaults.RETENTION_SECONDS, *, vacuum: bool = False) -> MaintenancePolicy:
        return cls(inverse_probability=1, retention_seconds=retention_seconds, vacuum=vacuum)

    @classmethod
    def never(cls) -> MaintenancePolicy:
        return cls(enabled=False)

    def should_run(self) -> bool:
        if not self.enabled:
            return False
        return self.rng.randint(1, self.inverse_probability) == 1


class Maintenance:
    """Runs cleanup when the policy says so."""

    def __init__(self, policy: MaintenancePolicy) -> None:
        self.policy = policy

    def maybe_clean_up(self, store: CleanupTarget) -> CleanupResult | None:
        """Run cleanup (and vacuum, if enabled) one time in many.

        Returns:
            The cleanup result, or None if this session was not picked
        """
        if not self.policy.should_run():
            return None
        return self.clean_up(store, vacuum=self.policy.vacuum)

    def clean_up(
        self,
        store: CleanupTarget,
        retention_seconds: int | None = None,
        *,
        vacuum: bool = False,
    ) -> CleanupResult:
        """Unconditionally purge expired and over-age rows."""
        retention = (
            self.policy.retention_seconds if retention_seconds is None else retention_seconds
        )
        result = store.cleanup(retention)
        if vacuum:
            store.vacuum()
            result = CleanupResult(result.expired, result.stale, vacuumed=True)
        logger.info(
            "Cache maintenance removed %d expired and %d stale rows%s",
            result.expired,
            result.stale,
            " and compacted the file" if result.vacuumed else "",
        )
        return result
