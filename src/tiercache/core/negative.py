"""Session-scoped record of names confirmed absent from the store."""

from __future__ import annotations


class NegativeCache:
    """Set of canonical names known to be absent.

    Only the store read path consults it. Never persisted, never shared
    between sessions.
    """

    def __init__(self) -> None:
        self._absent: set[str] = set()
        self.hits = 0

    def __len__(self) -> int:
        return len(self._absent)

    def __contains__(self, name: object) -> bool:
        return name in self._absent

    def mark_absent(self, name: str) -> None:
        self._absent.add(name)

    def is_marked_absent(self, name: str) -> bool:
        """Check ``name``; a positive answer counts as a hit."""
        if name in self._absent:
            self.hits += 1
            return True
        return False

    def clear(self, name: str) -> None:
        self._absent.discard(name)

    def reset(self) -> None:
        self._absent.clear()
