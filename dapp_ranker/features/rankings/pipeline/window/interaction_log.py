"""
Windowed interaction log.

Holds every interaction record still eligible for counting. Bounded by the
ranking window, not by a fixed capacity: memory is proportional to event
rate x window length. Records are de-duplicated by (package, sender,
transaction) identity so a redelivered checkpoint adds nothing.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timedelta

from dapp_ranker.features.rankings.registry import ApplicationRegistry
from dapp_ranker.models.domain.ranking_domain import InteractionRecord


class InteractionLog:
    """In-memory, age-bounded store of interaction records. Not thread-safe."""

    __slots__ = ("_records", "_identities")

    def __init__(self, records: Iterable[InteractionRecord] = ()):
        self._records: list[InteractionRecord] = []
        self._identities: set[tuple[str, str, str]] = set()
        self.insert(records)

    def insert(self, records: Iterable[InteractionRecord]) -> int:
        """Append records not already held. Returns how many were added."""
        added = 0
        for record in records:
            identity = record.identity
            if identity in self._identities:
                continue
            self._identities.add(identity)
            self._records.append(record)
            added += 1
        return added

    def evict(self, window: timedelta, now: datetime, registry: ApplicationRegistry) -> int:
        """
        Drop records older than now - window, and records whose package is no
        longer registered. Returns how many were removed.
        """
        cutoff = now - window
        kept = [r for r in self._records if r.timestamp >= cutoff and r.origin_id in registry]

        removed = len(self._records) - len(kept)
        if removed:
            self._records = kept
            self._identities = {r.identity for r in kept}
        return removed

    def snapshot(self) -> tuple[InteractionRecord, ...]:
        return tuple(self._records)

    def clear(self) -> None:
        self._records.clear()
        self._identities.clear()

    def __len__(self) -> int:
        return len(self._records)
