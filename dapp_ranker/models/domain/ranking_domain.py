"""
Domain models for dApp activity ranking.

These lightweight dataclasses describe the shapes flowing through the
ranking pipeline: checkpoint batches in, interaction records in the
window, ranking entries out. They carry no business logic so they can be
shared by the pipeline, repositories and API layers.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class AppDescriptor:
    """A tracked application deployment, keyed by its on-chain package id."""

    origin_id: str
    display_name: str
    category: str


@dataclass(frozen=True, slots=True)
class RawEvent:
    """One event emitted inside a checkpoint transaction."""

    origin_id: str  # package id that emitted the event
    sender: str
    transaction_id: str


@dataclass(frozen=True, slots=True)
class EventBatch:
    """One checkpoint worth of events, delivered in order."""

    sequence_number: int
    timestamp: datetime
    events: tuple[RawEvent, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class InteractionRecord:
    """Represents one observed account-to-dApp interaction."""

    origin_id: str
    account: str
    timestamp: datetime
    transaction_id: str
    display_name: str | None = None

    @property
    def identity(self) -> tuple[str, str, str]:
        """Key used to keep one record per underlying event."""
        return (self.origin_id, self.account, self.transaction_id)


@dataclass(frozen=True, slots=True)
class RankingEntry:
    """One dApp's standing in the current window."""

    rank: int
    origin_id: str
    display_name: str
    active_account_count: int
    category: str
    computed_at: datetime


@dataclass(frozen=True, slots=True)
class BatchResult:
    """Outcome of processing one batch through the ranking engine."""

    sequence_number: int
    extracted: int
    inserted: int
    evicted: int
    recomputed: bool
    published: bool
