"""
Ranking calculator - unique active accounts per dApp within the window.

Counting is keyed by display name, not package id, so a dApp deployed
under several packages is ranked once with its senders merged. dApps with
no interactions in the window get no entry at all rather than a zero row.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime, timedelta

from dapp_ranker.features.rankings.registry import ApplicationRegistry
from dapp_ranker.models.domain.ranking_domain import InteractionRecord, RankingEntry


def calculate_rankings(
    records: Iterable[InteractionRecord],
    now: datetime,
    window: timedelta,
    registry: ApplicationRegistry,
) -> list[RankingEntry]:
    """
    Build the ranking for one cycle.

    Ordering is by active account count descending, ties broken by display
    name ascending. Ranks run 1..n with no gaps.
    """
    cutoff = now - window
    accounts_by_name: defaultdict[str, set[str]] = defaultdict(set)

    for record in records:
        if record.timestamp < cutoff:
            continue
        descriptor = registry.get(record.origin_id)
        if descriptor is None:
            continue
        accounts_by_name[descriptor.display_name].add(record.account)

    scored = sorted(
        ((name, len(accounts)) for name, accounts in accounts_by_name.items()),
        key=lambda item: (-item[1], item[0]),
    )

    rankings: list[RankingEntry] = []
    for position, (name, count) in enumerate(scored, start=1):
        representative = registry.representative(name)
        rankings.append(
            RankingEntry(
                rank=position,
                origin_id=representative.origin_id,
                display_name=name,
                active_account_count=count,
                category=representative.category,
                computed_at=now,
            )
        )

    return rankings


def top_rankings(rankings: Iterable[RankingEntry], limit: int) -> list[RankingEntry]:
    if limit <= 0:
        return []
    return list(rankings)[:limit]
