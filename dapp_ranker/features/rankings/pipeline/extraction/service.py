"""
Interaction extraction - filters one checkpoint batch down to tracked dApps.
"""

from __future__ import annotations

from dapp_ranker.features.rankings.registry import ApplicationRegistry
from dapp_ranker.infrastructure.observability.logging import get_logger
from dapp_ranker.models.domain.ranking_domain import EventBatch, InteractionRecord

logger = get_logger(__name__)


def extract_interactions(batch: EventBatch, registry: ApplicationRegistry) -> list[InteractionRecord]:
    """
    Emit one InteractionRecord per event from a registered package with a
    non-empty sender. Everything else is dropped.

    Args:
        batch: Checkpoint batch; its timestamp stamps every record
        registry: Tracked applications

    Returns:
        Records in event order
    """
    records: list[InteractionRecord] = []
    skipped_malformed = 0

    for event in batch.events:
        descriptor = registry.get(event.origin_id) if event.origin_id else None
        if descriptor is None:
            continue

        sender = (event.sender or "").strip()
        if not sender:
            skipped_malformed += 1
            continue

        records.append(
            InteractionRecord(
                origin_id=event.origin_id,
                account=sender,
                timestamp=batch.timestamp,
                transaction_id=event.transaction_id,
                display_name=descriptor.display_name,
            )
        )

    if skipped_malformed:
        logger.debug(
            "Skipped tracked events without sender",
            checkpoint=batch.sequence_number,
            skipped=skipped_malformed,
        )

    return records
