"""
Checkpoint reader - sequential delivery of checkpoint batches.

Checkpoints are JSON files named <sequence_number>.json, read from a local
directory first and, when configured, from a remote HTTP store. Delivery is
in order and at least once: progress is only advanced by the caller after
the engine has accepted a batch, so a crash replays the last checkpoint.
"""

import asyncio
import json
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import httpx

from dapp_ranker.infrastructure.observability.logging import get_logger
from dapp_ranker.models.domain.ranking_domain import EventBatch, RawEvent

logger = get_logger(__name__)

REQUEST_TIMEOUT = 30  # seconds
MAX_RETRIES = 3
BACKOFF_FACTOR = 2
RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


class CheckpointFormatError(ValueError):
    """Raised when a checkpoint payload cannot be parsed."""

    def __init__(self, message: str, sequence_number: int | None = None):
        super().__init__(message)
        self.sequence_number = sequence_number


def parse_checkpoint(payload: dict[str, Any], expected_sequence: int | None = None) -> EventBatch:
    """
    Convert a checkpoint JSON document into an EventBatch.

    Events missing a package id are dropped here; events with an empty
    sender are kept so extraction can decide.
    """
    try:
        sequence_number = int(payload["sequence_number"])
        timestamp = datetime.fromtimestamp(int(payload["timestamp_ms"]) / 1000, tz=UTC)
        transactions = payload.get("transactions") or []
    except (KeyError, TypeError, ValueError, OverflowError, OSError) as e:
        raise CheckpointFormatError(
            f"Malformed checkpoint header: {e}", sequence_number=expected_sequence
        ) from e

    if expected_sequence is not None and sequence_number != expected_sequence:
        raise CheckpointFormatError(
            f"Checkpoint file {expected_sequence} contains sequence {sequence_number}",
            sequence_number=expected_sequence,
        )

    events: list[RawEvent] = []
    for tx in transactions:
        if not isinstance(tx, dict):
            continue
        digest = str(tx.get("digest") or "")
        for event in tx.get("events") or []:
            if not isinstance(event, dict) or not event.get("package_id"):
                continue
            events.append(
                RawEvent(
                    origin_id=str(event["package_id"]),
                    sender=str(event.get("sender") or ""),
                    transaction_id=digest,
                )
            )

    return EventBatch(sequence_number=sequence_number, timestamp=timestamp, events=tuple(events))


class FileProgressStore:
    """Remembers the last checkpoint fully handed to the engine."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> int | None:
        try:
            text = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            logger.warning("Ignoring corrupt progress file", path=str(self.path), content=text[:50])
            return None

    def save(self, sequence_number: int) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_text(str(sequence_number), encoding="utf-8")
        tmp_path.replace(self.path)


class CheckpointReader:
    def __init__(
        self,
        checkpoints_dir: str | Path,
        remote_storage: str | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.checkpoints_dir = Path(checkpoints_dir)
        self.remote_storage = remote_storage.rstrip("/") if remote_storage else None
        self._client = client
        self._owns_client = client is None

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, sequence_number: int) -> EventBatch | None:
        """
        Fetch one checkpoint. Returns None when it is not available yet.

        Raises:
            CheckpointFormatError: if the checkpoint exists but cannot be parsed
        """
        payload = await self._read_local(sequence_number)
        if payload is None and self.remote_storage:
            payload = await self._read_remote(sequence_number)
        if payload is None:
            return None
        return parse_checkpoint(payload, expected_sequence=sequence_number)

    async def stream(
        self,
        start: int,
        poll_interval: float = 1.0,
        stop_event: asyncio.Event | None = None,
    ) -> AsyncIterator[EventBatch]:
        """Yield checkpoints from `start` onwards, waiting for missing ones."""
        sequence_number = start
        while stop_event is None or not stop_event.is_set():
            batch = await self.fetch(sequence_number)
            if batch is None:
                await asyncio.sleep(poll_interval)
                continue
            yield batch
            sequence_number += 1

    async def _read_local(self, sequence_number: int) -> dict | None:
        path = self.checkpoints_dir / f"{sequence_number}.json"
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return None
        return self._decode(text, sequence_number, source=str(path))

    async def _read_remote(self, sequence_number: int) -> dict | None:
        url = f"{self.remote_storage}/{sequence_number}.json"
        try:
            response = await self._request_with_retry(url)
        except httpx.RequestError as e:
            logger.warning("Remote checkpoint fetch failed", checkpoint=sequence_number, error=str(e))
            return None

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            logger.warning(
                "Remote checkpoint store returned error",
                checkpoint=sequence_number,
                status_code=response.status_code,
            )
            return None
        return self._decode(response.text, sequence_number, source=url)

    async def _request_with_retry(self, url: str) -> httpx.Response:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(REQUEST_TIMEOUT))

        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = await self._client.get(url)
                if response.status_code in RETRY_STATUS_CODES and attempt < MAX_RETRIES:
                    backoff = BACKOFF_FACTOR * (2 ** (attempt - 1))
                    logger.debug(
                        "Checkpoint store retrying request",
                        attempt=attempt,
                        status_code=response.status_code,
                        backoff_seconds=backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                return response
            except httpx.RequestError as e:
                if attempt >= MAX_RETRIES:
                    raise
                backoff = BACKOFF_FACTOR * (2 ** (attempt - 1))
                logger.debug(
                    "Checkpoint store request error, retrying",
                    attempt=attempt,
                    error=str(e),
                    backoff_seconds=backoff,
                )
                await asyncio.sleep(backoff)
        raise RuntimeError("Checkpoint store retry loop exhausted")

    @staticmethod
    def _decode(text: str, sequence_number: int, source: str) -> dict:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise CheckpointFormatError(
                f"Checkpoint {source} is not valid JSON: {e}", sequence_number=sequence_number
            ) from e
        if not isinstance(payload, dict):
            raise CheckpointFormatError(
                f"Checkpoint {source} must be a JSON object", sequence_number=sequence_number
            )
        return payload
