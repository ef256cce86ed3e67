import asyncio
import json
from datetime import UTC, datetime

import httpx
import pytest

from dapp_ranker.ingestion import (
    CheckpointFormatError,
    CheckpointReader,
    FileProgressStore,
    parse_checkpoint,
)

TIMESTAMP_MS = 1_748_779_200_000  # 2025-06-01T12:00:00Z


def _checkpoint(sequence_number, transactions=None):
    return {
        "sequence_number": sequence_number,
        "timestamp_ms": TIMESTAMP_MS,
        "transactions": transactions or [],
    }


def test_parse_checkpoint_flattens_events():
    payload = _checkpoint(
        42,
        [
            {
                "digest": "tx1",
                "events": [
                    {"package_id": "0xapp1", "sender": "acct-A"},
                    {"package_id": "0xapp2"},
                    {"sender": "acct-B"},
                ],
            },
            {"digest": "tx2", "events": [{"package_id": "0xapp1", "sender": "acct-C"}]},
        ],
    )

    batch = parse_checkpoint(payload)

    assert batch.sequence_number == 42
    assert batch.timestamp == datetime(2025, 6, 1, 12, 0, tzinfo=UTC)
    assert [(e.origin_id, e.sender, e.transaction_id) for e in batch.events] == [
        ("0xapp1", "acct-A", "tx1"),
        ("0xapp2", "", "tx1"),
        ("0xapp1", "acct-C", "tx2"),
    ]


def test_parse_checkpoint_rejects_malformed_header():
    with pytest.raises(CheckpointFormatError):
        parse_checkpoint({"sequence_number": 1})


def test_parse_checkpoint_rejects_out_of_range_timestamp():
    payload = {"sequence_number": 1, "timestamp_ms": 10**30, "transactions": []}

    with pytest.raises(CheckpointFormatError) as exc_info:
        parse_checkpoint(payload, expected_sequence=1)

    assert exc_info.value.sequence_number == 1


def test_parse_checkpoint_rejects_sequence_mismatch():
    with pytest.raises(CheckpointFormatError) as exc_info:
        parse_checkpoint(_checkpoint(5), expected_sequence=6)

    assert exc_info.value.sequence_number == 6


def test_progress_store_round_trip(tmp_path):
    store = FileProgressStore(tmp_path / "progress" / "backfill_progress")

    assert store.load() is None
    store.save(17)

    assert store.load() == 17
    assert not (tmp_path / "progress" / "backfill_progress.tmp").exists()


def test_progress_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "backfill_progress"
    path.write_text("not-a-number")

    assert FileProgressStore(path).load() is None


@pytest.mark.asyncio
async def test_fetch_reads_local_checkpoint(tmp_path):
    (tmp_path / "3.json").write_text(json.dumps(_checkpoint(3)))
    reader = CheckpointReader(tmp_path)

    batch = await reader.fetch(3)

    assert batch.sequence_number == 3
    assert await reader.fetch(4) is None


@pytest.mark.asyncio
async def test_fetch_invalid_json_raises(tmp_path):
    (tmp_path / "3.json").write_text("{not json")

    with pytest.raises(CheckpointFormatError):
        await CheckpointReader(tmp_path).fetch(3)


@pytest.mark.asyncio
async def test_fetch_falls_back_to_remote_storage(tmp_path):
    requested = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        if request.url.path == "/checkpoints/8.json":
            return httpx.Response(200, json=_checkpoint(8))
        return httpx.Response(404)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    reader = CheckpointReader(tmp_path, "https://store.example/checkpoints/", client=client)

    try:
        batch = await reader.fetch(8)
        missing = await reader.fetch(9)
    finally:
        await client.aclose()

    assert batch.sequence_number == 8
    assert missing is None
    assert requested == ["/checkpoints/8.json", "/checkpoints/9.json"]


@pytest.mark.asyncio
async def test_remote_client_error_returns_none(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    reader = CheckpointReader(tmp_path, "https://store.example", client=client)

    try:
        assert await reader.fetch(1) is None
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_stream_yields_in_order_until_stopped(tmp_path):
    for sequence_number in (5, 6):
        (tmp_path / f"{sequence_number}.json").write_text(json.dumps(_checkpoint(sequence_number)))
    reader = CheckpointReader(tmp_path)
    stop_event = asyncio.Event()
    seen = []

    async for batch in reader.stream(5, poll_interval=0.01, stop_event=stop_event):
        seen.append(batch.sequence_number)
        if len(seen) == 2:
            stop_event.set()

    assert seen == [5, 6]
