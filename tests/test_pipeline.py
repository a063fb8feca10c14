"""Tests for the ingestion pipeline (unit-level, in-memory store)."""

import asyncio
from collections.abc import Sequence

import pytest

from health.domain.models import CanonicalDayRecord
from health.pipeline import IngestResult, ingest_health_data
from tests.conftest import USER_ID


class InMemoryStore:
    """Keyed by (user_id, date); upsert replaces the whole row."""

    def __init__(self):
        self.rows: dict = {}
        self.commits = 0
        self.upsert_calls = 0

    async def upsert_day_records(self, records: Sequence[CanonicalDayRecord]) -> int:
        self.upsert_calls += 1
        for record in records:
            self.rows[record.key] = record
        return len(records)

    async def commit(self) -> None:
        self.commits += 1


class FailingStore(InMemoryStore):
    async def upsert_day_records(self, records):
        raise ConnectionError("database unavailable")


async def test_ingest_persists_records(segments_export):
    store = InMemoryStore()
    result = await ingest_health_data(store, segments_export, USER_ID)

    assert isinstance(result, IngestResult)
    assert result.records_upserted == 1
    assert result.dates == ["2024-03-14"]
    assert result.unclassified_metrics == ["body_temperature"]
    assert store.commits == 1
    stored = next(iter(store.rows.values()))
    assert stored.sleep_minutes == 480


async def test_replay_is_idempotent(segments_export):
    store = InMemoryStore()
    await ingest_health_data(store, segments_export, USER_ID)
    first = dict(store.rows)

    await ingest_health_data(store, segments_export, USER_ID)
    assert store.rows == first
    assert len(store.rows) == 1


async def test_later_batch_replaces_row(segments_export):
    store = InMemoryStore()
    await ingest_health_data(store, segments_export, USER_ID)

    steps_only = {"metrics": [{"name": "step_count", "data": [{"date": "2024-03-14", "qty": 100}]}]}
    await ingest_health_data(store, steps_only, USER_ID)

    (row,) = store.rows.values()
    assert row.steps == 100
    assert row.sleep_minutes == 0
    assert row.hrv is None


async def test_empty_batch_writes_nothing():
    store = InMemoryStore()
    result = await ingest_health_data(store, {"data": {"metrics": []}}, USER_ID)

    assert result.records_upserted == 0
    assert result.dates == []
    assert store.upsert_calls == 0
    assert store.commits == 0


async def test_store_failure_propagates(segments_export):
    store = FailingStore()
    with pytest.raises(ConnectionError):
        await ingest_health_data(store, segments_export, USER_ID)
    assert store.commits == 0


async def test_result_to_dict(malformed_export):
    result = await ingest_health_data(InMemoryStore(), malformed_export, USER_ID)
    assert result.to_dict() == {
        "records_upserted": 1,
        "dates": ["2024-03-15"],
        "samples_accepted": 1,
        "samples_skipped": 8,
        "unclassified_metrics": ["body_mass_index"],
    }


async def test_normalization_leaves_event_loop_responsive():
    samples = [{"date": "2024-03-14", "qty": 1} for _ in range(50_000)]
    payload = {"metrics": [{"name": "step_count", "data": samples}]}
    ticks = 0

    async def heartbeat():
        nonlocal ticks
        while True:
            await asyncio.sleep(0.005)
            ticks += 1

    task = asyncio.create_task(heartbeat())
    await asyncio.sleep(0)
    try:
        result = await ingest_health_data(InMemoryStore(), payload, USER_ID)
        beats_during_ingest = ticks
    finally:
        task.cancel()

    assert result.samples_accepted == 50_000
    # Other coroutines keep running while the batch is normalized
    assert beats_during_ingest > 0
