"""Ingestion pipeline: raw payload → canonical day records → upsert.

The pipeline is idempotent per batch:
- Same payload always produces the same records
- Upsert by (user_id, date) replaces the stored row wholesale
- Nothing is written when the batch yields no records

Normalization runs to completion before any write, so a payload that
fails normalization (or blows the time budget) leaves storage untouched.
It runs in a worker thread so a large export never stalls the event loop.
Storage failures propagate to the caller; there are no retries here.
"""

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol
from uuid import UUID

import structlog
from starlette.concurrency import run_in_threadpool

from health.domain.models import CanonicalDayRecord, RawMetricPayload
from health.ingest.builder import build_day_records
from shared.metrics import ingestion_records_total, pipeline_duration_seconds

logger = structlog.get_logger()


class DayRecordStore(Protocol):
    """Write side the pipeline needs. HealthRepository satisfies it."""

    async def upsert_day_records(self, records: Sequence[CanonicalDayRecord]) -> int: ...

    async def commit(self) -> None: ...


@dataclass
class IngestResult:
    """Aggregate result from one batch ingestion."""

    records_upserted: int = 0
    dates: list[str] = field(default_factory=list)
    samples_accepted: int = 0
    samples_skipped: int = 0
    unclassified_metrics: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "records_upserted": self.records_upserted,
            "dates": self.dates,
            "samples_accepted": self.samples_accepted,
            "samples_skipped": self.samples_skipped,
            "unclassified_metrics": self.unclassified_metrics,
        }


async def ingest_health_data(
    store: DayRecordStore,
    payload: RawMetricPayload | dict[str, Any],
    user_id: UUID,
    budget_seconds: float | None = None,
) -> IngestResult:
    """Normalize a raw health export and persist one record per (user, date).

    Returns IngestResult with the touched dates and sample counts.
    Raises IngestBudgetExceededError before any write if normalization
    overruns ``budget_seconds``.
    """
    start_time = time.monotonic()
    # CPU-bound; keep the event loop serving other requests meanwhile
    built = await run_in_threadpool(
        build_day_records, payload, user_id, budget_seconds=budget_seconds
    )

    result = IngestResult(
        dates=built.dates,
        samples_accepted=built.samples_accepted,
        samples_skipped=built.samples_skipped,
        unclassified_metrics=built.unclassified_metrics,
    )

    if not built.records:
        ingestion_records_total.labels(status="empty_batch").inc()
        logger.info(
            "ingest_empty_batch",
            user_id=str(user_id),
            samples_skipped=built.samples_skipped,
        )
        pipeline_duration_seconds.observe(time.monotonic() - start_time)
        return result

    result.records_upserted = await store.upsert_day_records(built.records)
    await store.commit()

    ingestion_records_total.labels(status="upserted").inc(result.records_upserted)
    logger.info(
        "day_records_upserted",
        user_id=str(user_id),
        count=result.records_upserted,
        dates=result.dates,
        unclassified=result.unclassified_metrics,
    )
    pipeline_duration_seconds.observe(time.monotonic() - start_time)
    return result
