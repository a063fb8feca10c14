"""Canonical Record Builder: one raw payload → canonical day records.

Drives classification, day bucketing, aggregation and sleep resolution over
every sample in the batch, then finalizes one CanonicalDayRecord per
(user_id, date). Pure apart from logging and metrics: no I/O, no shared
state beyond the accumulators owned by this call.
"""

import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any
from uuid import UUID

import structlog

from health.domain.models import (
    ACCUMULATING_FIELDS,
    CanonicalDayRecord,
    MetricKind,
    RawMetricPayload,
)
from health.ingest.aggregation import AGGREGATION_POLICIES, DayAccumulator, extract_value
from health.ingest.classifier import classify_metric
from health.ingest.day_bucket import sample_day
from health.ingest.sleep_stages import apply_sleep_sample, classify_sleep_sample
from shared.exceptions import IngestBudgetExceededError
from shared.metrics import ingestion_samples_total

logger = structlog.get_logger()

# Check the wall clock every N samples rather than on each one
_BUDGET_CHECK_INTERVAL = 500


@dataclass
class BuildResult:
    """Finished batch plus bookkeeping for the caller's response."""

    records: list[CanonicalDayRecord] = field(default_factory=list)
    samples_accepted: int = 0
    samples_skipped: int = 0
    skip_reasons: Counter = field(default_factory=Counter)
    unclassified_metrics: list[str] = field(default_factory=list)

    @property
    def dates(self) -> list[str]:
        return [r.date.isoformat() for r in self.records]


class DayRecordBuilder:
    """Accumulates one batch. Use ``build_day_records`` for the one-shot path."""

    def __init__(self, user_id: UUID, budget_seconds: float | None = None):
        self.user_id = user_id
        self.budget_seconds = budget_seconds
        self._days: dict[date, DayAccumulator] = {}
        self._result = BuildResult()
        self._seen = 0
        self._deadline = (
            time.monotonic() + budget_seconds if budget_seconds is not None else None
        )

    def _day(self, day: date) -> DayAccumulator:
        """Existing accumulator for the day, or a detached new one.

        New accumulators are only kept once a sample has been applied, so a
        day made of skipped samples never produces an all-zero record.
        """
        return self._days.get(day) or DayAccumulator(user_id=self.user_id, day=day)

    def _keep(self, acc: DayAccumulator) -> None:
        self._days.setdefault(acc.day, acc)

    def _skip(self, kind: MetricKind, reason: str) -> None:
        self._result.samples_skipped += 1
        self._result.skip_reasons[reason] += 1
        logger.debug("sample_skipped", kind=kind.value, reason=reason)
        ingestion_samples_total.labels(kind=kind.value, status="skipped").inc()

    def _accept(self, kind: MetricKind) -> None:
        self._result.samples_accepted += 1
        ingestion_samples_total.labels(kind=kind.value, status="accepted").inc()

    def _check_budget(self) -> None:
        self._seen += 1
        if self._deadline is None or self._seen % _BUDGET_CHECK_INTERVAL:
            return
        if time.monotonic() > self._deadline:
            logger.warning(
                "ingest_budget_exceeded",
                user_id=str(self.user_id),
                samples_processed=self._seen,
                budget_seconds=self.budget_seconds,
            )
            raise IngestBudgetExceededError(self.budget_seconds, self._seen)

    def add_series(self, name: str, samples: list[Any]) -> None:
        kind = classify_metric(name)
        if kind is MetricKind.UNKNOWN:
            self._result.unclassified_metrics.append(name)
            for _ in samples:
                self._check_budget()
                self._skip(kind, "unclassified_metric")
            return

        for sample in samples:
            self._check_budget()
            self.add_sample(kind, sample)

    def add_sample(self, kind: MetricKind, sample: Any) -> None:
        if not isinstance(sample, dict):
            self._skip(kind, "not_an_object")
            return

        day = sample_day(sample)
        if day is None:
            self._skip(kind, "unparseable_timestamp")
            return

        if kind is MetricKind.SLEEP_ANALYSIS:
            # Shape is decided before touching the accumulator
            sleep_sample = classify_sleep_sample(sample)
            acc = self._day(day)
            if apply_sleep_sample(acc, sleep_sample):
                self._keep(acc)
                self._accept(kind)
            else:
                self._skip(kind, "unusable_sleep_sample")
            return

        value = extract_value(sample)
        if value is None:
            self._skip(kind, "no_numeric_value")
            return
        acc = self._day(day)
        if AGGREGATION_POLICIES[kind].apply(acc, value):
            self._keep(acc)
            self._accept(kind)
        else:
            self._skip(kind, "negative_contribution")

    def finalize(self) -> BuildResult:
        """Round accumulators and emit records sorted by date."""
        records = []
        for day in sorted(self._days):
            acc = self._days[day]
            values: dict[str, Any] = dict(acc.points)
            for name in ACCUMULATING_FIELDS:
                raw = acc.sleep.get(name) if name.startswith("sleep_") else acc.sums.get(name)
                values[name] = max(0, round(raw or 0.0))
            records.append(CanonicalDayRecord(user_id=self.user_id, date=day, **values))

        result = self._result
        result.records = records
        result.unclassified_metrics = sorted(set(result.unclassified_metrics))
        if result.samples_skipped:
            logger.info(
                "samples_skipped",
                user_id=str(self.user_id),
                skipped=result.samples_skipped,
                reasons=dict(result.skip_reasons),
            )
        return result


def build_day_records(
    payload: RawMetricPayload | dict[str, Any],
    user_id: UUID,
    budget_seconds: float | None = None,
) -> BuildResult:
    """Normalize one payload into canonical day records.

    An empty or absent metrics list yields an empty result, not an error.
    Raises IngestBudgetExceededError if normalization runs past the budget.
    """
    if not isinstance(payload, RawMetricPayload):
        payload = RawMetricPayload.model_validate(payload or {})

    builder = DayRecordBuilder(user_id, budget_seconds=budget_seconds)
    for series in payload.metrics:
        builder.add_series(series.name, series.data)
    return builder.finalize()
