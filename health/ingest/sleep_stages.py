"""Sleep sample shapes and their contribution to a day's sleep buckets.

Two encodings arrive under the same sleep metric name:

- SleepSegment: one timestamped interval tagged with a stage
  (numeric 0-4 or a stage name)
- SleepSummary: pre-aggregated hour totals for one night

The shape is decided once per sample by ``classify_sleep_sample``, a pure
predicate over field presence. A summary is authoritative for its date
within a batch: it replaces segment totals already folded in and later
segments for the same date are ignored.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog

from health.ingest.aggregation import DayAccumulator, to_number
from health.ingest.day_bucket import END_KEYS, START_KEYS, first_present, parse_timestamp

logger = structlog.get_logger()

SLEEP_BUCKETS = ("sleep_minutes", "sleep_deep_minutes", "sleep_rem_minutes",
                 "sleep_core_minutes", "sleep_awake_minutes")

# Hour-total keys that mark the summary shape
SUMMARY_TOTAL_KEYS = ("totalSleep", "asleep")
SUMMARY_STAGE_KEYS = {
    "deep": "sleep_deep_minutes",
    "rem": "sleep_rem_minutes",
    "core": "sleep_core_minutes",
    "awake": "sleep_awake_minutes",
}

STAGE_KEYS = ("value", "stage")

_NUMERIC_STAGES = {
    0: "sleep_awake_minutes",
    1: "sleep_core_minutes",
    2: "sleep_core_minutes",
    3: "sleep_deep_minutes",
    4: "sleep_rem_minutes",
}

_NAMED_STAGES = {
    "awake": "sleep_awake_minutes",
    "asleep": "sleep_core_minutes",
    "core": "sleep_core_minutes",
    "light": "sleep_core_minutes",
    "unspecified": "sleep_core_minutes",
    "deep": "sleep_deep_minutes",
    "rem": "sleep_rem_minutes",
}


@dataclass(frozen=True)
class SleepSegment:
    start: datetime | None
    end: datetime | None
    stage: Any

    @property
    def minutes(self) -> float | None:
        if self.start is None or self.end is None:
            return None
        return (self.end - self.start).total_seconds() / 60.0


@dataclass(frozen=True)
class SleepSummary:
    total_hours: float | None
    stage_hours: dict[str, float]

    def to_minutes(self) -> dict[str, int]:
        """Hour totals → whole minutes, keyed by canonical sleep field."""
        minutes = {bucket: round(hours * 60) for bucket, hours in self.stage_hours.items()}
        total = self.total_hours
        if total is None:
            total = sum(
                self.stage_hours.get(b, 0.0)
                for b in ("sleep_deep_minutes", "sleep_rem_minutes", "sleep_core_minutes")
            )
        minutes["sleep_minutes"] = round(total * 60)
        return {bucket: minutes.get(bucket, 0) for bucket in SLEEP_BUCKETS}


SleepSample = SleepSegment | SleepSummary


def is_summary_shape(sample: dict[str, Any]) -> bool:
    keys = (*SUMMARY_TOTAL_KEYS, *SUMMARY_STAGE_KEYS)
    return any(to_number(sample.get(k)) is not None for k in keys)


def classify_sleep_sample(sample: dict[str, Any]) -> SleepSample:
    """Decide the sample's shape once. Summary detection runs first."""
    if is_summary_shape(sample):
        total = None
        for key in SUMMARY_TOTAL_KEYS:
            total = to_number(sample.get(key))
            if total is not None:
                break
        stages = {}
        for key, bucket in SUMMARY_STAGE_KEYS.items():
            hours = to_number(sample.get(key))
            if hours is not None and hours >= 0:
                stages[bucket] = hours
        if total is not None and total < 0:
            total = None
        return SleepSummary(total_hours=total, stage_hours=stages)

    return SleepSegment(
        start=parse_timestamp(first_present(sample, START_KEYS)),
        end=parse_timestamp(first_present(sample, END_KEYS)),
        stage=first_present(sample, STAGE_KEYS),
    )


def stage_bucket(stage: Any) -> str | None:
    """Map a numeric or named stage marker to exactly one sleep bucket."""
    if isinstance(stage, bool):
        return None
    if isinstance(stage, (int, float)):
        return _NUMERIC_STAGES.get(int(stage)) if float(stage).is_integer() else None
    if isinstance(stage, str):
        name = stage.strip().lower()
        if name.isdigit():
            return _NUMERIC_STAGES.get(int(name))
        return _NAMED_STAGES.get(name)
    return None


def apply_sleep_sample(acc: DayAccumulator, sample: SleepSample) -> bool:
    """Fold one classified sleep sample into the day. Returns False if skipped."""
    if isinstance(sample, SleepSummary):
        if acc.sleep and not acc.sleep_from_summary:
            logger.info("sleep_summary_superseded_segments", date=acc.day.isoformat())
        acc.sleep = {bucket: float(v) for bucket, v in sample.to_minutes().items()}
        acc.sleep_from_summary = True
        return True

    if acc.sleep_from_summary:
        return False

    minutes = sample.minutes
    if minutes is None or minutes <= 0:
        return False
    bucket = stage_bucket(sample.stage)
    if bucket is None:
        return False

    acc.sleep["sleep_minutes"] = acc.sleep.get("sleep_minutes", 0.0) + minutes
    acc.sleep[bucket] = acc.sleep.get(bucket, 0.0) + minutes
    return True
