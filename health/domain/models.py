"""Canonical health domain models.

One CanonicalDayRecord per (user_id, date) is the single source of truth that
readiness and weekly reports read from.

Design principles:
- Point-in-time fields are nullable: NULL = "never observed in the batch", not "zero"
- Accumulating fields default to zero and are never negative
- Every number is finite; NaN and infinities are rejected at the model boundary
- Derived artifacts (ReadinessResult, WeeklyReport) hold no identity beyond their inputs
"""

from datetime import date
from enum import StrEnum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MetricKind(StrEnum):
    RESTING_HR = "resting_hr"
    HRV = "hrv"
    STEPS = "steps"
    ACTIVE_CALORIES = "active_calories"
    BASAL_CALORIES = "basal_calories"
    WEIGHT = "weight"
    BODY_FAT_PCT = "body_fat_pct"
    GLUCOSE = "glucose"
    BP_SYSTOLIC = "bp_systolic"
    BP_DIASTOLIC = "bp_diastolic"
    SLEEP_ANALYSIS = "sleep_analysis"
    UNKNOWN = "unknown"


class ReportStatus(StrEnum):
    OK = "ok"
    PARTIAL = "partial"
    AWAITING_SYNC = "awaiting_sync"


# --- Ingestion envelope ---


class MetricSeries(BaseModel):
    """One named vendor series. Samples stay loosely typed on purpose: the
    ingest layer inspects their shape field by field."""

    model_config = ConfigDict(extra="allow")

    name: str = ""
    units: str | None = None
    data: list[Any] = Field(default_factory=list)


class RawMetricPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    metrics: list[MetricSeries] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def unwrap_envelope(cls, value: Any) -> Any:
        """Accept the Health Auto Export envelope {"data": {"metrics": [...]}}."""
        if isinstance(value, dict) and "metrics" not in value:
            inner = value.get("data")
            if isinstance(inner, dict):
                return inner
            if inner is None:
                return {}
        return value


# --- Canonical record ---

POINT_IN_TIME_FIELDS = (
    "resting_hr",
    "hrv",
    "weight",
    "body_fat_percentage",
    "glucose",
    "systolic",
    "diastolic",
)

ACCUMULATING_FIELDS = (
    "steps",
    "active_calories",
    "basal_calories",
    "sleep_minutes",
    "sleep_deep_minutes",
    "sleep_rem_minutes",
    "sleep_core_minutes",
    "sleep_awake_minutes",
)


class CanonicalDayRecord(BaseModel):
    """Normalized health data for one user on one calendar date."""

    model_config = ConfigDict(allow_inf_nan=False, from_attributes=True)

    # Identity
    user_id: UUID
    date: date

    # Point-in-time (overwrite)
    resting_hr: float | None = None
    hrv: float | None = None
    weight: float | None = None
    body_fat_percentage: float | None = None
    glucose: float | None = None
    systolic: float | None = None
    diastolic: float | None = None

    # Accumulating (sum)
    steps: int = Field(0, ge=0)
    active_calories: int = Field(0, ge=0)
    basal_calories: int = Field(0, ge=0)
    sleep_minutes: int = Field(0, ge=0)
    sleep_deep_minutes: int = Field(0, ge=0)
    sleep_rem_minutes: int = Field(0, ge=0)
    sleep_core_minutes: int = Field(0, ge=0)
    sleep_awake_minutes: int = Field(0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def null_accumulators_to_zero(cls, value: Any) -> Any:
        """Rows written by older clients may hold NULL in summed columns."""
        if isinstance(value, dict):
            return {k: (0 if k in ACCUMULATING_FIELDS and v is None else v) for k, v in value.items()}
        return value

    @property
    def key(self) -> tuple[UUID, date]:
        return (self.user_id, self.date)

    def has_data(self) -> bool:
        """True when at least one metric was observed for this day."""
        if any(getattr(self, f) is not None for f in POINT_IN_TIME_FIELDS):
            return True
        return any(getattr(self, f) > 0 for f in ACCUMULATING_FIELDS)


# --- Readiness ---


class ReadinessSubscores(BaseModel):
    sleep: int | None = None
    hrv: int | None = None
    resting_hr: int | None = None
    recovery: int | None = None
    subjective: int = 50


class ReadinessResult(BaseModel):
    date: date | None
    total: int | None = Field(None, ge=0, le=100)
    status: ReportStatus
    message: str
    subscores: ReadinessSubscores = Field(default_factory=ReadinessSubscores)
    weights: dict[str, float] = Field(default_factory=dict)
    used: dict[str, float | int | None] = Field(default_factory=dict)
    missing: list[str] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)
    recommendation: str


# --- Weekly report ---


class WeeklyStats(BaseModel):
    avg_sleep_minutes: int | None = None
    sleep_goal_minutes: int
    avg_hrv_ms: float | None = None
    avg_resting_hr_bpm: float | None = None
    prev_avg_sleep_minutes: int | None = None
    prev_avg_hrv_ms: float | None = None
    prev_avg_resting_hr_bpm: float | None = None
    hrv_change_pct: float | None = None
    resting_hr_change_bpm: float | None = None
    current_synced_days: int = 0
    previous_synced_days: int = 0
    current_populated_days: dict[str, int] = Field(default_factory=dict)
    previous_populated_days: dict[str, int] = Field(default_factory=dict)
    can_compare: dict[str, bool] = Field(default_factory=dict)


class WeeklyReport(BaseModel):
    week_start: date
    week_end: date
    title: str = "Last 7 days"
    status: ReportStatus
    summary: str
    trends: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    stats: WeeklyStats
    missing: list[str] = Field(default_factory=list)
