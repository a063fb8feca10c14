"""Per-kind aggregation policies and the per-(user, date) accumulator.

Every canonical kind maps to exactly one field and one policy in
AGGREGATION_POLICIES. Policies are plain functions so each can be tested
on its own:

- overwrite: last sample seen in the batch wins (point-in-time metrics)
- accumulate: samples are summed within the batch (accumulating metrics)

Sleep is not in this table; it has its own resolver (see sleep_stages).
"""

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any
from uuid import UUID

from health.domain.models import MetricKind

VALUE_KEYS = ("qty", "avg", "value", "min", "max")


class Policy(StrEnum):
    OVERWRITE = "overwrite"
    SUM = "sum"


@dataclass
class DayAccumulator:
    """Mutable state for one (user, date) while a batch is being folded."""

    user_id: UUID
    day: date
    points: dict[str, float] = field(default_factory=dict)
    sums: dict[str, float] = field(default_factory=dict)
    sleep: dict[str, float] = field(default_factory=dict)
    sleep_from_summary: bool = False

    @property
    def key(self) -> tuple[UUID, date]:
        return (self.user_id, self.day)


def to_number(value: Any) -> float | None:
    """Coerce a raw sample value to a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def extract_value(sample: dict[str, Any]) -> float | None:
    """First numeric value among qty, avg, value, min, max."""
    for key in VALUE_KEYS:
        number = to_number(sample.get(key))
        if number is not None:
            return number
    return None


def overwrite(acc: DayAccumulator, field_name: str, value: float) -> bool:
    acc.points[field_name] = value
    return True


def accumulate(acc: DayAccumulator, field_name: str, value: float) -> bool:
    """Add a contribution; negative contributions are rejected."""
    if value < 0:
        return False
    acc.sums[field_name] = acc.sums.get(field_name, 0.0) + value
    return True


POLICY_FUNCS: dict[Policy, Callable[[DayAccumulator, str, float], bool]] = {
    Policy.OVERWRITE: overwrite,
    Policy.SUM: accumulate,
}


@dataclass(frozen=True)
class FieldPolicy:
    field_name: str
    policy: Policy

    def apply(self, acc: DayAccumulator, value: float) -> bool:
        return POLICY_FUNCS[self.policy](acc, self.field_name, value)


AGGREGATION_POLICIES: dict[MetricKind, FieldPolicy] = {
    MetricKind.RESTING_HR: FieldPolicy("resting_hr", Policy.OVERWRITE),
    MetricKind.HRV: FieldPolicy("hrv", Policy.OVERWRITE),
    MetricKind.WEIGHT: FieldPolicy("weight", Policy.OVERWRITE),
    MetricKind.BODY_FAT_PCT: FieldPolicy("body_fat_percentage", Policy.OVERWRITE),
    MetricKind.GLUCOSE: FieldPolicy("glucose", Policy.OVERWRITE),
    MetricKind.BP_SYSTOLIC: FieldPolicy("systolic", Policy.OVERWRITE),
    MetricKind.BP_DIASTOLIC: FieldPolicy("diastolic", Policy.OVERWRITE),
    MetricKind.STEPS: FieldPolicy("steps", Policy.SUM),
    MetricKind.ACTIVE_CALORIES: FieldPolicy("active_calories", Policy.SUM),
    MetricKind.BASAL_CALORIES: FieldPolicy("basal_calories", Policy.SUM),
}
