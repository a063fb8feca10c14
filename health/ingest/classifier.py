"""Vendor metric name → canonical MetricKind.

Names arrive in many spellings (``heart_rate_variability_sdnn``,
``HeartRateVariabilitySDNN``, ``active_energy_burned``, ``weight_body_mass``).
They are compacted to lowercase alphanumerics and matched by substring
against an ordered token table; the first hit wins.
"""

import re

import structlog

from health.domain.models import MetricKind
from shared.metrics import unclassified_metrics_total

logger = structlog.get_logger()

_NON_ALNUM = re.compile(r"[^a-z0-9]")

# Order matters: more specific tokens must precede the tokens they contain.
_NAME_TOKENS: tuple[tuple[str, MetricKind], ...] = (
    # Look-alikes that must not fall through to WEIGHT
    ("bodymassindex", MetricKind.UNKNOWN),
    ("leanbodymass", MetricKind.UNKNOWN),
    ("restingheartrate", MetricKind.RESTING_HR),
    ("heartratevariability", MetricKind.HRV),
    ("hrv", MetricKind.HRV),
    ("stepcount", MetricKind.STEPS),
    ("steps", MetricKind.STEPS),
    ("activeenergy", MetricKind.ACTIVE_CALORIES),
    ("activecalories", MetricKind.ACTIVE_CALORIES),
    ("basalenergy", MetricKind.BASAL_CALORIES),
    ("basalcalories", MetricKind.BASAL_CALORIES),
    ("bodyfat", MetricKind.BODY_FAT_PCT),
    ("bodymass", MetricKind.WEIGHT),
    ("weight", MetricKind.WEIGHT),
    ("glucose", MetricKind.GLUCOSE),
    ("systolic", MetricKind.BP_SYSTOLIC),
    ("diastolic", MetricKind.BP_DIASTOLIC),
    ("sleepanalysis", MetricKind.SLEEP_ANALYSIS),
)


def compact_name(name: str) -> str:
    return _NON_ALNUM.sub("", (name or "").lower())


def classify_metric(name: str | None) -> MetricKind:
    """Map a raw metric name to its canonical kind. Never raises."""
    compact = compact_name(name or "")
    if compact:
        for token, kind in _NAME_TOKENS:
            if token in compact:
                if kind is MetricKind.UNKNOWN:
                    break
                return kind

    unclassified_metrics_total.inc()
    logger.info("metric_unclassified", name=name)
    return MetricKind.UNKNOWN
