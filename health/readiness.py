"""Daily readiness score: one CanonicalDayRecord → 0-100 composite.

Pure: no database, no settings lookups. Four measured subscores (sleep, HRV,
resting HR, recovery) plus a fixed subjective placeholder are combined with
fixed weights. If any measured subscore is missing the total is withheld
(status awaiting_sync); weights are never renormalized over what is present.

Subscores:
    sleep       minutes vs target, minus stage-ratio penalties
    hrv         linear 20 ms → 0 ... 60 ms → 100
    resting_hr  linear 85 bpm → 0 ... 55 bpm → 100 (inverted)
    recovery    100 - 50 * |load - 1.0|, load from steps and active calories
    subjective  50 until direct user input exists
"""

from dataclasses import dataclass

from health.domain.models import (
    CanonicalDayRecord,
    ReadinessResult,
    ReadinessSubscores,
    ReportStatus,
)

WEIGHTS = {
    "sleep": 0.30,
    "hrv": 0.25,
    "resting_hr": 0.20,
    "recovery": 0.15,
    "subjective": 0.10,
}

MEASURED = ("sleep", "hrv", "resting_hr", "recovery")
ALL_CATEGORIES = (*MEASURED, "subjective")

SUBJECTIVE_PLACEHOLDER = 50
AWAITING_SYNC = "Awaiting sync"

# Stage-ratio penalty bands (fractions of total sleep minutes)
DEEP_LOW, DEEP_LOW_PENALTY = 0.08, 5
DEEP_HIGH, DEEP_HIGH_PENALTY = 0.30, 3
REM_LOW, REM_LOW_PENALTY = 0.12, 4
AWAKE_HIGH, AWAKE_HIGH_PENALTY = 0.12, 5

SHORT_SLEEP_MINUTES = 6 * 60
HIGH_LOAD = 2.0
LOW_LOAD = 0.5

_RECOMMENDATIONS = (
    (85, "Readiness is high. You can push intensity today, still warm up properly."),
    (70, "Readiness is moderate. One main heavy lift, keep volume controlled, prioritize sleep tonight."),
    (50, "Readiness is low-moderate. Prefer technique work, easy cardio, and recovery."),
)
_LOW_RECOMMENDATION = "Readiness is low. Focus on rest, hydration, and sleep, avoid hard training."


@dataclass(frozen=True)
class ReadinessConfig:
    sleep_target_minutes: int = 480
    hrv_low_ms: float = 20.0
    hrv_good_ms: float = 60.0
    resting_hr_good_bpm: float = 55.0
    resting_hr_high_bpm: float = 85.0
    steps_reference: int = 8000
    active_calories_reference: int = 500


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def sleep_subscore(record: CanonicalDayRecord, target_minutes: int) -> int | None:
    total = record.sleep_minutes
    if total <= 0:
        return None
    score = clamp(round(total / target_minutes * 100))

    deep, rem, awake = record.sleep_deep_minutes, record.sleep_rem_minutes, record.sleep_awake_minutes
    has_stages = any(m > 0 for m in (deep, rem, record.sleep_core_minutes, awake))
    if has_stages:
        deep_pct, rem_pct, awake_pct = deep / total, rem / total, awake / total
        penalty = 0
        if 0 < deep_pct < DEEP_LOW:
            penalty += DEEP_LOW_PENALTY
        if deep_pct > DEEP_HIGH:
            penalty += DEEP_HIGH_PENALTY
        if 0 < rem_pct < REM_LOW:
            penalty += REM_LOW_PENALTY
        if awake_pct > AWAKE_HIGH:
            penalty += AWAKE_HIGH_PENALTY
        score = clamp(score - penalty)
    return int(score)


def hrv_subscore(hrv: float | None, config: ReadinessConfig) -> int | None:
    if hrv is None or hrv <= 0:
        return None
    scaled = (hrv - config.hrv_low_ms) / (config.hrv_good_ms - config.hrv_low_ms) * 100
    return int(clamp(round(scaled)))


def resting_hr_subscore(resting_hr: float | None, config: ReadinessConfig) -> int | None:
    if resting_hr is None or resting_hr <= 0:
        return None
    high, good = config.resting_hr_high_bpm, config.resting_hr_good_bpm
    return int(clamp(round((high - resting_hr) / (high - good) * 100)))


def activity_load(record: CanonicalDayRecord, config: ReadinessConfig) -> float | None:
    """Load relative to a moderate day; 1.0 means on reference.

    Each observed signal is a ratio to its reference and the load is their
    mean, so 8000 steps with 500 active kcal is 1.0 and so is either alone.
    A plain sum of the ratios would put a day at both references at 2.0 and
    score it as overtraining; half of each reference is a 0.5 load here.
    """
    ratios = []
    if record.steps > 0:
        ratios.append(record.steps / config.steps_reference)
    if record.active_calories > 0:
        ratios.append(record.active_calories / config.active_calories_reference)
    if not ratios:
        return None
    return sum(ratios) / len(ratios)


def recovery_subscore(load: float | None) -> int | None:
    if load is None:
        return None
    return int(clamp(round(100 - 50 * abs(load - 1.0))))


def recommendation_for(total: int | None) -> str:
    if total is None:
        return AWAITING_SYNC
    for threshold, text in _RECOMMENDATIONS:
        if total >= threshold:
            return text
    return _LOW_RECOMMENDATION


def _tips(record: CanonicalDayRecord, subscores: ReadinessSubscores, load: float | None,
          config: ReadinessConfig) -> list[str]:
    tips = []
    if subscores.sleep is None:
        tips.append("Sleep data not synced for this day.")
    elif record.sleep_minutes < SHORT_SLEEP_MINUTES:
        tips.append("Sleep was under 6 hours. A longer night will boost readiness most.")

    if subscores.hrv is None:
        tips.append("HRV data not synced for this day.")
    elif record.hrv < config.hrv_low_ms:
        tips.append("HRV is below the low reference. Consider lighter training and more recovery.")

    if subscores.resting_hr is None:
        tips.append("Resting HR data not synced for this day.")
    elif record.resting_hr >= config.resting_hr_high_bpm:
        tips.append("Resting HR is elevated. That often correlates with stress or poor recovery.")

    if load is None:
        tips.append("Activity data not synced for this day.")
    elif load > HIGH_LOAD:
        tips.append("High activity load. Keep volume controlled if recovery signals are mediocre.")
    elif load < LOW_LOAD:
        tips.append("Very light activity so far. An easy walk helps recovery more than full rest.")
    return tips


def compute_readiness(
    record: CanonicalDayRecord | None, config: ReadinessConfig | None = None
) -> ReadinessResult:
    """Score one day. Never raises for missing data."""
    config = config or ReadinessConfig()

    if record is None:
        return ReadinessResult(
            date=None,
            total=None,
            status=ReportStatus.AWAITING_SYNC,
            message=AWAITING_SYNC,
            subscores=ReadinessSubscores(),
            weights=dict(WEIGHTS),
            missing=list(ALL_CATEGORIES),
            tips=["No daily record found for this date."],
            recommendation=AWAITING_SYNC,
        )

    load = activity_load(record, config)
    subscores = ReadinessSubscores(
        sleep=sleep_subscore(record, config.sleep_target_minutes),
        hrv=hrv_subscore(record.hrv, config),
        resting_hr=resting_hr_subscore(record.resting_hr, config),
        recovery=recovery_subscore(load),
        subjective=SUBJECTIVE_PLACEHOLDER,
    )
    missing = [name for name in MEASURED if getattr(subscores, name) is None]

    total = None
    if not missing:
        weighted = sum(getattr(subscores, name) * weight for name, weight in WEIGHTS.items())
        total = int(clamp(round(weighted)))

    status = ReportStatus.OK if total is not None else ReportStatus.AWAITING_SYNC
    return ReadinessResult(
        date=record.date,
        total=total,
        status=status,
        message=f"{total}/100" if total is not None else AWAITING_SYNC,
        subscores=subscores,
        weights=dict(WEIGHTS),
        used={
            "sleep_minutes": record.sleep_minutes,
            "deep_minutes": record.sleep_deep_minutes,
            "rem_minutes": record.sleep_rem_minutes,
            "core_minutes": record.sleep_core_minutes,
            "awake_minutes": record.sleep_awake_minutes,
            "hrv_ms": record.hrv,
            "resting_hr_bpm": record.resting_hr,
            "steps": record.steps,
            "active_calories": record.active_calories,
            "activity_load": round(load, 2) if load is not None else None,
        },
        missing=missing,
        tips=_tips(record, subscores, load, config),
        recommendation=recommendation_for(total),
    )
