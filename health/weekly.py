"""Weekly trend report: two 7-day windows of day records → WeeklyReport.

Pure. The current window is compared against the previous one only where
both windows have enough populated days for a metric (the data-sufficiency
gate); otherwise the comparison is null and the narrative says the baseline
is not available yet. Users with thin history get sync encouragement
instead of training advice.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date, timedelta

from health.domain.models import CanonicalDayRecord, ReportStatus, WeeklyReport, WeeklyStats

WINDOW_DAYS = 7
TRACKED = ("sleep", "hrv", "resting_hr")

HRV_CHANGE_THRESHOLD_PCT = 5.0
RESTING_HR_CHANGE_THRESHOLD_BPM = 2.0
MAX_ACTION_ITEMS = 3

BEDTIME_SMALL_MINUTES = 15
BEDTIME_LARGE_MINUTES = 30

ACTION_EARLIER_BEDTIME = "Go to bed {minutes} minutes earlier to close the sleep gap."
ACTION_REST_DAY = "Add one extra rest or low-intensity day mid-week."
ACTION_SYNC_MORE = "Sync a few more days to unlock reliable weekly trends."
ACTION_MAINTAIN = "Maintain consistency: keep your current sleep and training routine."


@dataclass(frozen=True)
class WeeklyConfig:
    sleep_goal_minutes: int = 450
    sleep_tolerance_minutes: int = 10
    min_days_for_ok: int = 4
    min_days_for_compare: int = 4


def trend_windows(week_end: date) -> tuple[date, date, date, date]:
    """(week_start, week_end, prev_start, prev_end) for the 7 days ending at week_end."""
    week_start = week_end - timedelta(days=WINDOW_DAYS - 1)
    prev_end = week_start - timedelta(days=1)
    prev_start = prev_end - timedelta(days=WINDOW_DAYS - 1)
    return week_start, week_end, prev_start, prev_end


_METRIC_VALUE: dict[str, Callable[[CanonicalDayRecord], float | None]] = {
    # Zero sleep minutes means no sleep was synced for that day
    "sleep": lambda r: r.sleep_minutes if r.sleep_minutes > 0 else None,
    "hrv": lambda r: r.hrv,
    "resting_hr": lambda r: r.resting_hr,
}


@dataclass
class WindowSummary:
    synced_days: int
    populated: dict[str, int]
    averages: dict[str, float | None]

    @classmethod
    def of(cls, records: Sequence[CanonicalDayRecord]) -> "WindowSummary":
        populated, averages = {}, {}
        for metric, getter in _METRIC_VALUE.items():
            values = [v for v in (getter(r) for r in records) if v is not None]
            populated[metric] = len(values)
            averages[metric] = sum(values) / len(values) if values else None
        synced = sum(1 for r in records if r.has_data())
        return cls(synced_days=synced, populated=populated, averages=averages)


def pct_change(current: float | None, previous: float | None) -> float | None:
    if current is None or previous is None or previous == 0:
        return None
    return (current - previous) / previous * 100


def minutes_to_hm(minutes: float) -> str:
    total = max(0, round(minutes))
    return f"{total // 60}h {total % 60:02d}m"


def _round(value: float | None, digits: int = 1) -> float | None:
    return round(value, digits) if value is not None else None


def _hrv_line(current: float | None, change: float | None, can_compare: bool) -> str:
    if current is None:
        return "HRV awaiting sync"
    if not can_compare or change is None:
        return "HRV baseline not available yet"
    if change > HRV_CHANGE_THRESHOLD_PCT:
        return f"HRV up by {round(change)}%"
    if change < -HRV_CHANGE_THRESHOLD_PCT:
        return f"HRV down by {abs(round(change))}%"
    return "HRV stable"


def _resting_hr_line(current: float | None, delta: float | None, can_compare: bool) -> str:
    if current is None:
        return "Resting HR awaiting sync"
    if not can_compare or delta is None:
        return "Resting HR baseline not available yet"
    if delta <= -RESTING_HR_CHANGE_THRESHOLD_BPM:
        return f"Resting HR down by {abs(round(delta))} bpm"
    if delta >= RESTING_HR_CHANGE_THRESHOLD_BPM:
        return f"Resting HR up by {round(delta)} bpm"
    return "Resting HR stable"


def _sleep_deficit(current: float | None, config: WeeklyConfig) -> float | None:
    """Minutes below goal, or None when sleep is within tolerance or unknown."""
    if current is None:
        return None
    deficit = config.sleep_goal_minutes - current
    return deficit if deficit > config.sleep_tolerance_minutes else None


def _sleep_line(current: float | None, config: WeeklyConfig) -> str:
    if current is None:
        return "Sleep duration awaiting sync"
    if _sleep_deficit(current, config) is not None:
        return "Sleep duration below target"
    return "Sleep duration on target"


def _action_items(
    status: ReportStatus,
    sleep_deficit: float | None,
    hrv_change: float | None,
    rhr_delta: float | None,
) -> list[str]:
    if status is not ReportStatus.OK:
        return [ACTION_SYNC_MORE]

    items = []
    if sleep_deficit is not None:
        minutes = BEDTIME_LARGE_MINUTES if sleep_deficit >= BEDTIME_LARGE_MINUTES else BEDTIME_SMALL_MINUTES
        items.append(ACTION_EARLIER_BEDTIME.format(minutes=minutes))

    hrv_dropped = hrv_change is not None and hrv_change < -HRV_CHANGE_THRESHOLD_PCT
    rhr_rose = rhr_delta is not None and rhr_delta >= RESTING_HR_CHANGE_THRESHOLD_BPM
    if hrv_dropped or rhr_rose:
        items.append(ACTION_REST_DAY)

    if not items:
        items.append(ACTION_MAINTAIN)
    return list(dict.fromkeys(items))[:MAX_ACTION_ITEMS]


def build_weekly_report(
    current: Sequence[CanonicalDayRecord],
    previous: Sequence[CanonicalDayRecord],
    week_start: date,
    week_end: date,
    config: WeeklyConfig | None = None,
) -> WeeklyReport:
    """Compare the current 7-day window with the previous one.

    Never raises for missing data: thin windows degrade to partial or
    awaiting_sync with null comparisons.
    """
    config = config or WeeklyConfig()
    cur = WindowSummary.of(current)
    prev = WindowSummary.of(previous)

    if cur.synced_days == 0:
        status = ReportStatus.AWAITING_SYNC
    elif cur.synced_days < config.min_days_for_ok:
        status = ReportStatus.PARTIAL
    else:
        status = ReportStatus.OK

    can_compare = {
        m: cur.populated[m] >= config.min_days_for_compare
        and prev.populated[m] >= config.min_days_for_compare
        for m in TRACKED
    }

    hrv_change = (
        pct_change(cur.averages["hrv"], prev.averages["hrv"]) if can_compare["hrv"] else None
    )
    rhr_delta = None
    if can_compare["resting_hr"]:
        cur_rhr, prev_rhr = cur.averages["resting_hr"], prev.averages["resting_hr"]
        if cur_rhr is not None and prev_rhr is not None:
            rhr_delta = cur_rhr - prev_rhr

    sleep_avg = cur.averages["sleep"]
    hrv_line = _hrv_line(cur.averages["hrv"], hrv_change, can_compare["hrv"])
    rhr_line = _resting_hr_line(cur.averages["resting_hr"], rhr_delta, can_compare["resting_hr"])
    sleep_line = _sleep_line(sleep_avg, config)

    if status is ReportStatus.AWAITING_SYNC:
        summary = "No data synced for this week yet. Sync your device to build a weekly report."
    else:
        parts = [f"{hrv_line}.", f"{rhr_line}.", f"{sleep_line}."]
        if status is ReportStatus.PARTIAL:
            parts.append(
                f"Only {cur.synced_days} of {WINDOW_DAYS} days synced so far, "
                "not enough data for reliable trends yet."
            )
        summary = " ".join(parts)

    goal_hm = minutes_to_hm(config.sleep_goal_minutes)
    trends = [
        f"Average sleep: {minutes_to_hm(sleep_avg)} (goal {goal_hm})"
        if sleep_avg is not None
        else "Average sleep: awaiting sync",
        hrv_line,
        rhr_line,
    ]

    stats = WeeklyStats(
        avg_sleep_minutes=round(sleep_avg) if sleep_avg is not None else None,
        sleep_goal_minutes=config.sleep_goal_minutes,
        avg_hrv_ms=_round(cur.averages["hrv"]),
        avg_resting_hr_bpm=_round(cur.averages["resting_hr"]),
        prev_avg_sleep_minutes=(
            round(prev.averages["sleep"]) if prev.averages["sleep"] is not None else None
        ),
        prev_avg_hrv_ms=_round(prev.averages["hrv"]),
        prev_avg_resting_hr_bpm=_round(prev.averages["resting_hr"]),
        hrv_change_pct=_round(hrv_change),
        resting_hr_change_bpm=_round(rhr_delta),
        current_synced_days=cur.synced_days,
        previous_synced_days=prev.synced_days,
        current_populated_days=cur.populated,
        previous_populated_days=prev.populated,
        can_compare=can_compare,
    )

    return WeeklyReport(
        week_start=week_start,
        week_end=week_end,
        status=status,
        summary=summary,
        trends=trends,
        action_items=_action_items(status, _sleep_deficit(sleep_avg, config), hrv_change, rhr_delta),
        stats=stats,
        missing=[m for m in TRACKED if cur.populated[m] == 0],
    )
