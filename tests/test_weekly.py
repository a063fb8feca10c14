"""Tests for the weekly trend engine."""

from datetime import date, timedelta

import pytest

from health.domain.models import ReportStatus
from health.weekly import (
    ACTION_MAINTAIN,
    ACTION_REST_DAY,
    ACTION_SYNC_MORE,
    WeeklyConfig,
    build_weekly_report,
    minutes_to_hm,
    pct_change,
    trend_windows,
)
from tests.conftest import make_record

WEEK_START, WEEK_END, PREV_START, PREV_END = trend_windows(date(2024, 3, 14))


def _window(start: date, days: int, **fields):
    return [make_record(start + timedelta(days=i), **fields) for i in range(days)]


def _report(current, previous, config=None):
    return build_weekly_report(current, previous, WEEK_START, WEEK_END, config)


class TestHelpers:
    def test_trend_windows(self):
        assert trend_windows(date(2024, 3, 14)) == (
            date(2024, 3, 8),
            date(2024, 3, 14),
            date(2024, 3, 1),
            date(2024, 3, 7),
        )

    def test_pct_change(self):
        assert pct_change(50, 60) == pytest.approx(-16.667, abs=1e-3)
        assert pct_change(50, None) is None
        assert pct_change(50, 0) is None

    def test_minutes_to_hm(self):
        assert minutes_to_hm(450) == "7h 30m"
        assert minutes_to_hm(425.6) == "7h 06m"


class TestComparisons:
    def test_hrv_down(self):
        current = _window(WEEK_START, 7, hrv=50.0, resting_hr=60.0, sleep_minutes=450)
        previous = _window(PREV_START, 7, hrv=60.0, resting_hr=60.0, sleep_minutes=450)
        report = _report(current, previous)

        assert report.status is ReportStatus.OK
        assert report.stats.hrv_change_pct == pytest.approx(-16.7)
        assert "HRV down by 17%" in report.summary
        assert "HRV down by 17%" in report.trends
        assert "Resting HR stable" in report.trends
        assert report.trends[0] == "Average sleep: 7h 30m (goal 7h 30m)"
        assert report.action_items == [ACTION_REST_DAY]
        assert report.missing == []

    def test_hrv_up_and_resting_hr_down(self):
        current = _window(WEEK_START, 5, hrv=66.0, resting_hr=55.0, sleep_minutes=460)
        previous = _window(PREV_START, 5, hrv=60.0, resting_hr=58.0, sleep_minutes=460)
        report = _report(current, previous)

        assert "HRV up by 10%" in report.trends
        assert "Resting HR down by 3 bpm" in report.trends
        assert report.stats.resting_hr_change_bpm == -3.0
        assert report.action_items == [ACTION_MAINTAIN]

    def test_resting_hr_up_triggers_single_rest_day(self):
        current = _window(WEEK_START, 7, hrv=40.0, resting_hr=62.0, sleep_minutes=450)
        previous = _window(PREV_START, 7, hrv=60.0, resting_hr=58.0, sleep_minutes=450)
        report = _report(current, previous)

        assert "Resting HR up by 4 bpm" in report.trends
        assert report.action_items == [ACTION_REST_DAY]

    def test_sleep_deficit_bedtime_action(self):
        current = _window(WEEK_START, 7, hrv=60.0, resting_hr=58.0, sleep_minutes=400)
        previous = _window(PREV_START, 7, hrv=60.0, resting_hr=58.0, sleep_minutes=400)
        report = _report(current, previous)

        assert "Sleep duration below target" in report.summary
        assert report.action_items == ["Go to bed 30 minutes earlier to close the sleep gap."]

    def test_small_sleep_deficit(self):
        current = _window(WEEK_START, 7, sleep_minutes=430)
        report = _report(current, [])
        assert report.action_items[0] == "Go to bed 15 minutes earlier to close the sleep gap."

    def test_sleep_within_tolerance(self):
        report = _report(_window(WEEK_START, 7, sleep_minutes=445), [])
        assert "Sleep duration on target" in report.summary
        assert report.action_items == [ACTION_MAINTAIN]


class TestDataSufficiency:
    def test_partial_week(self):
        current = _window(WEEK_START, 2, hrv=50.0, resting_hr=60.0, sleep_minutes=420)
        previous = _window(PREV_START, 7, hrv=60.0, resting_hr=60.0, sleep_minutes=420)
        report = _report(current, previous)

        assert report.status is ReportStatus.PARTIAL
        assert report.stats.hrv_change_pct is None
        assert report.stats.resting_hr_change_bpm is None
        assert report.stats.can_compare == {"sleep": False, "hrv": False, "resting_hr": False}
        assert "not enough data" in report.summary
        assert "Only 2 of 7 days synced so far" in report.summary
        assert report.action_items == [ACTION_SYNC_MORE]

    def test_awaiting_sync(self):
        report = _report([], _window(PREV_START, 7, hrv=60.0))

        assert report.status is ReportStatus.AWAITING_SYNC
        assert report.summary.startswith("No data synced for this week yet.")
        assert report.trends == [
            "Average sleep: awaiting sync",
            "HRV awaiting sync",
            "Resting HR awaiting sync",
        ]
        assert report.missing == ["sleep", "hrv", "resting_hr"]
        assert report.action_items == [ACTION_SYNC_MORE]

    def test_comparison_gated_per_metric(self):
        current = _window(WEEK_START, 7, hrv=50.0, resting_hr=60.0)
        previous = _window(PREV_START, 3, hrv=60.0, resting_hr=55.0) + _window(
            PREV_START + timedelta(days=3), 4, resting_hr=55.0
        )
        report = _report(current, previous)

        assert report.stats.can_compare["hrv"] is False
        assert report.stats.can_compare["resting_hr"] is True
        assert report.stats.hrv_change_pct is None
        assert "HRV baseline not available yet" in report.trends
        assert report.stats.resting_hr_change_bpm == 5.0

    def test_no_previous_window(self):
        report = _report(_window(WEEK_START, 7, hrv=55.0, sleep_minutes=450), [])
        assert report.status is ReportStatus.OK
        assert report.stats.hrv_change_pct is None
        assert report.stats.previous_synced_days == 0

    def test_empty_records_do_not_count_as_synced(self):
        report = _report(_window(WEEK_START, 7), [])
        assert report.status is ReportStatus.AWAITING_SYNC

    def test_custom_thresholds(self):
        current = _window(WEEK_START, 2, hrv=50.0)
        previous = _window(PREV_START, 2, hrv=60.0)
        config = WeeklyConfig(min_days_for_ok=2, min_days_for_compare=2)
        report = _report(current, previous, config)

        assert report.status is ReportStatus.OK
        assert report.stats.hrv_change_pct == pytest.approx(-16.7)


class TestStats:
    def test_averages(self):
        current = [
            make_record(WEEK_START, sleep_minutes=420, hrv=50.0),
            make_record(WEEK_START + timedelta(days=1), sleep_minutes=480, hrv=55.0),
            make_record(WEEK_START + timedelta(days=2), sleep_minutes=0, hrv=60.0),
        ]
        stats = _report(current, []).stats
        assert stats.avg_sleep_minutes == 450  # zero-sleep day excluded
        assert stats.avg_hrv_ms == 55.0
        assert stats.current_populated_days == {"sleep": 2, "hrv": 3, "resting_hr": 0}
        assert stats.sleep_goal_minutes == 450

    def test_report_shape(self):
        report = _report(_window(WEEK_START, 4, hrv=50.0), [])
        body = report.model_dump(mode="json")
        assert body["title"] == "Last 7 days"
        assert body["week_start"] == "2024-03-08"
        assert body["week_end"] == "2024-03-14"
        assert body["missing"] == ["sleep", "resting_hr"]
