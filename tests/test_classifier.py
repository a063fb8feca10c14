"""Tests for metric name classification."""

import pytest

from health.domain.models import MetricKind
from health.ingest.classifier import classify_metric, compact_name


class TestCompactName:
    def test_strips_separators_and_case(self):
        assert compact_name("Heart_Rate-Variability SDNN") == "heartratevariabilitysdnn"

    def test_none_is_empty(self):
        assert compact_name(None) == ""


class TestClassifyMetric:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("HeartRateVariabilitySDNN", MetricKind.HRV),
            ("heart_rate_variability", MetricKind.HRV),
            ("hrv_rmssd", MetricKind.HRV),
            ("resting_heart_rate", MetricKind.RESTING_HR),
            ("step_count", MetricKind.STEPS),
            ("Steps", MetricKind.STEPS),
            ("active_energy", MetricKind.ACTIVE_CALORIES),
            ("active_energy_burned", MetricKind.ACTIVE_CALORIES),
            ("basal_energy_burned", MetricKind.BASAL_CALORIES),
            ("weight_body_mass", MetricKind.WEIGHT),
            ("body_fat_percentage", MetricKind.BODY_FAT_PCT),
            ("blood_glucose", MetricKind.GLUCOSE),
            ("blood_pressure_systolic", MetricKind.BP_SYSTOLIC),
            ("blood_pressure_diastolic", MetricKind.BP_DIASTOLIC),
            ("sleep_analysis", MetricKind.SLEEP_ANALYSIS),
        ],
    )
    def test_known_names(self, name, expected):
        assert classify_metric(name) is expected

    @pytest.mark.parametrize(
        "name",
        ["body_temperature", "heart_rate", "body_mass_index", "lean_body_mass", "", None],
    )
    def test_unknown_names(self, name):
        assert classify_metric(name) is MetricKind.UNKNOWN

    def test_body_mass_index_is_not_weight(self):
        assert classify_metric("BodyMassIndex") is MetricKind.UNKNOWN
        assert classify_metric("BodyMass") is MetricKind.WEIGHT
