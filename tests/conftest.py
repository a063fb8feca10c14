"""Shared test fixtures."""

import json
import sys
from datetime import date
from pathlib import Path
from uuid import UUID

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from health.domain.models import CanonicalDayRecord  # noqa: E402

FIXTURES_DIR = Path(__file__).parent / "fixtures"
USER_ID = UUID("a1b2c3d4-5678-90ab-cdef-1234567890ab")


def load_fixture(name: str) -> dict:
    return json.loads((FIXTURES_DIR / name).read_text())


def make_record(day: date, **fields) -> CanonicalDayRecord:
    return CanonicalDayRecord(user_id=USER_ID, date=day, **fields)


@pytest.fixture
def segments_export():
    return load_fixture("health_export_segments.json")


@pytest.fixture
def summary_export():
    return load_fixture("health_export_summary.json")


@pytest.fixture
def malformed_export():
    return load_fixture("health_export_malformed.json")


@pytest.fixture
def user_id():
    return USER_ID


@pytest.fixture
def full_record():
    """A day at every reference point: 8h sleep, HRV 60, RHR 55, moderate activity."""
    return make_record(
        date(2024, 3, 14),
        sleep_minutes=480,
        hrv=60.0,
        resting_hr=55.0,
        steps=8000,
        active_calories=500,
    )
