"""Integration test: ingest-to-readiness roundtrip against real Postgres.

Verifies the full path: raw payload → pipeline ingest → range read →
readiness, confirming the record appears in the read path with correct data.
"""

from datetime import date
from uuid import uuid4

from health.pipeline import ingest_health_data
from health.readiness import compute_readiness
from health.repository import HealthRepository
from tests.conftest import load_fixture

USER_ID = uuid4()
DAY = date(2024, 3, 14)


async def test_ingest_then_read_roundtrip(db_session):
    repo = HealthRepository(db_session)
    result = await ingest_health_data(repo, load_fixture("health_export_segments.json"), USER_ID)
    assert result.records_upserted == 1

    rows = await repo.get_day_records(USER_ID, DAY, DAY)
    assert len(rows) == 1
    row = rows[0]
    assert row.user_id == USER_ID
    assert row.resting_hr == 54
    assert row.steps == 8000
    assert row.sleep_minutes == 480
    assert row.sleep_awake_minutes == 60

    readiness = compute_readiness(row)
    assert readiness.status == "ok"
    assert readiness.total >= 90


async def test_ingest_idempotent_replay(db_session):
    repo = HealthRepository(db_session)
    payload = load_fixture("health_export_segments.json")

    await ingest_health_data(repo, payload, USER_ID)
    first = await repo.get_day_records(USER_ID, DAY, DAY)

    await ingest_health_data(repo, payload, USER_ID)
    second = await repo.get_day_records(USER_ID, DAY, DAY)

    assert len(second) == 1
    assert second == first


async def test_http_ingest_then_weekly_report(api_client):
    uid = str(uuid4())
    resp = await api_client.post(
        "/api/v1/ingest/health-data",
        params={"uid": uid},
        json={"data": load_fixture("health_export_summary.json")},
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["dates"] == ["2024-03-14"]

    daily = await api_client.get(
        f"/api/v1/users/{uid}/daily", params={"start": "2024-03-14", "end": "2024-03-14"}
    )
    assert daily.json()["data"][0]["sleep_minutes"] == 450

    report = await api_client.post(
        f"/api/v1/users/{uid}/weekly-reports/generate", params={"end": "2024-03-14"}
    )
    assert report.status_code == 200
    body = report.json()["data"]
    assert body["status"] == "partial"
    assert "not enough data" in body["summary"]

    latest = await api_client.get(f"/api/v1/users/{uid}/weekly-reports/latest")
    assert latest.json()["data"]["id"] == body["id"]
