"""FastAPI router for the health domain.

Endpoints:
- POST /api/v1/ingest/health-data
- GET  /api/v1/users/{id}/daily
- GET  /api/v1/users/{id}/readiness/today
- GET  /api/v1/users/{id}/readiness/by-date
- GET  /api/v1/users/{id}/readiness/range
- POST /api/v1/users/{id}/weekly-reports/generate
- GET  /api/v1/users/{id}/weekly-reports/latest
- GET  /api/v1/users/{id}/weekly-reports

Handlers only fetch, delegate to the pure scorers and wrap the result.
"""

import time
from collections.abc import AsyncGenerator
from datetime import UTC, date, datetime
from typing import Any
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from health.domain.models import RawMetricPayload, ReadinessResult
from health.pipeline import ingest_health_data
from health.readiness import ReadinessConfig, compute_readiness
from health.repository import HealthRepository
from health.weekly import WeeklyConfig, build_weekly_report, trend_windows
from shared.config import settings
from shared.database import get_session
from shared.exceptions import (
    DateRangeTooLargeError,
    InvalidDateRangeError,
    MissingUserIdError,
    NotFoundError,
)
from shared.metrics import (
    api_requests_total,
    api_response_duration_seconds,
    readiness_computed_total,
    weekly_reports_total,
)
from shared.middleware import request_id_var

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1")


# --- Request models ---


class IngestRequest(BaseModel):
    """Request body for the ingest endpoint."""

    user_id: UUID | None = None
    data: RawMetricPayload = Field(
        default_factory=RawMetricPayload,
        description="Raw export, {'metrics': [...]} or wrapped in 'data'",
    )


# --- Dependencies ---


async def get_repository(
    session: AsyncSession = Depends(get_session),
) -> AsyncGenerator[HealthRepository, None]:
    yield HealthRepository(session)


def readiness_config() -> ReadinessConfig:
    return ReadinessConfig(
        sleep_target_minutes=settings.sleep_target_minutes,
        hrv_low_ms=settings.hrv_low_ms,
        hrv_good_ms=settings.hrv_good_ms,
        resting_hr_good_bpm=settings.resting_hr_good_bpm,
        resting_hr_high_bpm=settings.resting_hr_high_bpm,
    )


def weekly_config() -> WeeklyConfig:
    return WeeklyConfig(
        sleep_goal_minutes=settings.sleep_goal_minutes,
        sleep_tolerance_minutes=settings.sleep_tolerance_minutes,
        min_days_for_ok=settings.min_days_for_ok,
        min_days_for_compare=settings.min_days_for_compare,
    )


# --- Response helpers ---


def _meta() -> dict[str, Any]:
    return {
        "request_id": request_id_var.get(""),
        "timestamp": datetime.now(UTC).isoformat(),
        "api_version": settings.api_version,
    }


def _check_range(start: date, end: date) -> None:
    if start > end:
        raise InvalidDateRangeError(str(start), str(end))
    days = (end - start).days + 1
    if days > settings.max_range_days:
        raise DateRangeTooLargeError(days, settings.max_range_days)


def _observe(endpoint: str, method: str, start_time: float, status_code: int = 200) -> None:
    api_requests_total.labels(endpoint=endpoint, method=method, status_code=str(status_code)).inc()
    api_response_duration_seconds.labels(endpoint=endpoint).observe(time.monotonic() - start_time)


def _readiness_dict(result: ReadinessResult) -> dict[str, Any]:
    readiness_computed_total.labels(status=result.status.value).inc()
    return result.model_dump(mode="json")


# --- Endpoints ---


@router.post("/ingest/health-data")
async def ingest_health(
    body: IngestRequest,
    uid: UUID | None = Query(None, description="User id, used when the body has none"),
    repo: HealthRepository = Depends(get_repository),
):
    """Normalize a raw health export into per-day records and upsert them.

    Re-sending the same payload rewrites the same rows.

    HTTP status codes:
    - 200: batch processed (possibly with zero records)
    - 400: no user identifier supplied
    - 413: normalization ran past the ingest budget
    - 422: request-shape validation error
    """
    start_time = time.monotonic()
    user_id = body.user_id or uid
    if user_id is None:
        raise MissingUserIdError()

    result = await ingest_health_data(
        repo, body.data, user_id, budget_seconds=settings.ingest_budget_seconds
    )

    _observe("ingest", "POST", start_time)
    return {"data": {"user_id": str(user_id), **result.to_dict()}, "meta": _meta()}


@router.get("/users/{user_id}/daily")
async def get_daily(
    user_id: UUID,
    start: date = Query(...),
    end: date = Query(...),
    repo: HealthRepository = Depends(get_repository),
):
    """Canonical day records for the inclusive range, ascending by date."""
    start_time = time.monotonic()
    _check_range(start, end)

    records = await repo.get_day_records(user_id, start, end)

    _observe("daily", "GET", start_time)
    return {"data": [r.model_dump(mode="json") for r in records], "meta": _meta()}


@router.get("/users/{user_id}/readiness/today")
async def get_readiness_today(
    user_id: UUID,
    repo: HealthRepository = Depends(get_repository),
):
    """Readiness for the latest stored day of this user."""
    start_time = time.monotonic()
    record = await repo.get_latest_day_record(user_id)
    result = compute_readiness(record, readiness_config())

    _observe("readiness_today", "GET", start_time)
    return {"data": _readiness_dict(result), "meta": _meta()}


@router.get("/users/{user_id}/readiness/by-date")
async def get_readiness_by_date(
    user_id: UUID,
    day: date = Query(..., alias="date"),
    repo: HealthRepository = Depends(get_repository),
):
    start_time = time.monotonic()
    record = await repo.get_day_record(user_id, day)
    result = compute_readiness(record, readiness_config())
    if record is None:
        result = result.model_copy(update={"date": day})

    _observe("readiness_by_date", "GET", start_time)
    return {"data": _readiness_dict(result), "meta": _meta()}


@router.get("/users/{user_id}/readiness/range")
async def get_readiness_range(
    user_id: UUID,
    start: date = Query(...),
    end: date = Query(...),
    repo: HealthRepository = Depends(get_repository),
):
    """One readiness result per stored day in the range. Days never synced are omitted."""
    start_time = time.monotonic()
    _check_range(start, end)

    config = readiness_config()
    records = await repo.get_day_records(user_id, start, end)
    data = [_readiness_dict(compute_readiness(r, config)) for r in records]

    _observe("readiness_range", "GET", start_time)
    return {"data": data, "meta": _meta()}


@router.post("/users/{user_id}/weekly-reports/generate")
async def generate_weekly_report(
    user_id: UUID,
    end: date | None = Query(None, description="Last day of the window (default: today, UTC)"),
    repo: HealthRepository = Depends(get_repository),
):
    """Build the report for the 7 days ending at ``end`` and store it.

    Regenerating the same window replaces the stored report.
    """
    start_time = time.monotonic()
    week_end = end or datetime.now(UTC).date()
    week_start, week_end, prev_start, prev_end = trend_windows(week_end)

    current = await repo.get_day_records(user_id, week_start, week_end)
    previous = await repo.get_day_records(user_id, prev_start, prev_end)
    report = build_weekly_report(current, previous, week_start, week_end, weekly_config())

    stored = await repo.upsert_weekly_report(user_id, report)
    await repo.commit()
    weekly_reports_total.labels(status=report.status.value).inc()
    logger.info(
        "weekly_report_generated",
        user_id=str(user_id),
        week_end=week_end.isoformat(),
        status=report.status.value,
    )

    _observe("weekly_generate", "POST", start_time)
    return {"data": stored, "meta": _meta()}


@router.get("/users/{user_id}/weekly-reports/latest")
async def get_latest_weekly_report(
    user_id: UUID,
    repo: HealthRepository = Depends(get_repository),
):
    start_time = time.monotonic()
    report = await repo.get_latest_weekly_report(user_id)
    if report is None:
        raise NotFoundError(f"No weekly report found for user {user_id}")

    _observe("weekly_latest", "GET", start_time)
    return {"data": report, "meta": _meta()}


@router.get("/users/{user_id}/weekly-reports")
async def list_weekly_reports(
    user_id: UUID,
    limit: int = Query(10, ge=1, le=52),
    repo: HealthRepository = Depends(get_repository),
):
    """Most recently generated reports first."""
    start_time = time.monotonic()
    reports = await repo.list_weekly_reports(user_id, limit=limit)

    _observe("weekly_list", "GET", start_time)
    return {"data": reports, "meta": _meta()}
