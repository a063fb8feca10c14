"""Health repository: all DB access for day records and weekly reports.

Encapsulates the upsert-by-key write paths and the range-by-date reads.
Writes are last-writer-wins at row granularity; the core never merges
columns across batches.
"""

from collections.abc import Sequence
from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from health.domain.models import (
    ACCUMULATING_FIELDS,
    POINT_IN_TIME_FIELDS,
    CanonicalDayRecord,
    WeeklyReport,
)
from health.domain.orm import DailyHealthSummaryModel, WeeklyReportModel

_DAY_VALUE_COLUMNS = (*POINT_IN_TIME_FIELDS, *ACCUMULATING_FIELDS)

# Postgres/asyncpg cap one statement at 32767 bind parameters
MAX_BIND_PARAMS = 32767
UPSERT_CHUNK_ROWS = 1000


def _select_days():
    # Upserts bypass the identity map, so reads must overwrite loaded rows
    return select(DailyHealthSummaryModel).execution_options(populate_existing=True)


def _to_record(row: DailyHealthSummaryModel) -> CanonicalDayRecord:
    return CanonicalDayRecord.model_validate(row)


def _report_to_dict(row: WeeklyReportModel) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "user_id": str(row.user_id),
        "week_start": row.week_start.isoformat(),
        "week_end": row.week_end.isoformat(),
        "title": row.title,
        "status": row.status,
        "summary": row.summary,
        "trends": row.trends,
        "action_items": row.action_items,
        "stats": row.stats,
        "missing": row.missing,
        "generated_at": row.generated_at.isoformat() if row.generated_at else None,
    }


class HealthRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def commit(self) -> None:
        await self.session.commit()

    async def upsert_day_records(self, records: Sequence[CanonicalDayRecord]) -> int:
        """Insert or replace day records keyed by (user_id, date). Returns row count.

        Large batches are written in chunks of UPSERT_CHUNK_ROWS rows, all in
        the caller's transaction, so a multi-year export either lands whole
        or not at all on rollback.
        """
        if not records:
            return 0
        values = [r.model_dump() for r in records]
        for offset in range(0, len(values), UPSERT_CHUNK_ROWS):
            stmt = pg_insert(DailyHealthSummaryModel).values(
                values[offset : offset + UPSERT_CHUNK_ROWS]
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id", "date"],
                set_={
                    **{col: getattr(stmt.excluded, col) for col in _DAY_VALUE_COLUMNS},
                    "updated_at": func.now(),
                },
            )
            await self.session.execute(stmt)
        return len(values)

    async def get_day_record(self, user_id: UUID, day: date) -> CanonicalDayRecord | None:
        query = _select_days().where(
            DailyHealthSummaryModel.user_id == user_id,
            DailyHealthSummaryModel.date == day,
        )
        row = (await self.session.execute(query)).scalar_one_or_none()
        return _to_record(row) if row is not None else None

    async def get_latest_day_record(self, user_id: UUID) -> CanonicalDayRecord | None:
        query = (
            _select_days()
            .where(DailyHealthSummaryModel.user_id == user_id)
            .order_by(DailyHealthSummaryModel.date.desc())
            .limit(1)
        )
        row = (await self.session.execute(query)).scalar_one_or_none()
        return _to_record(row) if row is not None else None

    async def get_day_records(
        self, user_id: UUID, start: date, end: date
    ) -> list[CanonicalDayRecord]:
        """Day records with start <= date <= end, ascending by date."""
        query = (
            _select_days()
            .where(DailyHealthSummaryModel.user_id == user_id)
            .where(DailyHealthSummaryModel.date >= start)
            .where(DailyHealthSummaryModel.date <= end)
            .order_by(DailyHealthSummaryModel.date.asc())
        )
        result = await self.session.execute(query)
        return [_to_record(row) for row in result.scalars().all()]

    async def upsert_weekly_report(self, user_id: UUID, report: WeeklyReport) -> dict[str, Any]:
        """Insert or replace a weekly report keyed by (user_id, week_start, week_end)."""
        payload = report.model_dump(mode="json")
        values = {
            "user_id": user_id,
            "week_start": report.week_start,
            "week_end": report.week_end,
            "title": report.title,
            "status": report.status.value,
            "summary": report.summary,
            "trends": payload["trends"],
            "action_items": payload["action_items"],
            "stats": payload["stats"],
            "missing": payload["missing"],
        }
        stmt = pg_insert(WeeklyReportModel).values(values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "week_start", "week_end"],
            set_={
                "title": stmt.excluded.title,
                "status": stmt.excluded.status,
                "summary": stmt.excluded.summary,
                "trends": stmt.excluded.trends,
                "action_items": stmt.excluded.action_items,
                "stats": stmt.excluded.stats,
                "missing": stmt.excluded.missing,
                "generated_at": func.now(),
            },
        ).returning(WeeklyReportModel)
        # Regeneration must refresh a report already in the identity map
        result = await self.session.execute(
            stmt, execution_options={"populate_existing": True}
        )
        return _report_to_dict(result.scalar_one())

    async def get_latest_weekly_report(self, user_id: UUID) -> dict[str, Any] | None:
        reports = await self.list_weekly_reports(user_id, limit=1)
        return reports[0] if reports else None

    async def list_weekly_reports(self, user_id: UUID, limit: int = 10) -> list[dict[str, Any]]:
        query = (
            select(WeeklyReportModel)
            .execution_options(populate_existing=True)
            .where(WeeklyReportModel.user_id == user_id)
            .order_by(WeeklyReportModel.generated_at.desc(), WeeklyReportModel.week_end.desc())
            .limit(limit)
        )
        result = await self.session.execute(query)
        return [_report_to_dict(row) for row in result.scalars().all()]
