"""Unit tests for repository statement building (no database)."""

from datetime import date, timedelta

from sqlalchemy.dialects.postgresql import asyncpg

from health.repository import MAX_BIND_PARAMS, UPSERT_CHUNK_ROWS, HealthRepository
from tests.conftest import make_record


class CapturingSession:
    """Records every executed statement instead of talking to Postgres."""

    def __init__(self):
        self.statements = []
        self.commits = 0

    async def execute(self, stmt):
        self.statements.append(stmt)

    async def commit(self) -> None:
        self.commits += 1


def _bind_params(stmt) -> int:
    return len(stmt.compile(dialect=asyncpg.dialect()).params)


def _days(count: int) -> list:
    first = date(2018, 1, 1)
    return [make_record(first + timedelta(days=i), steps=1000 + i) for i in range(count)]


async def test_multi_year_export_is_chunked_under_param_limit():
    session = CapturingSession()
    repo = HealthRepository(session)

    count = await repo.upsert_day_records(_days(2200))

    assert count == 2200
    assert len(session.statements) == 3
    for stmt in session.statements:
        assert _bind_params(stmt) <= MAX_BIND_PARAMS


async def test_small_batch_is_one_statement():
    session = CapturingSession()
    await HealthRepository(session).upsert_day_records(_days(7))
    assert len(session.statements) == 1


async def test_chunk_boundary():
    session = CapturingSession()
    await HealthRepository(session).upsert_day_records(_days(UPSERT_CHUNK_ROWS + 1))
    assert len(session.statements) == 2


async def test_empty_batch_executes_nothing():
    session = CapturingSession()
    assert await HealthRepository(session).upsert_day_records([]) == 0
    assert session.statements == []


async def test_chunks_share_the_callers_transaction():
    session = CapturingSession()
    await HealthRepository(session).upsert_day_records(_days(2500))
    assert session.commits == 0
