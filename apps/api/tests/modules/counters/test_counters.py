"""
Tests for sequence counters and identifier formatting.

The concurrency test talks to a real PostgreSQL database and only runs
when TEST_DATABASE_URL points at one (postgresql+asyncpg://...).
"""

import asyncio
import os

import pytest
from sqlalchemy.dialects import postgresql

from schoolhub.modules.counters import format_identifier, next_sequence
from schoolhub.modules.counters.models import SequenceCounter

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")


class TestFormatIdentifier:
    def test_pads_to_four_digits(self):
        assert format_identifier("GWH", 2026, 7) == "GWH-2026-0007"

    def test_four_digit_value(self):
        assert format_identifier("GWH", 2026, 1234) == "GWH-2026-1234"

    def test_never_truncates(self):
        assert format_identifier("GWH", 2026, 10000) == "GWH-2026-10000"


class TestNextSequence:
    @pytest.mark.asyncio
    async def test_issues_single_upsert(self, mock_db):
        result = mock_db.execute.return_value
        result.scalar_one = lambda: 5

        value = await next_sequence(mock_db, "student", "GWH", 2026)

        assert value == 5
        mock_db.execute.assert_awaited_once()
        stmt = mock_db.execute.await_args.args[0]
        sql = str(stmt.compile(dialect=postgresql.dialect()))
        assert "INSERT INTO sequence_counters" in sql
        assert "ON CONFLICT" in sql
        assert "DO UPDATE SET seq" in sql
        assert "RETURNING sequence_counters.seq" in sql


@pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL not set")
class TestNextSequenceConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_increments_are_distinct_and_gapless(self):
        from sqlalchemy import delete
        from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

        engine = create_async_engine(TEST_DATABASE_URL)
        session_maker = async_sessionmaker(engine, expire_on_commit=False)

        async with engine.begin() as conn:
            await conn.run_sync(SequenceCounter.__table__.create, checkfirst=True)
            await conn.execute(
                delete(SequenceCounter).where(SequenceCounter.key == "CONC")
            )

        async def draw() -> int:
            async with session_maker() as session:
                value = await next_sequence(session, "student", "CONC", 2026)
                await session.commit()
                return value

        try:
            values = await asyncio.gather(*(draw() for _ in range(25)))
            assert sorted(values) == list(range(1, 26))

            # A new year starts again at 1
            async with session_maker() as session:
                assert await next_sequence(session, "student", "CONC", 2027) == 1
                await session.commit()
        finally:
            async with engine.begin() as conn:
                await conn.execute(
                    delete(SequenceCounter).where(SequenceCounter.key == "CONC")
                )
            await engine.dispose()
