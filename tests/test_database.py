"""Tests for engine and session management."""

from unittest.mock import MagicMock, patch

from sqlalchemy import select
from sqlalchemy.pool import NullPool

from workorders.config import settings
from workorders.database import (
    check_database_connection,
    close_database,
    get_db,
    get_db_session,
    get_engine,
    get_session_maker,
)
from workorders.models import User


class TestEngine:
    async def test_engine_is_shared_until_closed(self, db_engine):
        assert get_engine() is db_engine
        assert get_session_maker() is get_session_maker()

        await close_database()

        assert get_engine() is not db_engine

    async def test_tests_use_null_pool(self, db_engine):
        assert settings.testing is True
        assert isinstance(db_engine.pool, NullPool)

    async def test_close_without_engine_is_noop(self):
        await close_database()
        await close_database()


class TestSessions:
    async def test_objects_readable_after_commit(self, db_engine):
        async with get_db_session() as session:
            user = User(email="reader@example.com", hashed_password="x")
            session.add(user)
            await session.commit()

            assert user.email == "reader@example.com"

    async def test_uncommitted_work_is_discarded(self, db_engine):
        async with get_db_session() as session:
            session.add(User(email="ghost@example.com", hashed_password="x"))
            await session.flush()

        async with get_db_session() as session:
            result = await session.execute(select(User))
            assert result.scalars().all() == []

    async def test_get_db_yields_one_session(self, db_engine):
        gen = get_db()
        session = await anext(gen)

        assert session.is_active
        await gen.aclose()


class TestDatabaseConnection:
    async def test_reachable(self, db_engine):
        assert await check_database_connection() is True

    async def test_unreachable(self):
        engine = MagicMock()
        engine.connect.side_effect = OSError("Connection refused")
        with patch("workorders.database.get_engine", return_value=engine):
            assert await check_database_connection() is False
