"""Pytest configuration and shared fixtures.

Each test gets a fresh SQLite database in its own temp directory, and
fresh in-process services (verification store, backup scheduler) on the
app so no state leaks between tests.
"""

import os
import uuid
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

# Must be set BEFORE importing the app: NullPool, no rate limits
os.environ["TESTING"] = "true"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["COOKIE_SECURE"] = "false"
os.environ["BACKUP_SCHEDULER_ENABLED"] = "false"

from workorders.config import settings
from workorders.core.security import create_access_token, hash_password
from workorders.database import get_engine, get_session_maker, reset_database
from workorders.main import app
from workorders.models import Base, User, UserRole
from workorders.services.backup_scheduler import BackupScheduler
from workorders.services.deletion_verification import DeletionVerificationStore
from workorders.services.email import EmailSender
from workorders.services.startup import AppInitializer

TEST_PASSWORD = "SecurePass123"


@pytest_asyncio.fixture
async def db_engine(tmp_path, monkeypatch):
    """Fresh database file per test, with all tables created."""
    monkeypatch.setattr(
        settings, "database_url", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    )
    monkeypatch.setattr(settings, "backup_path", str(tmp_path / "backups"))
    await reset_database()
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await reset_database()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_maker = get_session_maker()
    async with session_maker() as session:
        yield session


@pytest.fixture
def mailer() -> MagicMock:
    """Stand-in SMTP sender; inspect mailer.send.call_args in tests."""
    sender = MagicMock(spec=EmailSender)
    sender.send = AsyncMock()
    sender.from_address = "noreply@example.com"
    return sender


@pytest.fixture
def backup_routine() -> AsyncMock:
    return AsyncMock()


@pytest_asyncio.fixture(autouse=True)
async def app_services(mailer, backup_routine):
    """Install fresh process-wide services on the app for each test."""
    scheduler = BackupScheduler(routine=backup_routine)
    app.state.verification_store = DeletionVerificationStore(mailer=mailer)
    app.state.backup_scheduler = scheduler
    app.state.initializer = AppInitializer(scheduler)
    yield
    scheduler.stop()


@pytest_asyncio.fixture
async def client(db_engine) -> AsyncGenerator[AsyncClient, None]:
    """Provide an async HTTP client for testing the API."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


def unique_email(prefix: str = "test") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}@example.com"


def auth_headers(user: User) -> dict[str, str]:
    token = create_access_token(user.id, user.email, user.role.value)
    return {"Authorization": f"Bearer {token}"}


async def _make_user(
    session: AsyncSession,
    role: UserRole = UserRole.STAFF,
    email: str | None = None,
) -> User:
    user = User(
        email=email or unique_email(role.value),
        name=f"Test {role.value.title()}",
        hashed_password=hash_password(TEST_PASSWORD),
        role=role,
        is_active=True,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest.fixture
def user_factory(db_session):
    """Async callable creating a committed user: await user_factory(role)."""

    async def create(role: UserRole = UserRole.STAFF, email: str | None = None) -> User:
        return await _make_user(db_session, role, email)

    return create


@pytest_asyncio.fixture
async def admin_user(user_factory) -> User:
    return await user_factory(UserRole.ADMIN)


@pytest_asyncio.fixture
async def staff_user(user_factory) -> User:
    return await user_factory(UserRole.STAFF)


@pytest.fixture
def admin_headers(admin_user) -> dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture
def staff_headers(staff_user) -> dict[str, str]:
    return auth_headers(staff_user)
