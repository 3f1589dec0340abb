"""Alembic helpers used at startup and by the readiness probe."""

from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import text

from workorders.database import get_engine
from workorders.logging_config import get_logger

logger = get_logger(__name__)

APP_ROOT = Path(__file__).resolve().parent.parent.parent


def get_alembic_config() -> Config:
    alembic_ini = APP_ROOT / "alembic.ini"
    if not alembic_ini.exists():
        raise FileNotFoundError(f"alembic.ini not found at {alembic_ini}")

    config = Config(str(alembic_ini))
    config.set_main_option("script_location", str(APP_ROOT / "migrations"))
    return config


def run_migrations() -> None:
    """Upgrade the database to the latest revision.

    Blocking; call it via asyncio.to_thread from async code.
    """
    logger.info("Running database migrations")
    try:
        config = get_alembic_config()
        config.attributes["configure_logger"] = False
        command.upgrade(config, "head")
    except Exception as e:
        logger.error("Database migration failed", error=str(e))
        raise
    logger.info("Database migrations completed")


def get_head_revision() -> str | None:
    """Latest revision known to the migration scripts."""
    script = ScriptDirectory.from_config(get_alembic_config())
    return script.get_current_head()


async def get_database_revision() -> str | None:
    """Revision the database is currently at, or None if never migrated."""
    try:
        async with get_engine().connect() as conn:
            result = await conn.execute(
                text("SELECT version_num FROM alembic_version LIMIT 1")
            )
            row = result.fetchone()
    except Exception as e:
        logger.warning("Could not read alembic_version", error=str(e))
        return None
    return row[0] if row else None


async def migrations_current() -> bool:
    """True when the database is at the latest migration script."""
    revision = await get_database_revision()
    return revision is not None and revision == get_head_revision()
