"""Work order management FastAPI application."""

import asyncio
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from workorders.config import settings, validate_secret_key
from workorders.core.migrations import run_migrations
from workorders.database import close_database
from workorders.logging_config import get_logger, setup_logging
from workorders.middleware import CorrelationIdMiddleware, SecurityHeadersMiddleware
from workorders.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from workorders.routers import (
    activity_logs,
    auth,
    backup,
    backup_scheduler,
    health,
    system,
    work_orders,
)
from workorders.services.backup_scheduler import BackupScheduler
from workorders.services.deletion_verification import DeletionVerificationStore
from workorders.services.email import EmailSender
from workorders.services.startup import AppInitializer

setup_logging(
    log_format=settings.log_format,
    log_level=settings.log_level,
    service_name=settings.service_name,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    validate_secret_key()
    # Otherwise `alembic upgrade head` runs before uvicorn starts
    if settings.run_migrations_on_startup:
        await asyncio.to_thread(run_migrations)
    logger.info("Work order API started")

    if settings.backup_scheduler_enabled:
        app.state.initializer.initialize()
    else:
        logger.info("Backup scheduler disabled by configuration")

    yield

    logger.info("Shutting down work order API")
    app.state.backup_scheduler.stop()
    await app.state.backup_scheduler.drain(
        timeout=settings.backup_shutdown_timeout_seconds
    )
    await close_database()
    logger.info("Work order API shutdown complete")


app = FastAPI(
    title="Work Order API",
    description="Work order management with verified deletion and scheduled backups",
    version="0.1.0",
    lifespan=lifespan,
)

# Process-wide services, shared by request handlers through app.state
app.state.verification_store = DeletionVerificationStore(
    mailer=EmailSender(),
    expiry_minutes=settings.deletion_code_expiry_minutes,
)
app.state.backup_scheduler = BackupScheduler()
app.state.initializer = AppInitializer(app.state.backup_scheduler)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Middleware (first added = innermost)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(CorrelationIdMiddleware)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(work_orders.router)
app.include_router(activity_logs.router)
app.include_router(backup.router)
app.include_router(backup_scheduler.router)
app.include_router(system.router)


@app.get("/")
async def root() -> dict[str, Any]:
    return {
        "name": "Work Order API",
        "version": "0.1.0",
        "docs": "/docs",
    }
