"""Application initialization schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class SchedulerStatus(BaseModel):
    """Current state of the backup scheduler."""

    is_running: bool
    next_run: datetime | None = Field(
        default=None, description="Next scheduled backup, when running"
    )
    schedule: str = Field(..., description="Human-readable schedule")
    timezone: str


class InitializationStatus(BaseModel):
    completed: bool
    scheduler: SchedulerStatus


class InitializeResponse(BaseModel):
    message: str
    status: InitializationStatus
    already_initialized: bool = False
