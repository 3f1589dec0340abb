"""Backup and backup scheduler API schemas."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from workorders.schemas.system import SchedulerStatus


class BackupRequest(BaseModel):
    """Options for an on-demand backup."""

    model_config = ConfigDict(populate_by_name=True)

    send_email: bool = Field(default=True, alias="sendEmail")
    clean_old: bool = Field(default=True, alias="cleanOld")


class BackupFileInfo(BaseModel):
    name: str
    collection: str


class BackupResponse(BaseModel):
    success: bool
    message: str
    timestamp: str
    files: list[BackupFileInfo] = []
    record_counts: dict[str, int] = {}
    email_sent: bool = False
    email_error: str | None = None
    cleaned_files: int = 0


class BackupOverviewResponse(BaseModel):
    """Record counts and settings, or the outcome of a test email."""

    message: str
    stats: dict[str, int] | None = None
    backup_path: str | None = None
    retention_days: int | None = None


class CleanupResponse(BaseModel):
    message: str
    deleted_count: int


class SchedulerAction(str, Enum):
    START = "start"
    RESTART = "restart"
    MANUAL_BACKUP = "manual-backup"


class SchedulerActionRequest(BaseModel):
    # Validated in the router so unknown actions get a 400 rather than 422
    action: str


class SchedulerResponse(BaseModel):
    message: str
    status: SchedulerStatus


class SchedulerInfoResponse(BaseModel):
    status: SchedulerStatus
    configuration: dict[str, str]
    next_execution: str
    validation: dict[str, Any]
