"""Backup scheduler control router (admin only)."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status

from workorders.core.auth import AdminUser
from workorders.logging_config import get_logger
from workorders.schemas.auth import ErrorResponse
from workorders.schemas.backup import (
    SchedulerAction,
    SchedulerActionRequest,
    SchedulerInfoResponse,
    SchedulerResponse,
)
from workorders.schemas.system import SchedulerStatus
from workorders.services.backup_scheduler import BackupScheduler, get_backup_scheduler

logger = get_logger(__name__)

router = APIRouter(prefix="/api/backup/scheduler", tags=["backup"])

Scheduler = Annotated[BackupScheduler, Depends(get_backup_scheduler)]


def _respond(message: str, scheduler: BackupScheduler) -> SchedulerResponse:
    return SchedulerResponse(
        message=message,
        status=SchedulerStatus(**scheduler.status()),
    )


@router.get("", response_model=SchedulerResponse | SchedulerInfoResponse)
async def scheduler_status(
    admin_user: AdminUser,
    scheduler: Scheduler,
    action: Annotated[Literal["status", "info"], Query()] = "status",
) -> SchedulerResponse | SchedulerInfoResponse:
    if action == "info":
        return SchedulerInfoResponse(**scheduler.info())
    return _respond("Scheduler status retrieved", scheduler)


@router.post(
    "",
    response_model=SchedulerResponse,
    responses={400: {"model": ErrorResponse, "description": "Unknown action"}},
)
async def control_scheduler(
    body: SchedulerActionRequest,
    admin_user: AdminUser,
    scheduler: Scheduler,
) -> SchedulerResponse:
    """start, restart, or manual-backup (returns before the backup finishes)."""
    try:
        action = SchedulerAction(body.action)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid action. Use: start, restart, or manual-backup",
        )

    logger.info(
        "Scheduler action requested",
        action=action.value,
        user_id=str(admin_user.id),
    )

    if action is SchedulerAction.START:
        if scheduler.start():
            return _respond("Backup scheduler started", scheduler)
        if scheduler.is_running:
            return _respond("Backup scheduler is already running", scheduler)
        return _respond("Backup scheduler failed to start", scheduler)

    if action is SchedulerAction.RESTART:
        if scheduler.restart():
            return _respond("Backup scheduler restarted", scheduler)
        return _respond("Backup scheduler failed to restart", scheduler)

    scheduler.trigger_manual_backup()
    return _respond("Manual backup started", scheduler)


@router.delete("", response_model=SchedulerResponse)
async def stop_scheduler(
    admin_user: AdminUser,
    scheduler: Scheduler,
) -> SchedulerResponse:
    """Stop future scheduled backups. A backup already running completes."""
    logger.info("Scheduler stop requested", user_id=str(admin_user.id))
    if scheduler.stop():
        return _respond("Backup scheduler stopped", scheduler)
    return _respond("Backup scheduler was not running", scheduler)
