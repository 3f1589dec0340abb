"""Database backup router (admin only).

On-demand backups, record statistics, cleanup and a mail configuration
check. Scheduled backups are controlled from routers/backup_scheduler.py.
"""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from workorders.config import settings
from workorders.core.auth import AdminUser
from workorders.database import get_db
from workorders.logging_config import get_logger
from workorders.schemas.auth import ErrorResponse
from workorders.schemas.backup import (
    BackupFileInfo,
    BackupRequest,
    BackupResponse,
    BackupOverviewResponse,
    CleanupResponse,
)
from workorders.services.backup import (
    clean_old_backups,
    create_database_backup,
    get_backup_stats,
)
from workorders.services.email import (
    EmailSendError,
    send_backup_email,
    send_backup_test_email,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/backup", tags=["backup"])


@router.get(
    "",
    response_model=BackupOverviewResponse,
    responses={500: {"model": ErrorResponse, "description": "Test email failed"}},
)
async def backup_overview(
    admin_user: AdminUser,
    action: Annotated[Literal["stats", "test-email"] | None, Query()] = None,
    db: AsyncSession = Depends(get_db),
) -> BackupOverviewResponse:
    """Record counts per table, or send a test email with action=test-email."""
    if action == "test-email":
        try:
            await send_backup_test_email()
        except EmailSendError as e:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Backup test email failed: {e}",
            )
        logger.info("Backup test email sent", user_id=str(admin_user.id))
        return BackupOverviewResponse(message="Backup test email sent successfully")

    return BackupOverviewResponse(
        message="Backup statistics" if action == "stats" else "Backup API is operational",
        stats=await get_backup_stats(db),
        backup_path=settings.backup_path,
        retention_days=settings.backup_retention_days,
    )


@router.post(
    "",
    response_model=BackupResponse,
    responses={500: {"model": ErrorResponse, "description": "Backup failed"}},
)
async def run_backup_now(
    admin_user: AdminUser,
    body: BackupRequest | None = None,
) -> BackupResponse:
    """Run a backup synchronously, then optionally prune and email it."""
    options = body or BackupRequest()
    logger.info(
        "On-demand backup requested",
        user_id=str(admin_user.id),
        send_email=options.send_email,
        clean_old=options.clean_old,
    )

    result = await create_database_backup()
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Backup failed: {result.error}",
        )

    cleaned = await clean_old_backups() if options.clean_old else 0

    email_sent = False
    email_error = None
    if options.send_email:
        try:
            await send_backup_email(result)
            email_sent = True
        except EmailSendError as e:
            email_error = str(e)

    return BackupResponse(
        success=True,
        message="Backup completed successfully",
        timestamp=result.timestamp,
        files=[BackupFileInfo(name=f.name, collection=f.collection) for f in result.files],
        record_counts=result.record_counts,
        email_sent=email_sent,
        email_error=email_error,
        cleaned_files=cleaned,
    )


@router.delete("", response_model=CleanupResponse)
async def clean_backups(admin_user: AdminUser) -> CleanupResponse:
    """Delete backup files older than the retention period."""
    deleted = await clean_old_backups()
    logger.info(
        "Backup cleanup requested",
        user_id=str(admin_user.id),
        deleted_count=deleted,
    )
    return CleanupResponse(
        message="Old backups cleaned successfully",
        deleted_count=deleted,
    )
