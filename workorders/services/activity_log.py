"""Activity log service.

Records who did what to which record, and lets admins browse the trail.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from fastapi import Request
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from workorders.logging_config import get_logger
from workorders.models.activity_log import (
    ActivityAction,
    ActivityEntityType,
    ActivityLog,
)

logger = get_logger(__name__)


def client_details(request: Request) -> tuple[str | None, str | None]:
    """Return (ip_address, user_agent) for a request."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        ip = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    return ip, user_agent[:500] if user_agent else None


async def log_activity(
    db: AsyncSession,
    user_id: uuid.UUID | None,
    action: ActivityAction,
    entity_type: ActivityEntityType,
    entity_id: uuid.UUID,
    description: str,
    old_values: dict[str, Any] | None = None,
    new_values: dict[str, Any] | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """Add an activity log entry to the session.

    Never raises so callers are not disrupted. The entry is committed
    together with the caller's own changes.
    """
    entry = None
    try:
        entry = ActivityLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            old_values=old_values,
            new_values=new_values,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(entry)
        await db.flush()
    except Exception:
        if entry is not None:
            try:
                db.expunge(entry)
            except Exception:
                logger.debug("Activity log entry was not in the session")
        logger.exception(
            "Failed to write activity log",
            action=action.value,
            entity_type=entity_type.value,
            entity_id=str(entity_id),
        )


@dataclass
class ActivityLogFilters:
    user_id: uuid.UUID | None = None
    entity_type: ActivityEntityType | None = None
    entity_id: uuid.UUID | None = None
    action: ActivityAction | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: int = 50
    offset: int = 0


async def get_activity_logs(
    db: AsyncSession,
    filters: ActivityLogFilters | None = None,
) -> tuple[list[ActivityLog], int]:
    """Return matching entries newest first, plus the total match count."""
    filters = filters or ActivityLogFilters()

    conditions = []
    if filters.user_id is not None:
        conditions.append(ActivityLog.user_id == filters.user_id)
    if filters.entity_type is not None:
        conditions.append(ActivityLog.entity_type == filters.entity_type)
    if filters.entity_id is not None:
        conditions.append(ActivityLog.entity_id == filters.entity_id)
    if filters.action is not None:
        conditions.append(ActivityLog.action == filters.action)
    if filters.start_date is not None:
        conditions.append(ActivityLog.timestamp >= filters.start_date)
    if filters.end_date is not None:
        conditions.append(ActivityLog.timestamp <= filters.end_date)

    total_result = await db.execute(
        select(func.count()).select_from(ActivityLog).where(*conditions)
    )
    total = total_result.scalar_one()

    result = await db.execute(
        select(ActivityLog)
        .options(selectinload(ActivityLog.user))
        .where(*conditions)
        .order_by(ActivityLog.timestamp.desc())
        .limit(filters.limit)
        .offset(filters.offset)
    )
    return list(result.scalars().all()), total
