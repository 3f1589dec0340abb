"""Activity log router (admin only)."""

import uuid
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from workorders.core.auth import AdminUser
from workorders.database import get_db
from workorders.models.activity_log import ActivityAction, ActivityEntityType
from workorders.schemas.activity_log import ActivityLogListResponse, ActivityLogResponse
from workorders.services.activity_log import ActivityLogFilters, get_activity_logs

router = APIRouter(prefix="/api/activity-logs", tags=["activity-logs"])


@router.get("", response_model=ActivityLogListResponse)
async def list_activity_logs(
    admin_user: AdminUser,
    user_id: Annotated[uuid.UUID | None, Query(alias="userId")] = None,
    entity_type: Annotated[ActivityEntityType | None, Query(alias="entityType")] = None,
    entity_id: Annotated[uuid.UUID | None, Query(alias="entityId")] = None,
    action: ActivityAction | None = None,
    start_date: Annotated[datetime | None, Query(alias="startDate")] = None,
    end_date: Annotated[datetime | None, Query(alias="endDate")] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
    offset: Annotated[int, Query(ge=0)] = 0,
    db: AsyncSession = Depends(get_db),
) -> ActivityLogListResponse:
    """Browse the activity trail, newest first."""
    filters = ActivityLogFilters(
        user_id=user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    logs, total = await get_activity_logs(db, filters)
    return ActivityLogListResponse(
        logs=[ActivityLogResponse.model_validate(entry) for entry in logs],
        total=total,
        limit=limit,
        offset=offset,
    )
