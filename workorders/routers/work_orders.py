"""Work order router.

Listing and creation, plus the two-step deletion flow: an admin first
asks for a one-time code (emailed to them), then submits it to delete.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from workorders.core.auth import AdminUser, CurrentUser
from workorders.database import get_db
from workorders.logging_config import get_logger
from workorders.middleware.rate_limit import DELETION_CODE_RATE_LIMIT, limiter
from workorders.models.activity_log import ActivityAction, ActivityEntityType
from workorders.models.user import User, UserRole
from workorders.models.work_order import WorkOrder, WorkOrderStatus
from workorders.schemas.auth import ErrorResponse
from workorders.schemas.work_order import (
    DeletionCodeRequest,
    DeletionCodeResponse,
    DeletionConfirmRequest,
    DeletionConfirmResponse,
    WorkOrderCreate,
    WorkOrderListResponse,
    WorkOrderResponse,
)
from workorders.services.activity_log import client_details, log_activity
from workorders.services.deletion_verification import (
    DeletionVerificationStore,
    VerificationError,
    get_verification_store,
)
from workorders.services.email import EmailSendError, send_notification_email

logger = get_logger(__name__)

router = APIRouter(prefix="/api/work-orders", tags=["work-orders"])


async def _get_work_order(db: AsyncSession, work_order_id: uuid.UUID) -> WorkOrder:
    result = await db.execute(select(WorkOrder).where(WorkOrder.id == work_order_id))
    work_order = result.scalar_one_or_none()
    if work_order is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Work order not found",
        )
    return work_order


@router.get("", response_model=WorkOrderListResponse)
async def list_work_orders(
    current_user: CurrentUser,
    work_order_status: Annotated[WorkOrderStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
    db: AsyncSession = Depends(get_db),
) -> WorkOrderListResponse:
    """List work orders, newest first. Staff only see their own."""
    conditions = []
    if current_user.role == UserRole.STAFF:
        conditions.append(WorkOrder.assigned_staff_id == current_user.id)
    if work_order_status is not None:
        conditions.append(WorkOrder.status == work_order_status)

    total = (
        await db.execute(
            select(func.count()).select_from(WorkOrder).where(*conditions)
        )
    ).scalar_one()
    result = await db.execute(
        select(WorkOrder)
        .where(*conditions)
        .order_by(WorkOrder.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    return WorkOrderListResponse(
        work_orders=[WorkOrderResponse.model_validate(w) for w in result.scalars()],
        total=total,
    )


@router.post(
    "/delete-verification",
    response_model=DeletionCodeResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Work order not found"},
        500: {"model": ErrorResponse, "description": "Verification email failed"},
    },
)
@limiter.limit(DELETION_CODE_RATE_LIMIT)
async def request_deletion_code(
    body: DeletionCodeRequest,
    request: Request,
    admin_user: AdminUser,
    store: DeletionVerificationStore = Depends(get_verification_store),
    db: AsyncSession = Depends(get_db),
) -> DeletionCodeResponse:
    """Email a one-time deletion code to the requesting admin."""
    work_order = await _get_work_order(db, body.work_order_id)

    try:
        await store.issue(
            str(work_order.id),
            str(admin_user.id),
            recipient_email=admin_user.email,
            work_order_number=work_order.work_order_number,
        )
    except EmailSendError as e:
        logger.error(
            "Deletion code email failed",
            work_order_id=str(work_order.id),
            error=str(e),
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send verification email",
        )

    return DeletionCodeResponse(
        message="Verification email sent successfully",
        work_order_number=work_order.work_order_number,
        expires_in_minutes=int(store.expiry.total_seconds() // 60),
    )


@router.patch(
    "/delete-verification",
    response_model=DeletionConfirmResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Code invalid or expired"},
        403: {"model": ErrorResponse, "description": "Code issued to another user"},
        404: {"model": ErrorResponse, "description": "No pending code or work order"},
    },
)
async def confirm_deletion(
    body: DeletionConfirmRequest,
    request: Request,
    admin_user: AdminUser,
    store: DeletionVerificationStore = Depends(get_verification_store),
    db: AsyncSession = Depends(get_db),
) -> DeletionConfirmResponse:
    """Check the emailed code and delete the work order."""
    try:
        store.verify(
            str(body.work_order_id),
            body.verification_code.strip(),
            str(admin_user.id),
        )
    except VerificationError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    work_order = await _get_work_order(db, body.work_order_id)
    number = work_order.work_order_number
    old_values = {
        "work_order_number": number,
        "client_name": work_order.client_name,
        "status": work_order.status.value,
    }

    await db.delete(work_order)
    ip_address, user_agent = client_details(request)
    await log_activity(
        db,
        user_id=admin_user.id,
        action=ActivityAction.DELETE,
        entity_type=ActivityEntityType.WORK_ORDER,
        entity_id=body.work_order_id,
        description=f"Deleted work order {number} with email verification",
        old_values=old_values,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    await db.commit()

    logger.info(
        "Work order deleted",
        work_order_id=str(body.work_order_id),
        work_order_number=number,
        user_id=str(admin_user.id),
    )
    return DeletionConfirmResponse(
        message="Work order deleted successfully",
        work_order_id=body.work_order_id,
        work_order_number=number,
    )


@router.get(
    "/{work_order_id}",
    response_model=WorkOrderResponse,
    responses={404: {"model": ErrorResponse, "description": "Work order not found"}},
)
async def get_work_order(
    work_order_id: uuid.UUID,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
) -> WorkOrderResponse:
    work_order = await _get_work_order(db, work_order_id)
    if (
        current_user.role == UserRole.STAFF
        and work_order.assigned_staff_id != current_user.id
    ):
        # Same answer as a missing record
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Work order not found",
        )
    return WorkOrderResponse.model_validate(work_order)


@router.post(
    "",
    response_model=WorkOrderResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Unknown staff member"},
        409: {"model": ErrorResponse, "description": "Duplicate work order number"},
    },
)
async def create_work_order(
    body: WorkOrderCreate,
    request: Request,
    admin_user: AdminUser,
    db: AsyncSession = Depends(get_db),
) -> WorkOrderResponse:
    """Create a work order and notify the assigned staff member."""
    staff: User | None = None
    if body.assigned_staff_id is not None:
        result = await db.execute(
            select(User).where(
                User.id == body.assigned_staff_id,
                User.role == UserRole.STAFF,
                User.is_active.is_(True),
            )
        )
        staff = result.scalar_one_or_none()
        if staff is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Assigned staff member not found",
            )

    work_order = WorkOrder(**body.model_dump(), created_by_id=admin_user.id)
    db.add(work_order)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A work order with this number already exists",
        )

    ip_address, user_agent = client_details(request)
    await log_activity(
        db,
        user_id=admin_user.id,
        action=ActivityAction.CREATE,
        entity_type=ActivityEntityType.WORK_ORDER,
        entity_id=work_order.id,
        description=f"Created work order {work_order.work_order_number}",
        new_values={
            "work_order_number": work_order.work_order_number,
            "client_name": work_order.client_name,
            "status": work_order.status.value,
        },
        ip_address=ip_address,
        user_agent=user_agent,
    )
    await db.commit()
    await db.refresh(work_order)

    logger.info(
        "Work order created",
        work_order_id=str(work_order.id),
        work_order_number=work_order.work_order_number,
    )

    if staff is not None:
        try:
            await send_notification_email(
                staff.email,
                f"New Work Order Assigned - {work_order.work_order_number}",
                f"Work order {work_order.work_order_number} for "
                f"{work_order.client_name} at {work_order.address} has been "
                f"assigned to you. Scheduled for "
                f"{work_order.schedule_date:%Y-%m-%d}.",
            )
        except EmailSendError as e:
            logger.warning(
                "Assignment notification not sent",
                work_order_id=str(work_order.id),
                error=str(e),
            )

    return WorkOrderResponse.model_validate(work_order)
