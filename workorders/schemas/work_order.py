"""Work order schemas, including the two-step deletion flow."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from workorders.models.work_order import WorkOrderStatus


class WorkOrderCreate(BaseModel):
    """Request schema for creating a work order (admin only)."""

    work_order_number: str = Field(..., min_length=1, max_length=50)
    details: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1, max_length=255)
    work_type: str = Field(..., min_length=1, max_length=100)
    client_name: str = Field(..., min_length=1, max_length=255)
    company_name: str = Field(..., min_length=1, max_length=255)
    nte: Decimal = Field(default=Decimal("0"), ge=0, description="Not-to-exceed amount")
    schedule_date: datetime
    due_date: datetime
    status: WorkOrderStatus = WorkOrderStatus.CREATED
    assigned_staff_id: uuid.UUID | None = None

    @model_validator(mode="after")
    def check_dates(self) -> "WorkOrderCreate":
        if self.due_date < self.schedule_date:
            raise ValueError("due_date must not be before schedule_date")
        return self


class WorkOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    work_order_number: str
    details: str
    address: str
    work_type: str
    client_name: str
    company_name: str
    nte: Decimal
    schedule_date: datetime
    due_date: datetime
    status: WorkOrderStatus
    assigned_staff_id: uuid.UUID | None = None
    created_by_id: uuid.UUID
    created_at: datetime
    updated_at: datetime


class WorkOrderListResponse(BaseModel):
    work_orders: list[WorkOrderResponse]
    total: int


# Deletion verification. Field names follow the web client (camelCase).


class DeletionCodeRequest(BaseModel):
    """Ask for a deletion code to be emailed to the requesting admin."""

    model_config = ConfigDict(populate_by_name=True)

    work_order_id: uuid.UUID = Field(..., alias="workOrderId")


class DeletionConfirmRequest(BaseModel):
    """Submit the emailed code to delete the work order."""

    model_config = ConfigDict(populate_by_name=True)

    work_order_id: uuid.UUID = Field(..., alias="workOrderId")
    verification_code: str = Field(
        ..., alias="verificationCode", min_length=1, max_length=16
    )


class DeletionCodeResponse(BaseModel):
    message: str
    work_order_number: str
    expires_in_minutes: int


class DeletionConfirmResponse(BaseModel):
    message: str
    work_order_id: uuid.UUID
    work_order_number: str
