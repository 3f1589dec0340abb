# Database Models
from workorders.models.activity_log import (
    ActivityAction,
    ActivityEntityType,
    ActivityLog,
)
from workorders.models.base import Base, TimestampMixin
from workorders.models.invoice import Invoice, InvoiceStatus
from workorders.models.user import User, UserRole
from workorders.models.work_order import WorkOrder, WorkOrderStatus

__all__ = [
    "ActivityAction",
    "ActivityEntityType",
    "ActivityLog",
    "Base",
    "Invoice",
    "InvoiceStatus",
    "TimestampMixin",
    "User",
    "UserRole",
    "WorkOrder",
    "WorkOrderStatus",
]
