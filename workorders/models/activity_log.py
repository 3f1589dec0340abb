"""Activity log model.

Append-only trail of who did what to which record.
"""

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from workorders.models.base import Base


class ActivityAction(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    STATUS_CHANGE = "status_change"
    ASSIGN = "assign"
    LOGIN = "login"
    LOGOUT = "logout"


class ActivityEntityType(str, enum.Enum):
    WORK_ORDER = "WorkOrder"
    INVOICE = "Invoice"
    USER = "User"


class ActivityLog(Base):
    """A single recorded user action.

    entity_id is not a foreign key: entries must outlive the records
    they describe (deletions are logged after the row is gone).
    """

    __tablename__ = "activity_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    action: Mapped[ActivityAction] = mapped_column(
        Enum(
            ActivityAction,
            name="activityaction",
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
    )
    entity_type: Mapped[ActivityEntityType] = mapped_column(
        Enum(
            ActivityEntityType,
            name="activityentitytype",
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        index=True,
    )
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    old_values: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    new_values: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )

    user = relationship("User")

    def __repr__(self) -> str:
        return (
            f"<ActivityLog({self.action.value} {self.entity_type.value} "
            f"{self.entity_id})>"
        )
