"""Create users, work_orders, invoices and activity_logs.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

user_role = sa.Enum("admin", "staff", name="userrole")
work_order_status = sa.Enum(
    "created", "ongoing", "completed", "cancelled", name="workorderstatus"
)
invoice_status = sa.Enum("draft", "sent", "paid", "overdue", name="invoicestatus")
activity_action = sa.Enum(
    "create",
    "update",
    "delete",
    "status_change",
    "assign",
    "login",
    "logout",
    name="activityaction",
)
activity_entity_type = sa.Enum(
    "WorkOrder", "Invoice", "User", name="activityentitytype"
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column("hashed_password", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_users_email"), "users", ["email"], unique=True)

    op.create_table(
        "work_orders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("work_order_number", sa.String(length=50), nullable=False),
        sa.Column("details", sa.Text(), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("work_type", sa.String(length=100), nullable=False),
        sa.Column("client_name", sa.String(length=255), nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=False),
        sa.Column("nte", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("schedule_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status", work_order_status, nullable=False, server_default="created"
        ),
        sa.Column(
            "assigned_staff_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "created_by_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False
        ),
        sa.Column(
            "updated_by_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_work_orders_work_order_number"),
        "work_orders",
        ["work_order_number"],
        unique=True,
    )
    op.create_index(
        op.f("ix_work_orders_assigned_staff_id"), "work_orders", ["assigned_staff_id"]
    )

    op.create_table(
        "invoices",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("invoice_number", sa.String(length=50), nullable=False),
        sa.Column(
            "work_order_id",
            sa.Uuid(),
            sa.ForeignKey("work_orders.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("total_client_payment", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_material_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_labor_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_utility_cost", sa.Numeric(12, 2), nullable=False),
        sa.Column("revenue", sa.Numeric(12, 2), nullable=False),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", invoice_status, nullable=False, server_default="draft"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_by_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("invoice_number"),
    )
    op.create_index(op.f("ix_invoices_work_order_id"), "invoices", ["work_order_id"])

    # No foreign key on entity_id: entries outlive their records
    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("action", activity_action, nullable=False),
        sa.Column("entity_type", activity_entity_type, nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("old_values", sa.JSON(), nullable=True),
        sa.Column("new_values", sa.JSON(), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_activity_logs_user_id"), "activity_logs", ["user_id"])
    op.create_index(
        op.f("ix_activity_logs_entity_type"), "activity_logs", ["entity_type"]
    )
    op.create_index(op.f("ix_activity_logs_entity_id"), "activity_logs", ["entity_id"])
    op.create_index(op.f("ix_activity_logs_timestamp"), "activity_logs", ["timestamp"])


def downgrade() -> None:
    op.drop_table("activity_logs")
    op.drop_table("invoices")
    op.drop_table("work_orders")
    op.drop_index(op.f("ix_users_email"), table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in (
        activity_entity_type,
        activity_action,
        invoice_status,
        work_order_status,
        user_role,
    ):
        enum_type.drop(bind, checkfirst=True)
