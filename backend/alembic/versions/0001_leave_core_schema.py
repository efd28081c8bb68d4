"""leave core schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamp(name: str, *, nullable: bool = False, server_default: bool = True) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=sa.func.now() if server_default else None,
    )


def upgrade() -> None:
    op.create_table(
        "leave_type",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=True),
        sa.Column("max_days_per_year", sa.Numeric(7, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
        sa.UniqueConstraint("name", name="uq_leave_type_name"),
    )

    op.create_table(
        "holiday",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.UniqueConstraint("date", name="uq_holiday_date"),
    )
    op.create_index("ix_holiday_date", "holiday", ["date"])

    op.create_table(
        "leave_request",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("leave_type_id", sa.Uuid(), sa.ForeignKey("leave_type.id"), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("days_requested", sa.Numeric(7, 2), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="DRAFT"),
        sa.Column("manager_id", sa.Uuid(), nullable=True),
        sa.Column("employee_comment", sa.String(length=2000), nullable=True),
        sa.Column("manager_comment", sa.String(length=2000), nullable=True),
        sa.Column("doctor_note_attachment_id", sa.Uuid(), nullable=True),
        sa.Column("has_doctor_note", sa.Boolean(), nullable=False),
        _timestamp("submitted_at", nullable=True, server_default=False),
        _timestamp("finalized_at", nullable=True, server_default=False),
        _timestamp("updated_at"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        _timestamp("created_at"),
        sa.CheckConstraint("end_date >= start_date", name="ck_leave_request_span"),
    )
    op.create_index("ix_leave_request_employee_id", "leave_request", ["employee_id"])
    op.create_index("ix_leave_request_leave_type_id", "leave_request", ["leave_type_id"])
    op.create_index("ix_leave_request_status", "leave_request", ["status"])
    op.create_index("ix_leave_request_employee_span", "leave_request", ["employee_id", "start_date", "end_date"])
    op.create_index("ix_leave_request_manager_status", "leave_request", ["manager_id", "status"])

    op.create_table(
        "leave_balance",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column("leave_type_id", sa.Uuid(), sa.ForeignKey("leave_type.id"), nullable=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("entitled_days", sa.Numeric(7, 2), nullable=False),
        sa.Column("used_days", sa.Numeric(7, 2), nullable=False),
        sa.Column("pending_days", sa.Numeric(7, 2), nullable=False),
        _timestamp("updated_at"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        _timestamp("created_at"),
        sa.UniqueConstraint("employee_id", "leave_type_id", "year", name="uq_leave_balance_bucket"),
        sa.CheckConstraint("entitled_days >= used_days + pending_days", name="ck_leave_balance_capacity"),
        sa.CheckConstraint("used_days >= 0 AND pending_days >= 0", name="ck_leave_balance_non_negative"),
    )
    op.create_index("ix_leave_balance_employee_id", "leave_balance", ["employee_id"])
    op.create_index("ix_leave_balance_leave_type_id", "leave_balance", ["leave_type_id"])
    op.create_index("ix_leave_balance_year", "leave_balance", ["year"])

    op.create_table(
        "leave_approval_event",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "leave_request_id",
            sa.Uuid(),
            sa.ForeignKey("leave_request.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action", sa.String(length=20), nullable=False),
        sa.Column("actor_employee_id", sa.Uuid(), nullable=False),
        sa.Column("note", sa.String(length=2000), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_leave_approval_event_leave_request_id", "leave_approval_event", ["leave_request_id"])
    op.create_index("ix_leave_approval_event_created_at", "leave_approval_event", ["created_at"])

    op.create_table(
        "leave_document",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("employee_id", sa.Uuid(), nullable=False),
        sa.Column(
            "leave_request_id",
            sa.Uuid(),
            sa.ForeignKey("leave_request.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("content_type", sa.String(length=255), nullable=False),
        sa.Column("storage_path", sa.String(length=1024), nullable=False),
        sa.Column("size_bytes", sa.Integer(), nullable=False),
        sa.Column("checksum", sa.String(length=128), nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_leave_document_employee_id", "leave_document", ["employee_id"])


def downgrade() -> None:
    op.drop_table("leave_document")
    op.drop_table("leave_approval_event")
    op.drop_table("leave_balance")
    op.drop_table("leave_request")
    op.drop_table("holiday")
    op.drop_table("leave_type")
