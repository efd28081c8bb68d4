# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leavecore.models.base import TimestampMixin, UUIDBase, VersionedMixin
from leavecore.models.enums import LeaveStatus, LeaveUnit


class LeaveRequest(UUIDBase, TimestampMixin, VersionedMixin, table=True):
    """An employee's leave request and its approval workflow state."""

    __tablename__ = "leave_request"
    __table_args__ = (
        sa.Index("ix_leave_request_employee_span", "employee_id", "start_date", "end_date"),
        sa.Index("ix_leave_request_manager_status", "manager_id", "status"),
        sa.CheckConstraint("end_date >= start_date", name="ck_leave_request_span"),
    )

    employee_id: uuid.UUID = Field(index=True)
    leave_type_id: uuid.UUID = Field(
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_type.id"), nullable=False, index=True),
    )
    # Ledger bucket holding this request's reservation; approve and release use this exact row.
    balance_id: uuid.UUID | None = Field(
        default=None,
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_balance.id"), nullable=True),
    )
    start_date: date
    end_date: date
    unit: str = Field(default=LeaveUnit.FULL_DAY, max_length=20)
    days_requested: Decimal = Field(default=Decimal("0"), sa_type=sa.Numeric(7, 2))
    status: str = Field(
        default=LeaveStatus.DRAFT, max_length=20, index=True, sa_column_kwargs={"server_default": "DRAFT"}
    )
    manager_id: uuid.UUID | None = None
    employee_comment: str | None = Field(default=None, max_length=2000)
    manager_comment: str | None = Field(default=None, max_length=2000)
    doctor_note_attachment_id: uuid.UUID | None = None
    has_doctor_note: bool = False
    submitted_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    finalized_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
