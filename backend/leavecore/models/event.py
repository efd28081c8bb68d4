# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from leavecore.models.base import UUIDBase, now_utc


class LeaveApprovalEvent(UUIDBase, table=True):
    """Immutable entry on a leave request's approval trail."""

    __tablename__ = "leave_approval_event"

    leave_request_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("leave_request.id", ondelete="CASCADE"), nullable=False, index=True
        ),
    )
    action: str = Field(max_length=20)
    actor_employee_id: uuid.UUID
    note: str | None = Field(default=None, max_length=2000)
    created_at: datetime = Field(
        default_factory=now_utc,
        index=True,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
        sa_column_kwargs={"server_default": sa.func.now()},
    )
