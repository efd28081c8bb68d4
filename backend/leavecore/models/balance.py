# ruff: noqa: TC003
from __future__ import annotations

import uuid
from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leavecore.models.base import TimestampMixin, UUIDBase, VersionedMixin


class LeaveBalance(UUIDBase, TimestampMixin, VersionedMixin, table=True):
    """Ledger bucket of entitled/used/pending days for one employee, leave type and year.

    A null ``leave_type_id`` marks the employee's shared bucket for the year.
    """

    __tablename__ = "leave_balance"
    __table_args__ = (
        sa.UniqueConstraint("employee_id", "leave_type_id", "year", name="uq_leave_balance_bucket"),
        # NULLs are distinct in the constraint above, so the shared bucket needs its own index.
        sa.Index(
            "uq_leave_balance_shared_bucket",
            "employee_id",
            "year",
            unique=True,
            postgresql_where=sa.text("leave_type_id IS NULL"),
            sqlite_where=sa.text("leave_type_id IS NULL"),
        ),
        sa.CheckConstraint("entitled_days >= used_days + pending_days", name="ck_leave_balance_capacity"),
        sa.CheckConstraint("used_days >= 0 AND pending_days >= 0", name="ck_leave_balance_non_negative"),
    )

    employee_id: uuid.UUID = Field(index=True)
    leave_type_id: uuid.UUID | None = Field(
        default=None,
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_type.id"), nullable=True, index=True),
    )
    year: int = Field(index=True)
    entitled_days: Decimal = Field(default=Decimal("0"), sa_type=sa.Numeric(7, 2))
    used_days: Decimal = Field(default=Decimal("0"), sa_type=sa.Numeric(7, 2))
    pending_days: Decimal = Field(default=Decimal("0"), sa_type=sa.Numeric(7, 2))

    @property
    def available_days(self) -> Decimal:
        return self.entitled_days - self.used_days - self.pending_days
