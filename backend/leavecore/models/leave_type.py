from __future__ import annotations

from decimal import Decimal

import sqlalchemy as sa
from sqlmodel import Field

from leavecore.models.base import TimestampMixin, UUIDBase


class LeaveType(UUIDBase, TimestampMixin, table=True):
    """A kind of leave (annual, sick, ...) with its fixed yearly entitlement."""

    __tablename__ = "leave_type"
    __table_args__ = (sa.UniqueConstraint("name", name="uq_leave_type_name"),)

    name: str = Field(max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    max_days_per_year: Decimal = Field(default=Decimal("0"), sa_type=sa.Numeric(7, 2))
    is_active: bool = Field(default=True, sa_column_kwargs={"server_default": sa.true()})
