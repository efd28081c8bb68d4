# ruff: noqa: TC003
from __future__ import annotations

import uuid
from decimal import Decimal

from pydantic import BaseModel, Field


class CreateLeaveTypeRequest(BaseModel):
    """Request body for creating a leave type."""

    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    max_days_per_year: Decimal = Field(ge=0, le=366)


class LeaveTypeResponse(BaseModel):
    """Response schema for a leave type."""

    id: uuid.UUID
    name: str
    description: str | None
    max_days_per_year: Decimal
    is_active: bool


class LeaveTypeListResponse(BaseModel):
    """List of leave types."""

    items: list[LeaveTypeResponse]
    total: int
