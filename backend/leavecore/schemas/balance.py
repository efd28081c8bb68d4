# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Balance response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    """One ledger bucket."""

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type_id: uuid.UUID | None  # None for the shared bucket
    year: int
    entitled_days: Decimal
    used_days: Decimal
    pending_days: Decimal
    available_days: Decimal
    updated_at: datetime | None


class MyBalanceResponse(BaseModel):
    """An employee's ledger buckets for a year plus aggregate totals."""

    employee_id: uuid.UUID
    year: int
    leave_type_id: uuid.UUID | None
    entitled_days: Decimal
    used_days: Decimal
    pending_days: Decimal
    available_days: Decimal
    items: list[BalanceResponse]


# ---------------------------------------------------------------------------
# Provisioning schemas
# ---------------------------------------------------------------------------


class ProvisionRequest(BaseModel):
    """Request body for provisioning ledger rows for a year."""

    year: int = Field(ge=2000, le=2100)
    leave_type_id: uuid.UUID | None = None
    entitled_days: Decimal | None = Field(default=None, ge=0)


class ProvisionResult(BaseModel):
    """Outcome of a provisioning run."""

    year: int
    leave_type_id: uuid.UUID | None
    created: int
    skipped: int
