# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from leavecore.api.deps import AdminDep, AuthDep
from leavecore.db import SessionDep
from leavecore.schemas.balance import MyBalanceResponse, ProvisionRequest, ProvisionResult
from leavecore.services import balance as balance_service
from leavecore.services import provisioning as provisioning_service

balances_router = APIRouter(
    prefix="/leave/balances",
    tags=["balances"],
)

provisioning_router = APIRouter(
    prefix="/admin/provisioning",
    tags=["admin"],
)


@balances_router.get("/me", response_model=MyBalanceResponse)
async def get_my_balance(
    session: SessionDep,
    auth: AuthDep,
    year: int | None = Query(default=None, ge=2000, le=2100),
    leave_type_id: uuid.UUID | None = Query(default=None),
) -> MyBalanceResponse:
    """Get the caller's leave balance for a year."""
    return await balance_service.get_my_balance(session, auth.employee_id, year, leave_type_id)


@provisioning_router.post("", response_model=ProvisionResult)
async def provision_balances(
    payload: ProvisionRequest,
    session: SessionDep,
    auth: AdminDep,
) -> ProvisionResult:
    """Create missing balance rows for every active employee (admin only)."""
    return await provisioning_service.provision_for_year(
        session, payload.year, payload.leave_type_id, payload.entitled_days
    )
