# ruff: noqa: TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter

from leavecore.api.deps import AdminDep, AuthDep
from leavecore.exceptions import NotFoundError
from leavecore.schemas.employee import EmployeeListResponse, EmployeeResponse, UpsertEmployeeRequest
from leavecore.services.employee import EmployeeInfo, get_employee_service

employees_router = APIRouter(
    prefix="/employees",
    tags=["employees"],
)


def _build_employee_response(employee: EmployeeInfo) -> EmployeeResponse:
    return EmployeeResponse(
        id=employee.id,
        first_name=employee.first_name,
        last_name=employee.last_name,
        email=employee.email,
        manager_id=employee.manager_id,
        is_active=employee.is_active,
    )


@employees_router.put(
    "/{employee_id}",
    response_model=EmployeeResponse,
)
async def upsert_employee(
    employee_id: uuid.UUID,
    payload: UpsertEmployeeRequest,
    auth: AdminDep,
) -> EmployeeResponse:
    """Create or update an employee in the stub directory (admin only)."""
    svc = get_employee_service()
    employee = EmployeeInfo(
        id=employee_id,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        manager_id=payload.manager_id,
        is_active=payload.is_active,
    )
    svc.seed(employee)  # ty: ignore[unresolved-attribute]
    return _build_employee_response(employee)


@employees_router.get(
    "/{employee_id}",
    response_model=EmployeeResponse,
)
async def get_employee(
    employee_id: uuid.UUID,
    auth: AuthDep,
) -> EmployeeResponse:
    """Get employee info from the directory."""
    employee = await get_employee_service().get_employee(employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")
    return _build_employee_response(employee)


@employees_router.get(
    "",
    response_model=EmployeeListResponse,
)
async def list_employees(
    auth: AuthDep,
) -> EmployeeListResponse:
    """List active employees from the directory."""
    employees = await get_employee_service().list_employees()
    items = [_build_employee_response(e) for e in employees]
    return EmployeeListResponse(items=items, total=len(items))
