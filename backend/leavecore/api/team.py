# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from leavecore.api.deps import ManagerDep
from leavecore.db import SessionDep
from leavecore.models.enums import LeaveStatus
from leavecore.schemas.request import (
    DecisionPayload,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    ReturnLeavePayload,
)
from leavecore.services import request as request_service

team_router = APIRouter(
    prefix="/leave/team/requests",
    tags=["team"],
)


@team_router.get("", response_model=LeaveRequestListResponse)
async def list_team_requests(
    session: SessionDep,
    auth: ManagerDep,
    status_filter: LeaveStatus | None = Query(default=None, alias="status"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """List leave requests of the caller's team."""
    return await request_service.list_team_requests(session, auth, status_filter, offset, limit)


@team_router.post("/{request_id}/approve", response_model=LeaveRequestResponse)
async def approve_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: ManagerDep,
    payload: DecisionPayload | None = None,
) -> LeaveRequestResponse:
    """Approve a submitted leave request."""
    return await request_service.approve_request(session, auth, request_id, payload)


@team_router.post("/{request_id}/return", response_model=LeaveRequestResponse)
async def return_request(
    request_id: uuid.UUID,
    payload: ReturnLeavePayload,
    session: SessionDep,
    auth: ManagerDep,
) -> LeaveRequestResponse:
    """Return a submitted leave request to the employee for changes."""
    return await request_service.return_request(session, auth, request_id, payload)


@team_router.post("/{request_id}/cancel", response_model=LeaveRequestResponse)
async def cancel_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: ManagerDep,
    payload: DecisionPayload | None = None,
) -> LeaveRequestResponse:
    """Cancel a team member's submitted or returned leave request."""
    return await request_service.cancel_request_by_manager(session, auth, request_id, payload)
