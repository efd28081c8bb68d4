# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from leavecore.api.deps import AuthDep
from leavecore.db import SessionDep
from leavecore.models.enums import LeaveStatus
from leavecore.schemas.request import (
    EditLeavePayload,
    LeaveCountsResponse,
    LeaveRequestDetailsResponse,
    LeaveRequestListResponse,
    LeaveRequestResponse,
    ResubmitLeavePayload,
    SubmitLeavePayload,
)
from leavecore.services import request as request_service

requests_router = APIRouter(
    prefix="/leave/requests",
    tags=["requests"],
)


@requests_router.post("", response_model=LeaveRequestResponse, status_code=status.HTTP_201_CREATED)
async def submit_request(
    payload: SubmitLeavePayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Submit a new leave request."""
    return await request_service.submit_request(session, auth, payload)


@requests_router.get("", response_model=LeaveRequestListResponse)
async def list_my_requests(
    session: SessionDep,
    auth: AuthDep,
    status_filter: LeaveStatus | None = Query(default=None, alias="status"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> LeaveRequestListResponse:
    """List the caller's leave requests."""
    return await request_service.list_my_requests(session, auth, status_filter, offset, limit)


@requests_router.get("/counts", response_model=LeaveCountsResponse)
async def get_my_counts(
    session: SessionDep,
    auth: AuthDep,
) -> LeaveCountsResponse:
    """Count the caller's leave requests per status."""
    return await request_service.get_my_counts(session, auth)


@requests_router.get("/{request_id}", response_model=LeaveRequestDetailsResponse)
async def get_request_details(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestDetailsResponse:
    """Get a leave request with its approval trail."""
    return await request_service.get_request_details(session, auth, request_id)


@requests_router.put("/{request_id}", response_model=LeaveRequestResponse)
async def edit_request(
    request_id: uuid.UUID,
    payload: EditLeavePayload,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Edit a returned leave request."""
    return await request_service.edit_request(session, auth, request_id, payload)


@requests_router.post("/{request_id}/resubmit", response_model=LeaveRequestResponse)
async def resubmit_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    payload: ResubmitLeavePayload | None = None,
) -> LeaveRequestResponse:
    """Resubmit a returned leave request."""
    return await request_service.resubmit_request(session, auth, request_id, payload)


@requests_router.post("/{request_id}/cancel", response_model=LeaveRequestResponse)
async def cancel_request(
    request_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
) -> LeaveRequestResponse:
    """Cancel one of the caller's leave requests."""
    return await request_service.cancel_request(session, auth, request_id)
