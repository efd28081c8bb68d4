# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from leavecore.models.enums import LeaveAction, LeaveStatus, LeaveUnit

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class SubmitLeavePayload(BaseModel):
    """Request body for submitting a new leave request.

    The unit count is never accepted from the client; it is recomputed from
    the span on every transition.
    """

    leave_type_id: uuid.UUID
    start_date: date
    end_date: date
    unit: LeaveUnit = LeaveUnit.FULL_DAY
    doctor_note_attachment_id: uuid.UUID | None = None
    comment: str | None = Field(default=None, max_length=2000)


class EditLeavePayload(SubmitLeavePayload):
    """Request body for editing a returned leave request."""


class ResubmitLeavePayload(BaseModel):
    """Request body for resubmitting a returned request."""

    doctor_note_attachment_id: uuid.UUID | None = None
    comment: str | None = Field(default=None, max_length=2000)


class ReturnLeavePayload(BaseModel):
    """Request body for returning a request to the employee for correction."""

    comment: str = Field(max_length=2000)


class DecisionPayload(BaseModel):
    """Optional note attached to an approval."""

    note: str | None = Field(default=None, max_length=2000)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeaveRequestResponse(BaseModel):
    """Response schema for a single leave request."""

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_type_id: uuid.UUID
    start_date: date
    end_date: date
    unit: LeaveUnit
    days_requested: Decimal
    status: LeaveStatus
    manager_id: uuid.UUID | None
    employee_comment: str | None
    manager_comment: str | None
    doctor_note_attachment_id: uuid.UUID | None
    has_doctor_note: bool
    submitted_at: datetime | None
    finalized_at: datetime | None
    created_at: datetime


class LeaveRequestListResponse(BaseModel):
    """Paginated list of leave requests."""

    items: list[LeaveRequestResponse]
    total: int


class ApprovalEventResponse(BaseModel):
    """One entry on a request's approval trail."""

    id: uuid.UUID
    action: LeaveAction
    actor_employee_id: uuid.UUID
    note: str | None
    created_at: datetime


class LeaveRequestDetailsResponse(LeaveRequestResponse):
    """A leave request together with its approval trail."""

    events: list[ApprovalEventResponse]


class LeaveCountsResponse(BaseModel):
    """Number of the employee's requests in each status."""

    submitted: int = 0
    returned: int = 0
    approved: int = 0
    cancelled: int = 0
