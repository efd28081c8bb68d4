from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leavecore.models.enums import LeaveAction
from leavecore.models.event import LeaveApprovalEvent
from leavecore.schemas.request import ApprovalEventResponse

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession


def _build_event_response(event: LeaveApprovalEvent) -> ApprovalEventResponse:
    return ApprovalEventResponse(
        id=event.id,
        action=LeaveAction(event.action),
        actor_employee_id=event.actor_employee_id,
        note=event.note,
        created_at=event.created_at,
    )


def append_approval_event(
    session: AsyncSession,
    *,
    leave_request_id: uuid.UUID,
    action: LeaveAction,
    actor_id: uuid.UUID,
    note: str | None = None,
) -> LeaveApprovalEvent:
    """Append an immutable entry to the request's trail within the caller's transaction."""
    event = LeaveApprovalEvent(
        leave_request_id=leave_request_id,
        action=action.value,
        actor_employee_id=actor_id,
        note=note,
    )
    session.add(event)
    return event


async def list_events(session: AsyncSession, leave_request_id: uuid.UUID) -> list[ApprovalEventResponse]:
    """Return the request's trail, oldest first."""
    result = await session.execute(
        select(LeaveApprovalEvent)
        .where(col(LeaveApprovalEvent.leave_request_id) == leave_request_id)
        .order_by(col(LeaveApprovalEvent.created_at), col(LeaveApprovalEvent.id))
    )
    return [_build_event_response(e) for e in result.scalars().all()]
