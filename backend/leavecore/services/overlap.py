# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leavecore.exceptions import OverlappingRequestError
from leavecore.models.enums import LeaveStatus
from leavecore.models.request import LeaveRequest

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

# Statuses whose dates are considered taken.
BLOCKING_STATUSES = (LeaveStatus.SUBMITTED.value, LeaveStatus.APPROVED.value)


async def find_overlapping_request(
    session: AsyncSession,
    employee_id: uuid.UUID,
    start: date,
    end: date,
    exclude_request_id: uuid.UUID | None = None,
) -> LeaveRequest | None:
    """Return one submitted or approved request of the employee sharing a date with [start, end].

    Both ends are inclusive: existing.start <= end AND start <= existing.end.
    """
    query = select(LeaveRequest).where(
        col(LeaveRequest.employee_id) == employee_id,
        col(LeaveRequest.status).in_(BLOCKING_STATUSES),
        col(LeaveRequest.start_date) <= end,
        col(LeaveRequest.end_date) >= start,
    )
    if exclude_request_id is not None:
        query = query.where(col(LeaveRequest.id) != exclude_request_id)

    result = await session.execute(query.order_by(col(LeaveRequest.start_date)).limit(1))
    return result.scalar_one_or_none()


async def ensure_no_overlap(
    session: AsyncSession,
    employee_id: uuid.UUID,
    start: date,
    end: date,
    exclude_request_id: uuid.UUID | None = None,
) -> None:
    """Raise 409 if the span intersects another submitted or approved request."""
    existing = await find_overlapping_request(session, employee_id, start, end, exclude_request_id)
    if existing is not None:
        raise OverlappingRequestError(
            f"Request overlaps an existing {existing.status.lower()} leave "
            f"({existing.start_date.isoformat()} to {existing.end_date.isoformat()})"
        )
