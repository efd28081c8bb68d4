from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leavecore.exceptions import DuplicateError, InvalidLeaveTypeError
from leavecore.models.leave_type import LeaveType
from leavecore.schemas.leave_type import LeaveTypeListResponse, LeaveTypeResponse
from leavecore.services.cache import ACTIVE_LEAVE_TYPES_KEY, invalidate, read_cached, write_cached

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from leavecore.schemas.leave_type import CreateLeaveTypeRequest


def _build_leave_type_response(leave_type: LeaveType) -> LeaveTypeResponse:
    return LeaveTypeResponse(
        id=leave_type.id,
        name=leave_type.name,
        description=leave_type.description,
        max_days_per_year=leave_type.max_days_per_year,
        is_active=leave_type.is_active,
    )


async def create_leave_type(session: AsyncSession, payload: CreateLeaveTypeRequest) -> LeaveTypeResponse:
    """Create a leave type. Names are unique."""
    leave_type = LeaveType(
        name=payload.name,
        description=payload.description,
        max_days_per_year=payload.max_days_per_year,
    )
    session.add(leave_type)

    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise DuplicateError(f"Leave type '{payload.name}' already exists") from None

    await session.commit()
    await session.refresh(leave_type)
    await invalidate(keys=[ACTIVE_LEAVE_TYPES_KEY])
    return _build_leave_type_response(leave_type)


async def list_active_leave_types(session: AsyncSession) -> LeaveTypeListResponse:
    """List active leave types by name. Cached under a fixed key."""
    cached = await read_cached(ACTIVE_LEAVE_TYPES_KEY, LeaveTypeListResponse)
    if cached is not None:
        return cached

    base_filter = [col(LeaveType.is_active).is_(True)]
    count_result = await session.execute(select(func.count()).select_from(LeaveType).where(*base_filter))
    total = count_result.scalar_one()

    result = await session.execute(select(LeaveType).where(*base_filter).order_by(col(LeaveType.name)))
    response = LeaveTypeListResponse(
        items=[_build_leave_type_response(t) for t in result.scalars().all()],
        total=total,
    )
    await write_cached(ACTIVE_LEAVE_TYPES_KEY, response)
    return response


async def get_active_leave_type(session: AsyncSession, leave_type_id: uuid.UUID) -> LeaveType:
    """Return the leave type, or raise if it does not exist or is inactive."""
    leave_type = await session.get(LeaveType, leave_type_id)
    if leave_type is None or not leave_type.is_active:
        raise InvalidLeaveTypeError("Leave type does not exist or is not active")
    return leave_type
