from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from leavecore.exceptions import DuplicateError, HolidayNotFoundError
from leavecore.models.holiday import Holiday
from leavecore.schemas.holiday import HolidayListResponse, HolidayResponse

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from leavecore.schemas.holiday import CreateHolidayRequest


def _build_holiday_response(holiday: Holiday) -> HolidayResponse:
    return HolidayResponse(
        id=holiday.id,
        date=holiday.date,
        name=holiday.name,
    )


async def create_holiday(
    session: AsyncSession,
    payload: CreateHolidayRequest,
) -> HolidayResponse:
    """Create a holiday. Dates are unique."""
    holiday = Holiday(date=payload.date, name=payload.name)
    session.add(holiday)

    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise DuplicateError("Holiday already exists for this date") from None

    await session.commit()
    await session.refresh(holiday)
    return _build_holiday_response(holiday)


async def list_holidays(
    session: AsyncSession,
    year: int | None = None,
    offset: int = 0,
    limit: int = 50,
) -> HolidayListResponse:
    """List holidays with optional year filter."""
    base_filter = []

    if year is not None:
        base_filter.extend([col(Holiday.date) >= date(year, 1, 1), col(Holiday.date) <= date(year, 12, 31)])

    count_result = await session.execute(select(func.count()).select_from(Holiday).where(*base_filter))
    total = count_result.scalar_one()

    result = await session.execute(
        select(Holiday).where(*base_filter).order_by(col(Holiday.date)).offset(offset).limit(limit)
    )
    holidays = list(result.scalars().all())

    return HolidayListResponse(
        items=[_build_holiday_response(h) for h in holidays],
        total=total,
    )


async def get_holiday(session: AsyncSession, holiday_id: uuid.UUID) -> Holiday:
    """Get a single holiday or raise 404."""
    holiday = await session.get(Holiday, holiday_id)
    if holiday is None:
        raise HolidayNotFoundError("Holiday not found")
    return holiday


async def delete_holiday(session: AsyncSession, holiday_id: uuid.UUID) -> None:
    """Delete a holiday."""
    holiday = await get_holiday(session, holiday_id)
    await session.delete(holiday)
    await session.commit()
