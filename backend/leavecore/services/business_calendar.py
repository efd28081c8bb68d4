from __future__ import annotations

from datetime import date, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leavecore.models.holiday import Holiday

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from sqlalchemy.ext.asyncio import AsyncSession

_ONE_DAY = timedelta(days=1)
_SATURDAY = 5


class BusinessCalendar:
    """Working-day arithmetic over a fixed holiday set.

    Saturdays, Sundays and any date in ``holidays`` are non-working days.
    """

    def __init__(self, holidays: Iterable[date] = ()) -> None:
        self._holidays = frozenset(holidays)

    @property
    def holidays(self) -> frozenset[date]:
        return self._holidays

    def is_working_day(self, day: date) -> bool:
        if day.weekday() >= _SATURDAY:
            return False
        return day not in self._holidays

    def enumerate_business_days(self, start: date, end: date) -> Iterator[date]:
        """Yield the working days in [start, end]; nothing when end < start."""
        current = start
        while current <= end:
            if self.is_working_day(current):
                yield current
            current += _ONE_DAY

    def count_business_days(self, start: date, end: date) -> int:
        """Count working days in [start, end]; 0 when end < start."""
        return sum(1 for _ in self.enumerate_business_days(start, end))


async def fetch_holiday_dates(session: AsyncSession, start: date, end: date) -> set[date]:
    """Fetch holidays in the given date range."""
    result = await session.execute(
        select(col(Holiday.date)).where(
            col(Holiday.date) >= start,
            col(Holiday.date) <= end,
        )
    )
    return {row[0] for row in result.all()}


async def load_business_calendar(session: AsyncSession, start: date, end: date) -> BusinessCalendar:
    """Build a calendar that knows every holiday between start and end."""
    if end < start:
        return BusinessCalendar()
    return BusinessCalendar(await fetch_holiday_dates(session, start, end))
