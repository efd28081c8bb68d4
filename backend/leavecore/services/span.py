from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from leavecore.exceptions import InvalidHalfDayError, InvalidSpanError
from leavecore.models.enums import LeaveUnit

if TYPE_CHECKING:
    from datetime import date

    from leavecore.services.business_calendar import BusinessCalendar

HALF_DAY_UNITS = Decimal("0.5")


def compute_units(calendar: BusinessCalendar, start: date, end: date, unit: LeaveUnit) -> Decimal:
    """Return how many leave days the span costs.

    This is the only place a request's cost is derived. Callers recompute it
    on every transition instead of trusting a stored or client-sent value.

    - FULL_DAY: number of working days in [start, end] (0 if none).
    - HALF_DAY: 0.5 when the single date is a working day, otherwise 0.
    """
    if end < start:
        raise InvalidSpanError("End date must be on or after start date")

    if unit == LeaveUnit.HALF_DAY:
        if start != end:
            raise InvalidHalfDayError("A half day can only be requested for a single date")
        return HALF_DAY_UNITS if calendar.is_working_day(start) else Decimal(0)

    return Decimal(calendar.count_business_days(start, end))
