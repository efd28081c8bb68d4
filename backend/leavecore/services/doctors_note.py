from __future__ import annotations

from typing import TYPE_CHECKING

from leavecore.models.enums import LeaveUnit

if TYPE_CHECKING:
    from datetime import date

    from leavecore.services.business_calendar import BusinessCalendar

# Full-day requests longer than this many business days need a medical note.
DOCTOR_NOTE_THRESHOLD_DAYS = 2


def requires_doctor_note(calendar: BusinessCalendar, start: date, end: date, unit: LeaveUnit) -> bool:
    """Whether a doctor's note must accompany the request."""
    if unit == LeaveUnit.HALF_DAY:
        return False
    return calendar.count_business_days(start, end) > DOCTOR_NOTE_THRESHOLD_DAYS
