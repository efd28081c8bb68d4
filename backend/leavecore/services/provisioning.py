from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from leavecore.models.balance import LeaveBalance
from leavecore.schemas.balance import ProvisionResult
from leavecore.services.balance import new_balance_row, resolve_entitlement
from leavecore.services.cache import balance_key, invalidate
from leavecore.services.employee import get_employee_service
from leavecore.services.leave_type import get_active_leave_type
from leavecore.services.transaction import atomic

if TYPE_CHECKING:
    import uuid
    from decimal import Decimal

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


async def provision_for_year(
    session: AsyncSession,
    year: int,
    leave_type_id: uuid.UUID | None = None,
    entitled_days: Decimal | None = None,
) -> ProvisionResult:
    """Create missing ledger rows for every active employee.

    Existing rows are never touched, so running this twice is a no-op.
    ``leave_type_id=None`` provisions the shared bucket. The entitlement
    defaults to the leave type's yearly allowance.
    """
    if leave_type_id is not None:
        await get_active_leave_type(session, leave_type_id)
    employees = await get_employee_service().list_employees(active_only=True)
    if entitled_days is None:
        entitled_days = await resolve_entitlement(session, leave_type_id)

    leave_type_filter = (
        col(LeaveBalance.leave_type_id).is_(None)
        if leave_type_id is None
        else col(LeaveBalance.leave_type_id) == leave_type_id
    )
    result = await session.execute(
        select(col(LeaveBalance.employee_id)).where(col(LeaveBalance.year) == year, leave_type_filter)
    )
    existing = {row[0] for row in result.all()}

    created_for = [e.id for e in employees if e.id not in existing]
    async with atomic(session, "provisioning balances"):
        for employee_id in created_for:
            session.add(new_balance_row(employee_id, leave_type_id, year, entitled_days))

    await invalidate(keys=[balance_key(employee_id, year) for employee_id in created_for])

    logger.info(
        "Provisioned %d balance(s) for year %d type %s (%d already present)",
        len(created_for),
        year,
        leave_type_id,
        len(employees) - len(created_for),
    )
    return ProvisionResult(
        year=year,
        leave_type_id=leave_type_id,
        created=len(created_for),
        skipped=len(employees) - len(created_for),
    )
