from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, NamedTuple

from sqlalchemy import select
from sqlmodel import col

from leavecore.config import get_settings
from leavecore.exceptions import (
    BalanceNotProvisionedError,
    EntitlementExceededError,
    InsufficientBalanceError,
    InsufficientPendingError,
    InvalidUnitsError,
)
from leavecore.models.balance import LeaveBalance
from leavecore.models.leave_type import LeaveType
from leavecore.schemas.balance import BalanceResponse, MyBalanceResponse
from leavecore.services.cache import balance_key, read_cached, write_cached

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_ZERO = Decimal(0)


class BalanceKey(NamedTuple):
    """Identifies the ledger bucket a request draws from."""

    employee_id: uuid.UUID
    leave_type_id: uuid.UUID | None
    year: int


def _fmt(days: Decimal) -> str:
    return format(days.normalize(), "f")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_balance_response(balance: LeaveBalance) -> BalanceResponse:
    """Map a ledger row to its response schema."""
    return BalanceResponse(
        id=balance.id,
        employee_id=balance.employee_id,
        leave_type_id=balance.leave_type_id,
        year=balance.year,
        entitled_days=balance.entitled_days,
        used_days=balance.used_days,
        pending_days=balance.pending_days,
        available_days=balance.available_days,
        updated_at=balance.updated_at,
    )


async def _select_bucket(
    session: AsyncSession,
    employee_id: uuid.UUID,
    leave_type_id: uuid.UUID | None,
    year: int,
    *,
    for_update: bool,
) -> LeaveBalance | None:
    leave_type_filter = (
        col(LeaveBalance.leave_type_id).is_(None)
        if leave_type_id is None
        else col(LeaveBalance.leave_type_id) == leave_type_id
    )
    query = select(LeaveBalance).where(
        col(LeaveBalance.employee_id) == employee_id,
        col(LeaveBalance.year) == year,
        leave_type_filter,
    )
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    return result.scalar_one_or_none()


async def get_balance_for_update(session: AsyncSession, key: BalanceKey) -> LeaveBalance | None:
    """Lock and return the bucket for key.

    The row for the exact leave type wins; otherwise the employee's shared
    (null leave type) bucket for the year is used. Returns None when neither
    has been provisioned.
    """
    balance = await _select_bucket(session, key.employee_id, key.leave_type_id, key.year, for_update=True)
    if balance is None and key.leave_type_id is not None:
        balance = await _select_bucket(session, key.employee_id, None, key.year, for_update=True)
    return balance


async def lock_balance(session: AsyncSession, balance_id: uuid.UUID) -> LeaveBalance | None:
    """Lock and return one bucket by id."""
    result = await session.execute(
        select(LeaveBalance).where(col(LeaveBalance.id) == balance_id).with_for_update()
    )
    return result.scalar_one_or_none()


async def resolve_entitlement(session: AsyncSession, leave_type_id: uuid.UUID | None) -> Decimal:
    """Yearly entitlement for a new bucket: the leave type's allowance, else the configured default."""
    if leave_type_id is not None:
        leave_type = await session.get(LeaveType, leave_type_id)
        if leave_type is not None:
            return leave_type.max_days_per_year
    return get_settings().default_entitlement_days


def new_balance_row(
    employee_id: uuid.UUID,
    leave_type_id: uuid.UUID | None,
    year: int,
    entitled_days: Decimal,
) -> LeaveBalance:
    """Build an empty bucket. Shared by lazy and scheduled provisioning."""
    return LeaveBalance(
        employee_id=employee_id,
        leave_type_id=leave_type_id,
        year=year,
        entitled_days=entitled_days,
        used_days=_ZERO,
        pending_days=_ZERO,
    )


# ---------------------------------------------------------------------------
# Ledger operations
# ---------------------------------------------------------------------------


async def reserve(session: AsyncSession, key: BalanceKey, units: Decimal) -> LeaveBalance:
    """Hold ``units`` against the bucket: pending += units.

    Must run inside the caller's transaction; the bucket is read with a row
    lock so two reservations cannot both pass the availability check.
    """
    if units <= 0:
        raise InvalidUnitsError("Requested units must be greater than zero")

    balance = await get_balance_for_update(session, key)
    if balance is None:
        if not get_settings().legacy_auto_provision:
            raise BalanceNotProvisionedError(
                f"Leave balance is not provisioned for {key.year}. Contact an administrator."
            )
        entitled = await resolve_entitlement(session, key.leave_type_id)
        balance = new_balance_row(key.employee_id, key.leave_type_id, key.year, entitled)
        session.add(balance)
        await session.flush()
        logger.info(
            "Lazily provisioned balance for employee %s type %s year %d",
            key.employee_id,
            key.leave_type_id,
            key.year,
        )

    available = balance.available_days
    if available < units:
        raise InsufficientBalanceError(
            f"Insufficient balance: requested {_fmt(units)} day(s), available {_fmt(available)}"
        )

    balance.pending_days += units
    balance.touch()
    await session.flush()
    return balance


def ensure_can_approve(balance: LeaveBalance, units: Decimal) -> None:
    """Validate that ``units`` can move from pending to used. Pure; mutates nothing."""
    if units <= 0:
        raise InvalidUnitsError("Units must be greater than zero")
    if balance.pending_days < units:
        raise InsufficientPendingError(
            f"Not enough pending days reserved to approve: pending {_fmt(balance.pending_days)}, "
            f"requested {_fmt(units)}"
        )
    used_after = balance.used_days + units
    if used_after > balance.entitled_days:
        raise EntitlementExceededError(
            f"Approval exceeds entitlement: entitled {_fmt(balance.entitled_days)}, "
            f"used after approval {_fmt(used_after)}"
        )


def consume(balance: LeaveBalance, units: Decimal) -> None:
    """Convert a reservation into usage: pending -= units, used += units."""
    ensure_can_approve(balance, units)
    balance.pending_days -= units
    balance.used_days += units
    balance.touch()


async def release(
    session: AsyncSession,
    key: BalanceKey,
    units: Decimal,
    balance_id: uuid.UUID | None = None,
) -> LeaveBalance | None:
    """Give back a reservation: pending = max(0, pending - units).

    ``balance_id`` pins the bucket the reservation was taken from; without it
    the bucket is resolved from ``key``. Never raises for ledger reasons; a
    missing bucket is logged and skipped.
    """
    if balance_id is not None:
        balance = await lock_balance(session, balance_id)
    else:
        balance = await get_balance_for_update(session, key)
    if balance is None:
        logger.warning(
            "No balance to release %s day(s) for employee %s type %s year %d",
            _fmt(units),
            key.employee_id,
            key.leave_type_id,
            key.year,
        )
        return None

    balance.pending_days = max(_ZERO, balance.pending_days - units)
    balance.touch()
    await session.flush()
    return balance


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def list_balances(
    session: AsyncSession,
    employee_id: uuid.UUID,
    year: int,
    leave_type_id: uuid.UUID | None = None,
) -> list[LeaveBalance]:
    """Return the employee's buckets for a year, optionally for one leave type."""
    query = select(LeaveBalance).where(
        col(LeaveBalance.employee_id) == employee_id,
        col(LeaveBalance.year) == year,
    )
    if leave_type_id is not None:
        query = query.where(col(LeaveBalance.leave_type_id) == leave_type_id)
    result = await session.execute(query.order_by(col(LeaveBalance.created_at)))
    return list(result.scalars().all())


async def get_my_balance(
    session: AsyncSession,
    employee_id: uuid.UUID,
    year: int | None = None,
    leave_type_id: uuid.UUID | None = None,
) -> MyBalanceResponse:
    """Aggregate view of an employee's ledger for a year.

    The all-types view is cached under the employee's balance key and dropped
    after every transition that touches the ledger.
    """
    year = year or datetime.now(UTC).year
    cache_key = balance_key(employee_id, year)

    if leave_type_id is None:
        cached = await read_cached(cache_key, MyBalanceResponse)
        if cached is not None:
            return cached

    balances = await list_balances(session, employee_id, year, leave_type_id)
    entitled = sum((b.entitled_days for b in balances), _ZERO)
    used = sum((b.used_days for b in balances), _ZERO)
    pending = sum((b.pending_days for b in balances), _ZERO)

    response = MyBalanceResponse(
        employee_id=employee_id,
        year=year,
        leave_type_id=leave_type_id,
        entitled_days=entitled,
        used_days=used,
        pending_days=pending,
        available_days=entitled - used - pending,
        items=[_build_balance_response(b) for b in balances],
    )

    if leave_type_id is None:
        await write_cached(cache_key, response)
    return response
