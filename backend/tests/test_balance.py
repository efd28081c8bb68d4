"""Tests for the balance ledger: reserve, approve check, consume, release and the read view."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
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
from leavecore.services.balance import (
    BalanceKey,
    consume,
    ensure_can_approve,
    get_balance_for_update,
    get_my_balance,
    lock_balance,
    release,
    reserve,
)
from leavecore.services.cache import balance_key, get_cache_service

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

EMPLOYEE_ID = uuid.uuid4()
YEAR = 2026


# ---------------------------------------------------------------------------
# Test helpers
# ---------------------------------------------------------------------------


async def _create_leave_type(session: AsyncSession, name: str = "Annual", days: str = "10") -> LeaveType:
    leave_type = LeaveType(name=name, max_days_per_year=Decimal(days))
    session.add(leave_type)
    await session.commit()
    return leave_type


async def _create_balance(
    session: AsyncSession,
    leave_type_id: uuid.UUID | None,
    entitled: str = "10",
    used: str = "0",
    pending: str = "0",
    employee_id: uuid.UUID = EMPLOYEE_ID,
) -> LeaveBalance:
    balance = LeaveBalance(
        employee_id=employee_id,
        leave_type_id=leave_type_id,
        year=YEAR,
        entitled_days=Decimal(entitled),
        used_days=Decimal(used),
        pending_days=Decimal(pending),
    )
    session.add(balance)
    await session.commit()
    return balance


def _invariant_holds(balance: LeaveBalance) -> bool:
    return (
        balance.entitled_days >= balance.used_days + balance.pending_days
        and balance.used_days >= 0
        and balance.pending_days >= 0
    )


# ---------------------------------------------------------------------------
# get_balance_for_update
# ---------------------------------------------------------------------------


async def test_lookup_prefers_typed_bucket(db_session: AsyncSession) -> None:
    leave_type = await _create_leave_type(db_session)
    await _create_balance(db_session, None, entitled="20")
    typed = await _create_balance(db_session, leave_type.id, entitled="10")

    found = await get_balance_for_update(db_session, BalanceKey(EMPLOYEE_ID, leave_type.id, YEAR))

    assert found is not None
    assert found.id == typed.id


async def test_lookup_falls_back_to_shared_bucket(db_session: AsyncSession) -> None:
    leave_type = await _create_leave_type(db_session)
    shared = await _create_balance(db_session, None, entitled="20")

    found = await get_balance_for_update(db_session, BalanceKey(EMPLOYEE_ID, leave_type.id, YEAR))

    assert found is not None
    assert found.id == shared.id


async def test_lookup_returns_none_when_not_provisioned(db_session: AsyncSession) -> None:
    leave_type = await _create_leave_type(db_session)
    found = await get_balance_for_update(db_session, BalanceKey(EMPLOYEE_ID, leave_type.id, YEAR))
    assert found is None


async def test_second_shared_bucket_is_rejected(db_session: AsyncSession) -> None:
    await _create_balance(db_session, None, entitled="20")

    with pytest.raises(IntegrityError):
        await _create_balance(db_session, None, entitled="5")
    await db_session.rollback()

    result = await db_session.execute(
        select(LeaveBalance).where(col(LeaveBalance.employee_id) == EMPLOYEE_ID, col(LeaveBalance.year) == YEAR)
    )
    assert [b.entitled_days for b in result.scalars().all()] == [Decimal(20)]


async def test_shared_buckets_are_per_employee_and_year(db_session: AsyncSession) -> None:
    await _create_balance(db_session, None)
    await _create_balance(db_session, None, employee_id=uuid.uuid4())
    db_session.add(LeaveBalance(employee_id=EMPLOYEE_ID, leave_type_id=None, year=YEAR + 1))
    await db_session.commit()

    result = await db_session.execute(select(LeaveBalance).where(col(LeaveBalance.leave_type_id).is_(None)))
    assert len(result.scalars().all()) == 3


# ---------------------------------------------------------------------------
# reserve
# ---------------------------------------------------------------------------


async def test_reserve_adds_to_pending(db_session: AsyncSession) -> None:
    leave_type = await _create_leave_type(db_session)
    await _create_balance(db_session, leave_type.id)

    balance = await reserve(db_session, BalanceKey(EMPLOYEE_ID, leave_type.id, YEAR), Decimal(3))

    assert balance.pending_days == Decimal(3)
    assert balance.available_days == Decimal(7)
    assert balance.version == 2
    assert _invariant_holds(balance)


async def test_reserve_exact_availability(db_session: AsyncSession) -> None:
    leave_type = await _create_leave_type(db_session)
    await _create_balance(db_session, leave_type.id, used="4", pending="1")

    balance = await reserve(db_session, BalanceKey(EMPLOYEE_ID, leave_type.id, YEAR), Decimal(5))

    assert balance.available_days == Decimal(0)
    assert _invariant_holds(balance)


async def test_reserve_insufficient_names_amounts(db_session: AsyncSession) -> None:
    leave_type = await _create_leave_type(db_session)
    await _create_balance(db_session, leave_type.id, used="3")

    with pytest.raises(InsufficientBalanceError, match="requested 8 day\\(s\\), available 7"):
        await reserve(db_session, BalanceKey(EMPLOYEE_ID, leave_type.id, YEAR), Decimal(8))


async def test_reserve_half_day_message(db_session: AsyncSession) -> None:
    leave_type = await _create_leave_type(db_session)
    await _create_balance(db_session, leave_type.id, used="10")

    with pytest.raises(InsufficientBalanceError, match="requested 0.5 day\\(s\\), available 0"):
        await reserve(db_session, BalanceKey(EMPLOYEE_ID, leave_type.id, YEAR), Decimal("0.5"))


@pytest.mark.parametrize("units", [Decimal(0), Decimal(-1)])
async def test_reserve_rejects_non_positive_units(db_session: AsyncSession, units: Decimal) -> None:
    leave_type = await _create_leave_type(db_session)
    await _create_balance(db_session, leave_type.id)

    with pytest.raises(InvalidUnitsError):
        await reserve(db_session, BalanceKey(EMPLOYEE_ID, leave_type.id, YEAR), units)


async def test_reserve_without_bucket_fails(db_session: AsyncSession) -> None:
    leave_type = await _create_leave_type(db_session)

    with pytest.raises(BalanceNotProvisionedError, match="not provisioned for 2026"):
        await reserve(db_session, BalanceKey(EMPLOYEE_ID, leave_type.id, YEAR), Decimal(1))


async def test_reserve_legacy_auto_provision(db_session: AsyncSession, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(get_settings(), "legacy_auto_provision", True)
    leave_type = await _create_leave_type(db_session, days="15")

    balance = await reserve(db_session, BalanceKey(EMPLOYEE_ID, leave_type.id, YEAR), Decimal(2))

    assert balance.leave_type_id == leave_type.id
    assert balance.entitled_days == Decimal(15)
    assert balance.pending_days == Decimal(2)


async def test_reserve_draws_from_shared_bucket(db_session: AsyncSession) -> None:
    leave_type = await _create_leave_type(db_session)
    shared = await _create_balance(db_session, None, entitled="5")

    balance = await reserve(db_session, BalanceKey(EMPLOYEE_ID, leave_type.id, YEAR), Decimal(2))

    assert balance.id == shared.id
    assert balance.pending_days == Decimal(2)


# ---------------------------------------------------------------------------
# ensure_can_approve / consume
# ---------------------------------------------------------------------------


def test_ensure_can_approve_requires_pending() -> None:
    balance = LeaveBalance(
        employee_id=EMPLOYEE_ID, year=YEAR, entitled_days=Decimal(10), used_days=Decimal(0), pending_days=Decimal(1)
    )
    with pytest.raises(InsufficientPendingError, match="pending 1, requested 2"):
        ensure_can_approve(balance, Decimal(2))


def test_ensure_can_approve_rejects_entitlement_overrun() -> None:
    balance = LeaveBalance(
        employee_id=EMPLOYEE_ID, year=YEAR, entitled_days=Decimal(5), used_days=Decimal(4), pending_days=Decimal(2)
    )
    with pytest.raises(EntitlementExceededError, match="entitled 5, used after approval 6"):
        ensure_can_approve(balance, Decimal(2))


def test_ensure_can_approve_does_not_mutate() -> None:
    balance = LeaveBalance(
        employee_id=EMPLOYEE_ID, year=YEAR, entitled_days=Decimal(10), used_days=Decimal(0), pending_days=Decimal(3)
    )
    ensure_can_approve(balance, Decimal(3))
    assert balance.pending_days == Decimal(3)
    assert balance.used_days == Decimal(0)


def test_consume_moves_pending_to_used() -> None:
    balance = LeaveBalance(
        employee_id=EMPLOYEE_ID,
        year=YEAR,
        entitled_days=Decimal(10),
        used_days=Decimal(0),
        pending_days=Decimal(3),
        version=1,
    )
    consume(balance, Decimal(3))
    assert balance.pending_days == Decimal(0)
    assert balance.used_days == Decimal(3)
    assert balance.version == 2
    assert _invariant_holds(balance)


def test_consume_rejects_invalid_units() -> None:
    balance = LeaveBalance(
        employee_id=EMPLOYEE_ID, year=YEAR, entitled_days=Decimal(10), used_days=Decimal(0), pending_days=Decimal(3)
    )
    with pytest.raises(InvalidUnitsError):
        consume(balance, Decimal(0))


# ---------------------------------------------------------------------------
# release
# ---------------------------------------------------------------------------


async def test_release_returns_pending(db_session: AsyncSession) -> None:
    leave_type = await _create_leave_type(db_session)
    await _create_balance(db_session, leave_type.id, pending="3")

    balance = await release(db_session, BalanceKey(EMPLOYEE_ID, leave_type.id, YEAR), Decimal(3))

    assert balance is not None
    assert balance.pending_days == Decimal(0)


async def test_release_floors_at_zero(db_session: AsyncSession) -> None:
    leave_type = await _create_leave_type(db_session)
    await _create_balance(db_session, leave_type.id, pending="1")

    balance = await release(db_session, BalanceKey(EMPLOYEE_ID, leave_type.id, YEAR), Decimal(3))

    assert balance is not None
    assert balance.pending_days == Decimal(0)
    assert _invariant_holds(balance)


async def test_release_without_bucket_is_noop(db_session: AsyncSession) -> None:
    leave_type = await _create_leave_type(db_session)
    result = await release(db_session, BalanceKey(EMPLOYEE_ID, leave_type.id, YEAR), Decimal(3))
    assert result is None


async def test_release_by_id_ignores_newer_typed_bucket(db_session: AsyncSession) -> None:
    leave_type = await _create_leave_type(db_session)
    shared = await _create_balance(db_session, None, entitled="20", pending="3")
    typed = await _create_balance(db_session, leave_type.id, entitled="10")

    balance = await release(db_session, BalanceKey(EMPLOYEE_ID, leave_type.id, YEAR), Decimal(3), shared.id)

    assert balance is not None
    assert balance.id == shared.id
    assert balance.pending_days == Decimal(0)
    assert typed.pending_days == Decimal(0)


async def test_lock_balance_by_id(db_session: AsyncSession) -> None:
    shared = await _create_balance(db_session, None)

    assert await lock_balance(db_session, shared.id) is not None
    assert await lock_balance(db_session, uuid.uuid4()) is None


# ---------------------------------------------------------------------------
# get_my_balance
# ---------------------------------------------------------------------------


async def test_my_balance_aggregates_buckets(db_session: AsyncSession) -> None:
    annual = await _create_leave_type(db_session, "Annual")
    sick = await _create_leave_type(db_session, "Sick", days="5")
    await _create_balance(db_session, annual.id, entitled="10", used="2", pending="1")
    await _create_balance(db_session, sick.id, entitled="5", pending="2")
    await _create_balance(db_session, annual.id, entitled="10", employee_id=uuid.uuid4())

    result = await get_my_balance(db_session, EMPLOYEE_ID, YEAR)

    assert len(result.items) == 2
    assert result.entitled_days == Decimal(15)
    assert result.used_days == Decimal(2)
    assert result.pending_days == Decimal(3)
    assert result.available_days == Decimal(10)


async def test_my_balance_single_type(db_session: AsyncSession) -> None:
    annual = await _create_leave_type(db_session, "Annual")
    sick = await _create_leave_type(db_session, "Sick", days="5")
    await _create_balance(db_session, annual.id, entitled="10")
    await _create_balance(db_session, sick.id, entitled="5")

    result = await get_my_balance(db_session, EMPLOYEE_ID, YEAR, sick.id)

    assert [item.leave_type_id for item in result.items] == [sick.id]
    assert result.available_days == Decimal(5)


async def test_my_balance_is_cached_until_invalidated(db_session: AsyncSession) -> None:
    annual = await _create_leave_type(db_session)
    await _create_balance(db_session, annual.id, entitled="10")

    first = await get_my_balance(db_session, EMPLOYEE_ID, YEAR)
    assert await get_cache_service().get(balance_key(EMPLOYEE_ID, YEAR)) is not None

    row = (
        await db_session.execute(select(LeaveBalance).where(col(LeaveBalance.employee_id) == EMPLOYEE_ID))
    ).scalar_one()
    row.used_days = Decimal(4)
    await db_session.commit()

    cached = await get_my_balance(db_session, EMPLOYEE_ID, YEAR)
    assert cached.used_days == first.used_days == Decimal(0)

    await get_cache_service().remove(balance_key(EMPLOYEE_ID, YEAR))
    fresh = await get_my_balance(db_session, EMPLOYEE_ID, YEAR)
    assert fresh.used_days == Decimal(4)
