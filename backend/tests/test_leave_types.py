"""Integration tests for the leave type API."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import update
from sqlmodel import col

from leavecore.models.leave_type import LeaveType
from leavecore.services.cache import ACTIVE_LEAVE_TYPES_KEY, invalidate

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

USER_ID = uuid.uuid4()
AUTH_HEADERS = {"X-User-Id": str(USER_ID), "X-Role": "admin"}
EMPLOYEE_HEADERS = {"X-User-Id": str(USER_ID)}
BASE_URL = "/leave/types"


def _payload(name: str = "Annual", days: str = "20") -> dict:
    return {"name": name, "description": f"{name} leave", "max_days_per_year": days}


async def test_create_leave_type(async_client: AsyncClient) -> None:
    resp = await async_client.post(BASE_URL, json=_payload(), headers=AUTH_HEADERS)
    assert resp.status_code == 201
    data = resp.json()
    assert data["name"] == "Annual"
    assert Decimal(data["max_days_per_year"]) == Decimal(20)
    assert data["is_active"] is True


async def test_duplicate_name_conflicts(async_client: AsyncClient) -> None:
    await async_client.post(BASE_URL, json=_payload(), headers=AUTH_HEADERS)
    resp = await async_client.post(BASE_URL, json=_payload(days="5"), headers=AUTH_HEADERS)
    assert resp.status_code == 409


async def test_create_requires_admin(async_client: AsyncClient) -> None:
    resp = await async_client.post(BASE_URL, json=_payload(), headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 403
    assert resp.json()["detail"] == "Admin access required"


async def test_entitlement_bounds(async_client: AsyncClient) -> None:
    resp = await async_client.post(BASE_URL, json=_payload(days="-1"), headers=AUTH_HEADERS)
    assert resp.status_code == 422


async def test_list_shows_only_active(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await async_client.post(BASE_URL, json=_payload("Annual"), headers=AUTH_HEADERS)
    await async_client.post(BASE_URL, json=_payload("Sick", "10"), headers=AUTH_HEADERS)
    await db_session.execute(update(LeaveType).where(col(LeaveType.name) == "Sick").values(is_active=False))
    await db_session.commit()
    await invalidate(keys=[ACTIVE_LEAVE_TYPES_KEY])

    resp = await async_client.get(BASE_URL, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 1
    assert data["items"][0]["name"] == "Annual"


async def test_missing_identity_header_rejected(async_client: AsyncClient) -> None:
    resp = await async_client.get(BASE_URL)
    assert resp.status_code == 422
