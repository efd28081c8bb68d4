"""Seed script for development data.

Run with:  python -m leavecore.seed   (API must be running on BASE_URL)
"""

from __future__ import annotations

import asyncio
import sys
from datetime import date, timedelta

import httpx

BASE_URL = "http://localhost:8000"
ADMIN_USER_ID = "00000000-0000-0000-0000-000000000001"

ADMIN_HEADERS = {
    "Content-Type": "application/json",
    "X-User-Id": ADMIN_USER_ID,
    "X-Role": "admin",
}

# Well-known employee UUIDs
MANAGER_ID = "00000000-0000-0000-0000-000000000002"
ALICE_ID = "00000000-0000-0000-0000-000000000003"
BOB_ID = "00000000-0000-0000-0000-000000000004"

EMPLOYEES = [
    {"id": MANAGER_ID, "first_name": "Maria", "last_name": "Garcia", "email": "maria.garcia@example.com"},
    {
        "id": ALICE_ID,
        "first_name": "Alice",
        "last_name": "Johnson",
        "email": "alice.johnson@example.com",
        "manager_id": MANAGER_ID,
    },
    {
        "id": BOB_ID,
        "first_name": "Bob",
        "last_name": "Smith",
        "email": "bob.smith@example.com",
        "manager_id": MANAGER_ID,
    },
]

LEAVE_TYPES = [
    {"name": "Annual", "description": "Paid annual leave", "max_days_per_year": "20"},
    {"name": "Sick", "description": "Sick leave", "max_days_per_year": "10"},
]

HOLIDAYS = [
    {"date": "2026-01-01", "name": "New Year's Day"},
    {"date": "2026-05-25", "name": "Memorial Day"},
    {"date": "2026-07-03", "name": "Independence Day (Observed)"},
    {"date": "2026-09-07", "name": "Labor Day"},
    {"date": "2026-12-25", "name": "Christmas Day"},
]


def _headers_for(employee_id: str, role: str = "employee") -> dict[str, str]:
    return {"Content-Type": "application/json", "X-User-Id": employee_id, "X-Role": role}


async def _safe_post(
    client: httpx.AsyncClient, url: str, json: dict, label: str, headers: dict[str, str] = ADMIN_HEADERS
) -> dict | None:
    """POST with 409-conflict tolerance for idempotency."""
    resp = await client.post(url, json=json, headers=headers)
    if resp.status_code in (200, 201):
        print(f"  [OK] {label}")
        return resp.json()
    if resp.status_code == 409:
        print(f"  [SKIP] {label} (already exists)")
        return None
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")
    return None


async def seed_employees(client: httpx.AsyncClient) -> None:
    """Seed the stub directory via PUT (upsert)."""
    print("\n--- Seeding employees ---")
    for emp in EMPLOYEES:
        body = {k: v for k, v in emp.items() if k != "id"}
        resp = await client.put(f"{BASE_URL}/employees/{emp['id']}", json=body, headers=ADMIN_HEADERS)
        status = "OK" if resp.status_code == 200 else f"ERROR {resp.status_code}"
        print(f"  [{status}] {emp['first_name']} {emp['last_name']}")


async def seed_leave_types(client: httpx.AsyncClient) -> dict[str, str]:
    """Seed leave types and return a name->id mapping."""
    print("\n--- Seeding leave types ---")
    for leave_type in LEAVE_TYPES:
        await _safe_post(client, f"{BASE_URL}/leave/types", leave_type, f"Leave type: {leave_type['name']}")

    resp = await client.get(f"{BASE_URL}/leave/types", headers=ADMIN_HEADERS)
    resp.raise_for_status()
    return {item["name"]: item["id"] for item in resp.json()["items"]}


async def seed_holidays(client: httpx.AsyncClient) -> None:
    print("\n--- Seeding holidays ---")
    for holiday in HOLIDAYS:
        await _safe_post(client, f"{BASE_URL}/holidays", holiday, f"Holiday: {holiday['name']}")


async def seed_balances(client: httpx.AsyncClient, leave_type_ids: dict[str, str], year: int) -> None:
    """Provision ledger rows for every active employee."""
    print("\n--- Provisioning balances ---")
    for name, leave_type_id in leave_type_ids.items():
        result = await _safe_post(
            client,
            f"{BASE_URL}/admin/provisioning",
            {"year": year, "leave_type_id": leave_type_id},
            f"Provision {name} for {year}",
        )
        if result:
            print(f"        created={result['created']} skipped={result['skipped']}")


def _next_monday(start: date) -> date:
    return start + timedelta(days=7 - start.weekday())


async def seed_requests(client: httpx.AsyncClient, leave_type_ids: dict[str, str]) -> None:
    """Seed one approved and one pending request."""
    print("\n--- Seeding requests ---")
    annual_id = leave_type_ids.get("Annual")
    if annual_id is None:
        print("  [SKIP] Annual leave type not found")
        return

    monday = _next_monday(date.today())
    if monday.year != date.today().year:
        print("  [SKIP] Too close to year end for sample requests")
        return

    result = await _safe_post(
        client,
        f"{BASE_URL}/leave/requests",
        {"leave_type_id": annual_id, "start_date": monday.isoformat(), "end_date": monday.isoformat()},
        "Request: Alice 1-day annual leave",
        headers=_headers_for(ALICE_ID),
    )
    if result:
        resp = await client.post(
            f"{BASE_URL}/leave/team/requests/{result['id']}/approve",
            json={"note": "Enjoy!"},
            headers=_headers_for(MANAGER_ID, "manager"),
        )
        state = "OK" if resp.status_code == 200 else f"ERROR {resp.status_code}"
        print(f"  [{state}] Approved Alice's request")

    friday = monday + timedelta(days=4)
    await _safe_post(
        client,
        f"{BASE_URL}/leave/requests",
        {
            "leave_type_id": annual_id,
            "start_date": (monday + timedelta(days=3)).isoformat(),
            "end_date": friday.isoformat(),
            "comment": "Long weekend",
        },
        "Request: Bob 2-day annual leave (SUBMITTED)",
        headers=_headers_for(BOB_ID),
    )


async def main() -> None:
    print("=" * 60)
    print("  Leave Core: Development Seed Script")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            resp = await client.get(f"{BASE_URL}/health")
            if resp.status_code != 200:
                print(f"API health check failed: {resp.status_code}")
                sys.exit(1)
            print("\n[OK] API is healthy")
        except httpx.ConnectError:
            print("ERROR: Cannot connect to API at", BASE_URL)
            sys.exit(1)

        await seed_employees(client)
        leave_type_ids = await seed_leave_types(client)
        await seed_holidays(client)
        await seed_balances(client, leave_type_ids, date.today().year)
        await seed_requests(client, leave_type_ids)

    print("\n" + "=" * 60)
    print("  Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
