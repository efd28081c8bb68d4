from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from leavecore.db import get_session
from leavecore.main import app
from leavecore.middleware import REQUEST_ID_HEADER
from leavecore.services.cache import set_cache_service

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


class _DownCache:
    async def get(self, key: str) -> str | None:
        raise ConnectionError("redis down")


async def test_health_returns_200(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")
    assert response.status_code == 200


async def test_health_response_body(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")
    data = response.json()
    assert data["status"] == "ok"
    assert data["version"] == "0.1.0"
    assert data["environment"] == "development"
    assert data["checks"] == {"database": "ok", "cache": "ok"}


async def test_health_degraded_on_cache_failure(async_client: AsyncClient) -> None:
    set_cache_service(_DownCache())  # type: ignore[arg-type]
    response = await async_client.get("/health")
    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"] == {"database": "ok", "cache": "error"}


async def test_health_degraded_on_db_failure() -> None:
    """GET /health returns degraded status when the database is unreachable."""
    mock_session = AsyncMock(spec=AsyncSession)
    mock_session.execute.side_effect = ConnectionError("DB unreachable")

    async def _broken_session() -> AsyncIterator[AsyncSession]:
        yield mock_session

    app.dependency_overrides[get_session] = _broken_session
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health")
        data = response.json()
        assert response.status_code == 200
        assert data["status"] == "degraded"
        assert data["checks"]["database"] == "error"
    finally:
        app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Request id middleware
# ---------------------------------------------------------------------------


async def test_request_id_generated(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")
    assert len(response.headers[REQUEST_ID_HEADER]) == 32


async def test_request_id_propagated(async_client: AsyncClient) -> None:
    response = await async_client.get("/health", headers={REQUEST_ID_HEADER: "abc123"})
    assert response.headers[REQUEST_ID_HEADER] == "abc123"
