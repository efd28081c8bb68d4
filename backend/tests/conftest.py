from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leavecore.db import get_session
from leavecore.main import app
from leavecore.models import SQLModel
from leavecore.services.attachment import InMemoryAttachmentStorage, set_attachment_storage
from leavecore.services.cache import InMemoryCacheService, set_cache_service
from leavecore.services.employee import InMemoryEmployeeService, set_employee_service
from leavecore.services.notification import InMemoryNotificationSender, set_notification_sender

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """Create a fresh in-memory SQLite database for each test."""
    _engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Yield a session bound to the per-test database."""
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def _in_memory_collaborators() -> Iterator[None]:
    """Install fresh in-memory collaborators for every test."""
    set_employee_service(InMemoryEmployeeService())
    set_cache_service(InMemoryCacheService())
    set_notification_sender(InMemoryNotificationSender())
    set_attachment_storage(InMemoryAttachmentStorage())
    yield
    set_employee_service(InMemoryEmployeeService())
    set_cache_service(None)
    set_notification_sender(InMemoryNotificationSender())
    set_attachment_storage(InMemoryAttachmentStorage())
