import logging
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from leavecore.config import get_settings
from leavecore.db import SessionDep
from leavecore.services.cache import get_cache_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

CheckStatus = Literal["ok", "error"]


class HealthChecks(BaseModel):
    """Per-dependency status."""

    database: CheckStatus
    cache: CheckStatus


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["ok", "degraded"]
    version: str
    environment: str
    checks: HealthChecks


async def _check_database(session: AsyncSession) -> CheckStatus:
    try:
        await session.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Health check: database connectivity failed")
        return "error"
    return "ok"


async def _check_cache() -> CheckStatus:
    try:
        await get_cache_service().get("leave:health")
    except Exception:
        logger.warning("Health check: cache unreachable", exc_info=True)
        return "error"
    return "ok"


@router.get("/health", response_model=HealthResponse)
async def health(session: SessionDep) -> HealthResponse:
    """Report service health with a status per dependency."""
    settings = get_settings()
    checks = HealthChecks(database=await _check_database(session), cache=await _check_cache())
    status: Literal["ok", "degraded"] = "ok" if checks.database == "ok" and checks.cache == "ok" else "degraded"

    return HealthResponse(
        status=status,
        version=settings.app_version,
        environment=settings.environment,
        checks=checks,
    )
