from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from leavecore.exceptions import AppError, ConcurrencyConflictError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# serialization_failure, deadlock_detected
_RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})
# unique_violation
_UNIQUE_VIOLATION_SQLSTATE = "23505"
_SQLITE_UNIQUE_ERRORS = frozenset({"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"})


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_unique_violation(exc: IntegrityError) -> bool:
    """Whether an integrity error comes from a unique index rather than a check or foreign key."""
    if _sqlstate(exc) == _UNIQUE_VIOLATION_SQLSTATE:
        return True
    return getattr(exc.orig, "sqlite_errorname", None) in _SQLITE_UNIQUE_ERRORS


def is_retryable(exc: BaseException) -> bool:
    """Whether a database error means a concurrent writer won and the work can be retried.

    Among integrity errors only duplicate keys count.
    """
    if isinstance(exc, StaleDataError):
        return True
    if isinstance(exc, IntegrityError):
        return is_unique_violation(exc)
    if isinstance(exc, DBAPIError):
        return _sqlstate(exc) in _RETRYABLE_SQLSTATES
    return False


@asynccontextmanager
async def atomic(session: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    """Run a lifecycle step as one unit of work.

    Commits when the block finishes. Any exception, including task
    cancellation, rolls the whole unit back before propagating, so guard
    failures never leave a partial ledger or status change behind.

    Concurrency conflicts surface as ``ConcurrencyConflictError``; other
    database failures surface as a generic 500 without driver details.
    """
    try:
        yield session
        await session.commit()
    except AppError:
        await session.rollback()
        raise
    except SQLAlchemyError as exc:
        await session.rollback()
        if is_retryable(exc):
            logger.warning("Concurrent update while %s; rolled back", operation, exc_info=True)
            raise ConcurrencyConflictError(f"A concurrent update occurred while {operation}. Please retry.") from exc
        logger.exception("Database error while %s", operation)
        raise AppError(f"Internal error while {operation}") from exc
    except BaseException:
        await session.rollback()
        raise
