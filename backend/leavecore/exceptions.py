from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Validation errors: client-correctable input problems
# ---------------------------------------------------------------------------


class LeaveValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidSpanError(LeaveValidationError):
    pass


class InvalidHalfDayError(LeaveValidationError):
    pass


class CrossYearSpanError(LeaveValidationError):
    pass


class NoWorkingDaysError(LeaveValidationError):
    pass


class MissingDoctorNoteError(LeaveValidationError):
    pass


class CommentRequiredError(LeaveValidationError):
    pass


class InvalidUnitsError(LeaveValidationError):
    pass


class InvalidLeaveTypeError(LeaveValidationError):
    pass


class EmptyUploadError(LeaveValidationError):
    pass


class OverlappingRequestError(AppError):
    status_code = status.HTTP_409_CONFLICT


class DuplicateError(AppError):
    status_code = status.HTTP_409_CONFLICT


# ---------------------------------------------------------------------------
# Lookup and state errors
# ---------------------------------------------------------------------------


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND


class LeaveRequestNotFoundError(NotFoundError):
    pass


class AttachmentNotFoundError(NotFoundError):
    pass


class HolidayNotFoundError(NotFoundError):
    pass


class InvalidTransitionError(AppError):
    """The request's current status does not allow the attempted action."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotOwnerError(AppError):
    status_code = status.HTTP_403_FORBIDDEN


class NotManagerError(AppError):
    status_code = status.HTTP_403_FORBIDDEN


# ---------------------------------------------------------------------------
# Ledger errors: business-rule failures on the balance bucket
# ---------------------------------------------------------------------------


class LedgerError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST


class BalanceNotProvisionedError(LedgerError):
    pass


class InsufficientBalanceError(LedgerError):
    pass


class InsufficientPendingError(LedgerError):
    pass


class EntitlementExceededError(LedgerError):
    pass


class ConcurrencyConflictError(AppError):
    """A concurrent writer won the race. Safe to retry."""

    status_code = status.HTTP_409_CONFLICT


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
