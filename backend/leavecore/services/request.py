# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import func, or_, select
from sqlmodel import col

from leavecore.exceptions import (
    BalanceNotProvisionedError,
    CommentRequiredError,
    CrossYearSpanError,
    InsufficientPendingError,
    InvalidSpanError,
    LeaveRequestNotFoundError,
    MissingDoctorNoteError,
    NoWorkingDaysError,
    NotManagerError,
    NotOwnerError,
)
from leavecore.models.enums import LeaveAction, LeaveStatus, LeaveUnit
from leavecore.models.request import LeaveRequest
from leavecore.schemas.request import (
    LeaveCountsResponse,
    LeaveRequestDetailsResponse,
    LeaveRequestListResponse,
    LeaveRequestResponse,
)
from leavecore.services.attachment import ensure_attachment_owned
from leavecore.services.balance import (
    BalanceKey,
    consume,
    get_balance_for_update,
    lock_balance,
    release,
    reserve,
)
from leavecore.services.business_calendar import load_business_calendar
from leavecore.services.cache import (
    balance_key,
    invalidate,
    my_counts_key,
    my_list_key,
    my_list_tag,
    read_cached,
    request_details_key,
    team_list_key,
    team_list_tag,
    write_cached,
)
from leavecore.services.doctors_note import DOCTOR_NOTE_THRESHOLD_DAYS, requires_doctor_note
from leavecore.services.employee import get_employee_service
from leavecore.services.events import append_approval_event, list_events
from leavecore.services.leave_type import get_active_leave_type
from leavecore.services.lifecycle import LeaveTransition, ensure_transition, holds_reservation
from leavecore.services.notification import Notification, notify
from leavecore.services.overlap import ensure_no_overlap
from leavecore.services.span import compute_units
from leavecore.services.transaction import atomic

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leavecore.models.balance import LeaveBalance
    from leavecore.schemas.auth import AuthContext
    from leavecore.schemas.request import (
        DecisionPayload,
        EditLeavePayload,
        ResubmitLeavePayload,
        ReturnLeavePayload,
        SubmitLeavePayload,
    )
    from leavecore.services.business_calendar import BusinessCalendar

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_request_response(request: LeaveRequest) -> LeaveRequestResponse:
    """Map a request model to its response schema."""
    return LeaveRequestResponse(
        id=request.id,
        employee_id=request.employee_id,
        leave_type_id=request.leave_type_id,
        start_date=request.start_date,
        end_date=request.end_date,
        unit=LeaveUnit(request.unit),
        days_requested=request.days_requested,
        status=LeaveStatus(request.status),
        manager_id=request.manager_id,
        employee_comment=request.employee_comment,
        manager_comment=request.manager_comment,
        doctor_note_attachment_id=request.doctor_note_attachment_id,
        has_doctor_note=request.has_doctor_note,
        submitted_at=request.submitted_at,
        finalized_at=request.finalized_at,
        created_at=request.created_at,
    )


def _balance_key(request: LeaveRequest) -> BalanceKey:
    return BalanceKey(request.employee_id, request.leave_type_id, request.start_date.year)


async def _reserved_balance(session: AsyncSession, request: LeaveRequest) -> LeaveBalance | None:
    """Lock the bucket the reservation was taken from.

    Requests reserved before the bucket was recorded fall back to resolving it by key.
    """
    if request.balance_id is not None:
        return await lock_balance(session, request.balance_id)
    return await get_balance_for_update(session, _balance_key(request))


async def _get_request_for_update(session: AsyncSession, request_id: uuid.UUID) -> LeaveRequest:
    """Fetch and lock a request by ID. Raises 404 if not found."""
    result = await session.execute(
        select(LeaveRequest).where(col(LeaveRequest.id) == request_id).with_for_update()
    )
    request = result.scalar_one_or_none()
    if request is None:
        raise LeaveRequestNotFoundError("Leave request not found")
    return request


def _ensure_owner(request: LeaveRequest, auth: AuthContext) -> None:
    if request.employee_id != auth.employee_id:
        raise NotOwnerError("You can only change your own leave requests")


async def _current_manager_id(employee_id: uuid.UUID) -> uuid.UUID | None:
    employee = await get_employee_service().get_employee(employee_id)
    return employee.manager_id if employee is not None else None


async def _is_manager_of_record(employee_id: uuid.UUID, manager_id: uuid.UUID | None, caller_id: uuid.UUID) -> bool:
    """The manager snapshotted at submission, or the employee's current manager."""
    if manager_id is not None and manager_id == caller_id:
        return True
    return await _current_manager_id(employee_id) == caller_id


async def _ensure_manager(request: LeaveRequest, auth: AuthContext) -> None:
    if not await _is_manager_of_record(request.employee_id, request.manager_id, auth.employee_id):
        raise NotManagerError("Only the employee's manager can act on this request")


async def _compute_span(
    session: AsyncSession,
    start: date,
    end: date,
    unit: LeaveUnit,
) -> tuple[BusinessCalendar, Decimal]:
    """Validate the span and return its calendar and unit cost."""
    if end < start:
        raise InvalidSpanError("End date must be on or after start date")
    if start.year != end.year:
        raise CrossYearSpanError("Leave cannot span two calendar years; submit one request per year")

    calendar = await load_business_calendar(session, start, end)
    units = compute_units(calendar, start, end, unit)
    if units <= 0:
        raise NoWorkingDaysError("The selected dates contain no working days")
    return calendar, units


async def _check_doctor_note(
    session: AsyncSession,
    employee_id: uuid.UUID,
    calendar: BusinessCalendar,
    start: date,
    end: date,
    unit: LeaveUnit,
    attachment_id: uuid.UUID | None,
) -> bool:
    """Validate the attachment and the note requirement. Returns whether a note is attached."""
    if attachment_id is not None:
        await ensure_attachment_owned(session, employee_id, attachment_id)
    elif requires_doctor_note(calendar, start, end, unit):
        raise MissingDoctorNoteError(
            f"A doctor's note is required for leave longer than {DOCTOR_NOTE_THRESHOLD_DAYS} working days"
        )
    return attachment_id is not None


async def _link_attachment(
    session: AsyncSession, request: LeaveRequest, attachment_id: uuid.UUID | None
) -> None:
    if attachment_id is None:
        return
    document = await ensure_attachment_owned(session, request.employee_id, attachment_id)
    if document.leave_request_id is None:
        document.leave_request_id = request.id


async def _after_commit(request: LeaveRequest, notify_id: uuid.UUID | None, subject: str) -> None:
    """Drop derived views and send a notification. Never fails the transition."""
    manager_ids = {request.manager_id}
    try:
        manager_ids.add(await _current_manager_id(request.employee_id))
    except Exception:
        logger.warning("Employee lookup failed for %s", request.employee_id, exc_info=True)

    await invalidate(
        keys=[balance_key(request.employee_id, request.start_date.year), request_details_key(request.id)],
        tags=[my_list_tag(request.employee_id), *(team_list_tag(m) for m in manager_ids if m is not None)],
    )

    if notify_id is None:
        return
    email = None
    try:
        recipient = await get_employee_service().get_employee(notify_id)
        email = recipient.email if recipient is not None else None
    except Exception:
        logger.warning("Employee lookup failed for %s", notify_id, exc_info=True)
    await notify(
        Notification(
            recipient_id=notify_id,
            recipient_email=email,
            subject=subject,
            body=(
                f"Leave request {request.id} from {request.start_date.isoformat()} to "
                f"{request.end_date.isoformat()} is now {request.status.lower()}."
            ),
            leave_request_id=request.id,
        )
    )


# ---------------------------------------------------------------------------
# Lifecycle transitions
# ---------------------------------------------------------------------------


async def submit_request(
    session: AsyncSession,
    auth: AuthContext,
    payload: SubmitLeavePayload,
) -> LeaveRequestResponse:
    """Submit a new leave request and reserve its days.

    Flow:
    1. Check the leave type is active
    2. Compute units over the business calendar
    3. Enforce the doctor's-note rule
    4. Check for overlapping requests
    5. Lock the ledger bucket and reserve (pending += units)
    6. Create the request (SUBMITTED) with the manager snapshot
    7. Append the SUBMITTED event
    8. Commit
    """
    async with atomic(session, "submitting leave request"):
        target = ensure_transition(LeaveStatus.DRAFT, LeaveTransition.SUBMIT)
        await get_active_leave_type(session, payload.leave_type_id)

        calendar, units = await _compute_span(session, payload.start_date, payload.end_date, payload.unit)
        has_note = await _check_doctor_note(
            session,
            auth.employee_id,
            calendar,
            payload.start_date,
            payload.end_date,
            payload.unit,
            payload.doctor_note_attachment_id,
        )
        await ensure_no_overlap(session, auth.employee_id, payload.start_date, payload.end_date)

        balance = await reserve(
            session, BalanceKey(auth.employee_id, payload.leave_type_id, payload.start_date.year), units
        )

        now = datetime.now(UTC)
        leave_request = LeaveRequest(
            employee_id=auth.employee_id,
            leave_type_id=payload.leave_type_id,
            balance_id=balance.id,
            start_date=payload.start_date,
            end_date=payload.end_date,
            unit=payload.unit.value,
            days_requested=units,
            status=target.value,
            manager_id=await _current_manager_id(auth.employee_id),
            employee_comment=payload.comment,
            doctor_note_attachment_id=payload.doctor_note_attachment_id,
            has_doctor_note=has_note,
            submitted_at=now,
            updated_at=now,
        )
        session.add(leave_request)
        await session.flush()

        await _link_attachment(session, leave_request, payload.doctor_note_attachment_id)
        append_approval_event(
            session,
            leave_request_id=leave_request.id,
            action=LeaveAction.SUBMITTED,
            actor_id=auth.employee_id,
            note=payload.comment,
        )

    await session.refresh(leave_request)
    logger.info(
        "Leave request %s submitted by %s for %s day(s)",
        leave_request.id,
        auth.employee_id,
        leave_request.days_requested,
    )
    await _after_commit(leave_request, leave_request.manager_id, "Leave request submitted")
    return _build_request_response(leave_request)


async def edit_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: EditLeavePayload,
) -> LeaveRequestResponse:
    """Change a returned request's dates, type, unit or attachment.

    A returned request holds no reservation, so the ledger is untouched; the
    days are reserved again on resubmission.
    """
    async with atomic(session, "editing leave request"):
        leave_request = await _get_request_for_update(session, request_id)
        _ensure_owner(leave_request, auth)
        ensure_transition(leave_request.status, LeaveTransition.EDIT)
        await get_active_leave_type(session, payload.leave_type_id)

        calendar, units = await _compute_span(session, payload.start_date, payload.end_date, payload.unit)
        has_note = await _check_doctor_note(
            session,
            auth.employee_id,
            calendar,
            payload.start_date,
            payload.end_date,
            payload.unit,
            payload.doctor_note_attachment_id,
        )
        await ensure_no_overlap(
            session, auth.employee_id, payload.start_date, payload.end_date, exclude_request_id=leave_request.id
        )

        leave_request.leave_type_id = payload.leave_type_id
        leave_request.start_date = payload.start_date
        leave_request.end_date = payload.end_date
        leave_request.unit = payload.unit.value
        leave_request.days_requested = units
        leave_request.doctor_note_attachment_id = payload.doctor_note_attachment_id
        leave_request.has_doctor_note = has_note
        if payload.comment is not None:
            leave_request.employee_comment = payload.comment
        leave_request.touch()

        await _link_attachment(session, leave_request, payload.doctor_note_attachment_id)

    await session.refresh(leave_request)
    logger.info("Leave request %s edited by %s", leave_request.id, auth.employee_id)
    await _after_commit(leave_request, None, "Leave request edited")
    return _build_request_response(leave_request)


async def resubmit_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: ResubmitLeavePayload | None = None,
) -> LeaveRequestResponse:
    """Send a returned request back for approval and reserve its days again."""
    async with atomic(session, "resubmitting leave request"):
        leave_request = await _get_request_for_update(session, request_id)
        _ensure_owner(leave_request, auth)
        target = ensure_transition(leave_request.status, LeaveTransition.RESUBMIT)
        await get_active_leave_type(session, leave_request.leave_type_id)

        attachment_id = leave_request.doctor_note_attachment_id
        if payload is not None and payload.doctor_note_attachment_id is not None:
            attachment_id = payload.doctor_note_attachment_id

        unit = LeaveUnit(leave_request.unit)
        calendar, units = await _compute_span(session, leave_request.start_date, leave_request.end_date, unit)
        has_note = await _check_doctor_note(
            session,
            auth.employee_id,
            calendar,
            leave_request.start_date,
            leave_request.end_date,
            unit,
            attachment_id,
        )
        await ensure_no_overlap(
            session,
            auth.employee_id,
            leave_request.start_date,
            leave_request.end_date,
            exclude_request_id=leave_request.id,
        )

        balance = await reserve(session, _balance_key(leave_request), units)

        now = datetime.now(UTC)
        leave_request.balance_id = balance.id
        leave_request.days_requested = units
        leave_request.doctor_note_attachment_id = attachment_id
        leave_request.has_doctor_note = has_note
        leave_request.status = target.value
        leave_request.submitted_at = now
        comment = payload.comment if payload is not None else None
        if comment is not None:
            leave_request.employee_comment = comment
        leave_request.touch(now)

        await _link_attachment(session, leave_request, attachment_id)
        append_approval_event(
            session,
            leave_request_id=leave_request.id,
            action=LeaveAction.SUBMITTED,
            actor_id=auth.employee_id,
            note=comment,
        )

    await session.refresh(leave_request)
    logger.info(
        "Leave request %s resubmitted by %s for %s day(s)",
        leave_request.id,
        auth.employee_id,
        leave_request.days_requested,
    )
    await _after_commit(leave_request, leave_request.manager_id, "Leave request resubmitted")
    return _build_request_response(leave_request)


async def approve_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: DecisionPayload | None = None,
) -> LeaveRequestResponse:
    """Approve a submitted request: move its reservation from pending to used.

    Units are recomputed against today's calendar. A holiday added since
    submission lowers the charge and the difference goes back to pending;
    a higher charge than was reserved is refused.
    """
    async with atomic(session, "approving leave request"):
        leave_request = await _get_request_for_update(session, request_id)
        await _ensure_manager(leave_request, auth)
        target = ensure_transition(leave_request.status, LeaveTransition.APPROVE)

        _, units = await _compute_span(
            session, leave_request.start_date, leave_request.end_date, LeaveUnit(leave_request.unit)
        )
        await ensure_no_overlap(
            session,
            leave_request.employee_id,
            leave_request.start_date,
            leave_request.end_date,
            exclude_request_id=leave_request.id,
        )

        reserved = leave_request.days_requested
        if units > reserved:
            raise InsufficientPendingError(
                f"Working days changed since submission: reserved {reserved}, now {units}. "
                "Return the request so it can be resubmitted."
            )

        balance = await _reserved_balance(session, leave_request)
        if balance is None:
            raise BalanceNotProvisionedError(
                f"Leave balance is not provisioned for {leave_request.start_date.year}. Contact an administrator."
            )
        consume(balance, units)
        if reserved > units:
            balance.pending_days = max(Decimal(0), balance.pending_days - (reserved - units))

        now = datetime.now(UTC)
        note = payload.note if payload is not None else None
        leave_request.days_requested = units
        leave_request.status = target.value
        leave_request.finalized_at = now
        if note is not None:
            leave_request.manager_comment = note
        leave_request.touch(now)

        append_approval_event(
            session,
            leave_request_id=leave_request.id,
            action=LeaveAction.APPROVED,
            actor_id=auth.employee_id,
            note=note,
        )

    await session.refresh(leave_request)
    logger.info("Leave request %s approved by %s", leave_request.id, auth.employee_id)
    await _after_commit(leave_request, leave_request.employee_id, "Leave request approved")
    return _build_request_response(leave_request)


async def return_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: ReturnLeavePayload,
) -> LeaveRequestResponse:
    """Send a submitted request back to the employee and release its reservation."""
    comment = payload.comment.strip()
    async with atomic(session, "returning leave request"):
        leave_request = await _get_request_for_update(session, request_id)
        await _ensure_manager(leave_request, auth)
        target = ensure_transition(leave_request.status, LeaveTransition.RETURN)
        if not comment:
            raise CommentRequiredError("A comment is required when returning a request")

        await release(
            session, _balance_key(leave_request), leave_request.days_requested, leave_request.balance_id
        )

        leave_request.status = target.value
        leave_request.manager_comment = comment
        leave_request.touch()

        append_approval_event(
            session,
            leave_request_id=leave_request.id,
            action=LeaveAction.RETURNED,
            actor_id=auth.employee_id,
            note=comment,
        )

    await session.refresh(leave_request)
    logger.info("Leave request %s returned by %s", leave_request.id, auth.employee_id)
    await _after_commit(leave_request, leave_request.employee_id, "Leave request returned for changes")
    return _build_request_response(leave_request)


async def _cancel(
    session: AsyncSession,
    leave_request: LeaveRequest,
    auth: AuthContext,
    note: str | None,
) -> None:
    target = ensure_transition(leave_request.status, LeaveTransition.CANCEL)
    if holds_reservation(leave_request.status):
        await release(
            session, _balance_key(leave_request), leave_request.days_requested, leave_request.balance_id
        )

    now = datetime.now(UTC)
    leave_request.status = target.value
    leave_request.finalized_at = now
    leave_request.touch(now)

    append_approval_event(
        session,
        leave_request_id=leave_request.id,
        action=LeaveAction.CANCELLED,
        actor_id=auth.employee_id,
        note=note,
    )


async def cancel_request(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> LeaveRequestResponse:
    """Cancel the caller's own submitted or returned request.

    Cancelling an already cancelled request returns it unchanged.
    """
    async with atomic(session, "cancelling leave request"):
        leave_request = await _get_request_for_update(session, request_id)
        _ensure_owner(leave_request, auth)
        already_cancelled = leave_request.status == LeaveStatus.CANCELLED
        if not already_cancelled:
            await _cancel(session, leave_request, auth, None)

    if already_cancelled:
        return _build_request_response(leave_request)

    await session.refresh(leave_request)
    logger.info("Leave request %s cancelled by employee %s", leave_request.id, auth.employee_id)
    await _after_commit(leave_request, leave_request.manager_id, "Leave request cancelled")
    return _build_request_response(leave_request)


async def cancel_request_by_manager(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
    payload: DecisionPayload | None = None,
) -> LeaveRequestResponse:
    """Cancel a team member's submitted or returned request."""
    note = payload.note if payload is not None else None
    async with atomic(session, "cancelling leave request"):
        leave_request = await _get_request_for_update(session, request_id)
        await _ensure_manager(leave_request, auth)
        already_cancelled = leave_request.status == LeaveStatus.CANCELLED
        if not already_cancelled:
            await _cancel(session, leave_request, auth, note)
            if note is not None:
                leave_request.manager_comment = note

    if already_cancelled:
        return _build_request_response(leave_request)

    await session.refresh(leave_request)
    logger.info("Leave request %s cancelled by manager %s", leave_request.id, auth.employee_id)
    await _after_commit(leave_request, leave_request.employee_id, "Leave request cancelled by your manager")
    return _build_request_response(leave_request)


# ---------------------------------------------------------------------------
# Read views
# ---------------------------------------------------------------------------


async def get_request_details(
    session: AsyncSession,
    auth: AuthContext,
    request_id: uuid.UUID,
) -> LeaveRequestDetailsResponse:
    """A request with its approval trail. Visible to the owner, its manager and admins."""
    cache_key = request_details_key(request_id)
    details = await read_cached(cache_key, LeaveRequestDetailsResponse)

    if details is None:
        leave_request = await session.get(LeaveRequest, request_id)
        if leave_request is None:
            raise LeaveRequestNotFoundError("Leave request not found")
        details = LeaveRequestDetailsResponse(
            **_build_request_response(leave_request).model_dump(),
            events=await list_events(session, request_id),
        )
        await write_cached(cache_key, details)

    if not (
        auth.is_admin
        or details.employee_id == auth.employee_id
        or await _is_manager_of_record(details.employee_id, details.manager_id, auth.employee_id)
    ):
        raise NotOwnerError("You can only view your own or your team's leave requests")
    return details


async def _paginate(
    session: AsyncSession,
    filters: list,
    offset: int,
    limit: int,
) -> LeaveRequestListResponse:
    count_result = await session.execute(select(func.count()).select_from(LeaveRequest).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(LeaveRequest)
        .where(*filters)
        .order_by(col(LeaveRequest.created_at).desc(), col(LeaveRequest.id))
        .offset(offset)
        .limit(limit)
    )
    return LeaveRequestListResponse(
        items=[_build_request_response(r) for r in result.scalars().all()],
        total=total,
    )


async def list_my_requests(
    session: AsyncSession,
    auth: AuthContext,
    status: LeaveStatus | None = None,
    offset: int = 0,
    limit: int = 50,
) -> LeaveRequestListResponse:
    """The caller's requests, newest first."""
    cache_key = my_list_key(auth.employee_id, status, offset, limit)
    cached = await read_cached(cache_key, LeaveRequestListResponse)
    if cached is not None:
        return cached

    filters = [col(LeaveRequest.employee_id) == auth.employee_id]
    if status is not None:
        filters.append(col(LeaveRequest.status) == status.value)

    response = await _paginate(session, filters, offset, limit)
    await write_cached(cache_key, response, tags=[my_list_tag(auth.employee_id)])
    return response


async def get_my_counts(session: AsyncSession, auth: AuthContext) -> LeaveCountsResponse:
    """Number of the caller's requests per status."""
    cache_key = my_counts_key(auth.employee_id)
    cached = await read_cached(cache_key, LeaveCountsResponse)
    if cached is not None:
        return cached

    result = await session.execute(
        select(col(LeaveRequest.status), func.count())
        .where(col(LeaveRequest.employee_id) == auth.employee_id)
        .group_by(col(LeaveRequest.status))
    )
    counts = {status.lower(): count for status, count in result.all()}
    response = LeaveCountsResponse(
        submitted=counts.get("submitted", 0),
        returned=counts.get("returned", 0),
        approved=counts.get("approved", 0),
        cancelled=counts.get("cancelled", 0),
    )
    await write_cached(cache_key, response, tags=[my_list_tag(auth.employee_id)])
    return response


async def list_team_requests(
    session: AsyncSession,
    auth: AuthContext,
    status: LeaveStatus | None = None,
    offset: int = 0,
    limit: int = 50,
) -> LeaveRequestListResponse:
    """Requests the caller is manager-of-record for, newest first."""
    cache_key = team_list_key(auth.employee_id, status, offset, limit)
    cached = await read_cached(cache_key, LeaveRequestListResponse)
    if cached is not None:
        return cached

    employees = await get_employee_service().list_employees(active_only=False)
    reports = [e.id for e in employees if e.manager_id == auth.employee_id]

    filters = [
        or_(
            col(LeaveRequest.manager_id) == auth.employee_id,
            col(LeaveRequest.employee_id).in_(reports),
        )
    ]
    if status is not None:
        filters.append(col(LeaveRequest.status) == status.value)

    response = await _paginate(session, filters, offset, limit)
    await write_cached(cache_key, response, tags=[team_list_tag(auth.employee_id)])
    return response
