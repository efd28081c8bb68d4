from __future__ import annotations

import enum


class LeaveStatus(enum.StrEnum):
    """Lifecycle state of a leave request."""

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    RETURNED = "RETURNED"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"


class LeaveUnit(enum.StrEnum):
    """Granularity of a leave request."""

    FULL_DAY = "FULL_DAY"
    HALF_DAY = "HALF_DAY"


class LeaveAction(enum.StrEnum):
    """Action recorded on the approval event trail."""

    CREATED = "CREATED"
    SUBMITTED = "SUBMITTED"
    RETURNED = "RETURNED"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"


class DocumentKind(enum.StrEnum):
    """Kind of file attached to a leave request."""

    DOCTOR_NOTE = "DOCTOR_NOTE"
    OTHER = "OTHER"


class Role(enum.StrEnum):
    """Caller role supplied by the identity provider."""

    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"
