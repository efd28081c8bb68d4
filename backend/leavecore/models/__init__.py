from sqlmodel import SQLModel

from leavecore.models.balance import LeaveBalance
from leavecore.models.base import TimestampMixin, UUIDBase, VersionedMixin
from leavecore.models.document import LeaveDocument
from leavecore.models.enums import DocumentKind, LeaveAction, LeaveStatus, LeaveUnit, Role
from leavecore.models.event import LeaveApprovalEvent
from leavecore.models.holiday import Holiday
from leavecore.models.leave_type import LeaveType
from leavecore.models.request import LeaveRequest

__all__ = [
    "DocumentKind",
    "Holiday",
    "LeaveAction",
    "LeaveApprovalEvent",
    "LeaveBalance",
    "LeaveDocument",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveType",
    "LeaveUnit",
    "Role",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
    "VersionedMixin",
]
