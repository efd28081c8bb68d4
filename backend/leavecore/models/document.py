# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from leavecore.models.base import TimestampMixin, UUIDBase
from leavecore.models.enums import DocumentKind


class LeaveDocument(UUIDBase, TimestampMixin, table=True):
    """Reference to an uploaded attachment. The bytes live in external storage."""

    __tablename__ = "leave_document"

    employee_id: uuid.UUID = Field(index=True)
    leave_request_id: uuid.UUID | None = Field(
        default=None,
        sa_column=sa.Column(sa.Uuid, sa.ForeignKey("leave_request.id", ondelete="SET NULL"), nullable=True),
    )
    kind: str = Field(default=DocumentKind.DOCTOR_NOTE, max_length=20)
    file_name: str = Field(max_length=255)
    content_type: str = Field(max_length=255)
    storage_path: str = Field(max_length=1024)
    size_bytes: int
    checksum: str | None = Field(default=None, max_length=128)
