# ruff: noqa: TC003
from __future__ import annotations

import hashlib
import uuid
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from pydantic import BaseModel
from sqlalchemy import select
from sqlmodel import col

from leavecore.exceptions import (
    AttachmentNotFoundError,
    EmptyUploadError,
    LeaveRequestNotFoundError,
    NotOwnerError,
)
from leavecore.models.document import LeaveDocument
from leavecore.models.enums import DocumentKind
from leavecore.models.request import LeaveRequest
from leavecore.schemas.document import DocumentResponse

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from leavecore.schemas.auth import AuthContext


class StoredFile(BaseModel):
    """Where the storage backend put an upload."""

    storage_path: str
    size_bytes: int
    checksum: str


@runtime_checkable
class AttachmentStorage(Protocol):
    """Interface for the file store that holds attachment bytes."""

    async def upload(self, data: bytes, file_name: str, content_type: str) -> StoredFile:
        """Persist bytes and return a stable reference."""
        ...

    async def delete(self, storage_path: str) -> None:
        """Remove a previously stored file."""
        ...


class InMemoryAttachmentStorage:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}

    async def upload(self, data: bytes, file_name: str, content_type: str) -> StoredFile:
        checksum = hashlib.sha256(data).hexdigest()
        storage_path = f"memory://leave-documents/{uuid.uuid4().hex}/{file_name}"
        self.files[storage_path] = data
        return StoredFile(storage_path=storage_path, size_bytes=len(data), checksum=checksum)

    async def delete(self, storage_path: str) -> None:
        self.files.pop(storage_path, None)


_attachment_storage: AttachmentStorage = InMemoryAttachmentStorage()


def get_attachment_storage() -> AttachmentStorage:
    """Return the active attachment storage."""
    return _attachment_storage


def set_attachment_storage(storage: AttachmentStorage) -> None:
    """Override the storage (for testing or production wiring)."""
    global _attachment_storage
    _attachment_storage = storage


def _build_document_response(document: LeaveDocument) -> DocumentResponse:
    return DocumentResponse(
        id=document.id,
        employee_id=document.employee_id,
        leave_request_id=document.leave_request_id,
        kind=DocumentKind(document.kind),
        file_name=document.file_name,
        content_type=document.content_type,
        storage_path=document.storage_path,
        size_bytes=document.size_bytes,
        checksum=document.checksum,
        created_at=document.created_at,
    )


async def upload_document(
    session: AsyncSession,
    auth: AuthContext,
    *,
    file_name: str,
    content_type: str,
    data: bytes,
    kind: DocumentKind = DocumentKind.DOCTOR_NOTE,
    leave_request_id: uuid.UUID | None = None,
) -> DocumentResponse:
    """Store an attachment and record its reference.

    When a leave request is given, only its owner may attach to it.
    """
    if not data:
        raise EmptyUploadError("No file content provided")

    if leave_request_id is not None:
        leave_request = await session.get(LeaveRequest, leave_request_id)
        if leave_request is None:
            raise LeaveRequestNotFoundError("Leave request not found")
        if leave_request.employee_id != auth.employee_id:
            raise NotOwnerError("You can only attach documents to your own leave requests")

    stored = await get_attachment_storage().upload(data, file_name, content_type)

    document = LeaveDocument(
        employee_id=auth.employee_id,
        leave_request_id=leave_request_id,
        kind=kind.value,
        file_name=file_name,
        content_type=content_type,
        storage_path=stored.storage_path,
        size_bytes=stored.size_bytes,
        checksum=stored.checksum,
    )
    session.add(document)
    await session.commit()
    await session.refresh(document)
    return _build_document_response(document)


async def ensure_attachment_owned(
    session: AsyncSession,
    employee_id: uuid.UUID,
    attachment_id: uuid.UUID,
) -> LeaveDocument:
    """Return the attachment if it exists and belongs to the employee."""
    result = await session.execute(
        select(LeaveDocument).where(
            col(LeaveDocument.id) == attachment_id,
            col(LeaveDocument.employee_id) == employee_id,
        )
    )
    document = result.scalar_one_or_none()
    if document is None:
        raise AttachmentNotFoundError("Doctor's note attachment not found")
    return document
