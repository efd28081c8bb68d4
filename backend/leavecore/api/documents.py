# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, File, Form, UploadFile, status

from leavecore.api.deps import AuthDep
from leavecore.db import SessionDep
from leavecore.models.enums import DocumentKind
from leavecore.schemas.document import DocumentResponse
from leavecore.services import attachment as attachment_service

documents_router = APIRouter(
    prefix="/leave/documents",
    tags=["documents"],
)


@documents_router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    session: SessionDep,
    auth: AuthDep,
    file: UploadFile = File(),
    kind: DocumentKind = Form(default=DocumentKind.DOCTOR_NOTE),
    leave_request_id: uuid.UUID | None = Form(default=None),
) -> DocumentResponse:
    """Upload an attachment, typically a doctor's note, for the caller."""
    data = await file.read()
    return await attachment_service.upload_document(
        session,
        auth,
        file_name=file.filename or "upload",
        content_type=file.content_type or "application/octet-stream",
        data=data,
        kind=kind,
        leave_request_id=leave_request_id,
    )
