# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel

from leavecore.models.enums import DocumentKind


class DocumentResponse(BaseModel):
    """Stored attachment reference."""

    id: uuid.UUID
    employee_id: uuid.UUID
    leave_request_id: uuid.UUID | None
    kind: DocumentKind
    file_name: str
    content_type: str
    storage_path: str
    size_bytes: int
    checksum: str | None
    created_at: datetime
