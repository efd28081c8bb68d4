# ruff: noqa: TC003
from __future__ import annotations

import uuid

from pydantic import BaseModel

from leavecore.models.enums import Role


class AuthContext(BaseModel):
    """Caller identity supplied by the identity provider (dev: request headers)."""

    employee_id: uuid.UUID
    role: Role = Role.EMPLOYEE

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
