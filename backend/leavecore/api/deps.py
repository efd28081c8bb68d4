# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header, status

from leavecore.exceptions import AppError
from leavecore.models.enums import Role
from leavecore.schemas.auth import AuthContext


async def get_auth_context(
    x_user_id: uuid.UUID = Header(),
    x_role: Role = Header(default=Role.EMPLOYEE),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    return AuthContext(employee_id=x_user_id, role=x_role)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def require_manager(
    auth: AuthDep,
) -> AuthContext:
    """Require a manager (or admin) role for the request."""
    if auth.role not in (Role.MANAGER, Role.ADMIN):
        raise AppError("Manager access required", status_code=status.HTTP_403_FORBIDDEN)
    return auth


ManagerDep = Annotated[AuthContext, Depends(require_manager)]


async def require_admin(
    auth: AuthDep,
) -> AuthContext:
    """Require admin role for the request."""
    if not auth.is_admin:
        raise AppError("Admin access required", status_code=status.HTTP_403_FORBIDDEN)
    return auth


AdminDep = Annotated[AuthContext, Depends(require_admin)]
