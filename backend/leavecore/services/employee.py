# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable

from pydantic import BaseModel


class EmployeeInfo(BaseModel):
    """Employee metadata from the identity provider."""

    id: uuid.UUID
    first_name: str
    last_name: str
    email: str
    manager_id: uuid.UUID | None = None
    is_active: bool = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@runtime_checkable
class EmployeeService(Protocol):
    """Interface for the employee directory."""

    async def get_employee(self, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch employee metadata. Returns None if not found."""
        ...

    async def list_employees(self, *, active_only: bool = True) -> list[EmployeeInfo]:
        """List employees, by default only active ones."""
        ...


class InMemoryEmployeeService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._employees: dict[uuid.UUID, EmployeeInfo] = {}

    def seed(self, employee: EmployeeInfo) -> None:
        """Seed an employee for testing."""
        self._employees[employee.id] = employee

    async def get_employee(self, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch employee metadata. Returns None if not found."""
        return self._employees.get(employee_id)

    async def list_employees(self, *, active_only: bool = True) -> list[EmployeeInfo]:
        """List employees, by default only active ones."""
        return [e for e in self._employees.values() if e.is_active or not active_only]


_employee_service: EmployeeService = InMemoryEmployeeService()


def get_employee_service() -> EmployeeService:
    """FastAPI dependency for the employee directory."""
    return _employee_service


def set_employee_service(service: EmployeeService) -> None:
    """Override the service (for testing or production wiring)."""
    global _employee_service
    _employee_service = service
