from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class Employee:
    """Domain entity: an employee known to the attendance core."""

    employee_id: int
    full_name: str
    role: Role
    employee_code: Optional[str] = None
    department: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class Actor:
    """Identity resolved by the external auth collaborator.

    The core trusts it as-is; credentials are never re-verified here.
    """

    employee_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def owns(self, employee_id: int) -> bool:
        return int(employee_id) == int(self.employee_id)
