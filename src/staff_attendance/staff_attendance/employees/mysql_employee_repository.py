from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.mysql_base import fetchall, fetchone, to_bool
from .model import Employee
from .repository import EmployeeRepository

_COLUMNS = "employee_id, full_name, employee_code, department, role, is_active"


def _row_to_employee(row: dict) -> Employee:
    return Employee(
        employee_id=int(row["employee_id"]),
        full_name=row["full_name"],
        role=Role(row["role"]),
        employee_code=row.get("employee_code"),
        department=row.get("department"),
        is_active=to_bool(row.get("is_active", 1)),
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, cur):
        self._cur = cur

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        self._cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE employee_id=%s", (int(employee_id),))
        row = fetchone(self._cur)
        return _row_to_employee(row) if row else None

    def list_active(self) -> Sequence[Employee]:
        self._cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE is_active=1 ORDER BY employee_id")
        return [_row_to_employee(r) for r in fetchall(self._cur)]

    def list_admins(self) -> Sequence[Employee]:
        self._cur.execute(
            f"SELECT {_COLUMNS} FROM employees WHERE is_active=1 AND role=%s ORDER BY employee_id",
            (Role.ADMIN.value,),
        )
        return [_row_to_employee(r) for r in fetchall(self._cur)]
