from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from .model import AttendanceMark, AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int, *, for_update: bool = False) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_employee_and_date(
        self, employee_id: int, work_date: date, *, for_update: bool = False
    ) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def insert(self, mark: AttendanceMark) -> int:
        """Insert a new record; (employee_id, work_date) is unique in storage."""

        raise NotImplementedError

    def update_mark(self, attendance_id: int, mark: AttendanceMark) -> bool:
        raise NotImplementedError

    def set_exit_time(self, attendance_id: int, exit_time: time) -> bool:
        raise NotImplementedError

    def set_site_visit(self, attendance_id: int, *, location: Optional[str]) -> bool:
        raise NotImplementedError

    def set_cost_decision(
        self,
        attendance_id: int,
        *,
        approved: bool,
        decided_by: int,
        decided_at: datetime,
        cost: Optional[Decimal] = None,
    ) -> bool:
        """Write an expense decision back onto the record (cost only on approval)."""

        raise NotImplementedError

    def delete(self, attendance_id: int) -> bool:
        raise NotImplementedError

    def list_for_employee(self, employee_id: int, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_between(self, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
