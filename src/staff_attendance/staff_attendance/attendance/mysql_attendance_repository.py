from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..core.exceptions import AlreadyMarked
from ..database.mysql_base import (
    duplicate_key_as,
    fetchall,
    fetchone,
    lock_clause,
    normalize_mysql_time,
    to_bool,
    to_decimal,
)
from .model import AttendanceMark, AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, employee_id, work_date, status, entry_time, exit_time, notes,
    is_site_visit, site_location, site_visit_cost, cost_approved, cost_approved_by,
    cost_approved_at, comp_off_earned, admin_edited, marked_at
"""


def _row_to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        employee_id=int(r["employee_id"]),
        work_date=r["work_date"],
        status=AttendanceStatus(r["status"]),
        entry_time=normalize_mysql_time(r.get("entry_time")),
        exit_time=normalize_mysql_time(r.get("exit_time")),
        notes=r.get("notes"),
        is_site_visit=to_bool(r.get("is_site_visit")),
        site_location=r.get("site_location"),
        site_visit_cost=to_decimal(r.get("site_visit_cost")),
        cost_approved=to_bool(r.get("cost_approved")),
        cost_approved_by=r.get("cost_approved_by"),
        cost_approved_at=r.get("cost_approved_at"),
        comp_off_earned=to_bool(r.get("comp_off_earned")),
        admin_edited=to_bool(r.get("admin_edited")),
        marked_at=r.get("marked_at"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, cur):
        self._cur = cur

    def get_by_id(self, attendance_id: int, *, for_update: bool = False) -> Optional[AttendanceRecord]:
        lock = lock_clause(for_update)
        self._cur.execute(
            f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s{lock}",
            (int(attendance_id),),
        )
        r = fetchone(self._cur)
        return _row_to_record(r) if r else None

    def get_for_employee_and_date(
        self, employee_id: int, work_date: date, *, for_update: bool = False
    ) -> Optional[AttendanceRecord]:
        lock = lock_clause(for_update)
        self._cur.execute(
            f"SELECT {_COLUMNS} FROM attendance_records WHERE employee_id=%s AND work_date=%s{lock}",
            (int(employee_id), work_date),
        )
        r = fetchone(self._cur)
        return _row_to_record(r) if r else None

    def insert(self, mark: AttendanceMark) -> int:
        with duplicate_key_as(AlreadyMarked, f"Attendance for {mark.work_date.isoformat()} is already marked"):
            self._cur.execute(
                """
                INSERT INTO attendance_records(
                    employee_id, work_date, status, entry_time, exit_time, notes,
                    comp_off_earned, admin_edited, marked_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(mark.employee_id),
                    mark.work_date,
                    mark.status.value,
                    mark.entry_time,
                    mark.exit_time,
                    mark.notes,
                    int(mark.comp_off_earned),
                    int(mark.admin_edited),
                    mark.marked_at,
                ),
            )
        return int(self._cur.lastrowid)

    def update_mark(self, attendance_id: int, mark: AttendanceMark) -> bool:
        self._cur.execute(
            """
            UPDATE attendance_records
            SET status=%s, entry_time=%s, exit_time=%s, notes=%s,
                comp_off_earned=%s, admin_edited=%s, marked_at=%s
            WHERE attendance_id=%s
            """,
            (
                mark.status.value,
                mark.entry_time,
                mark.exit_time,
                mark.notes,
                int(mark.comp_off_earned),
                int(mark.admin_edited),
                mark.marked_at,
                int(attendance_id),
            ),
        )
        return self._cur.rowcount > 0

    def set_exit_time(self, attendance_id: int, exit_time: time) -> bool:
        self._cur.execute(
            "UPDATE attendance_records SET exit_time=%s WHERE attendance_id=%s",
            (exit_time, int(attendance_id)),
        )
        return self._cur.rowcount > 0

    def set_site_visit(self, attendance_id: int, *, location: Optional[str]) -> bool:
        self._cur.execute(
            "UPDATE attendance_records SET is_site_visit=1, site_location=%s WHERE attendance_id=%s",
            (location, int(attendance_id)),
        )
        return self._cur.rowcount > 0

    def set_cost_decision(
        self,
        attendance_id: int,
        *,
        approved: bool,
        decided_by: int,
        decided_at: datetime,
        cost: Optional[Decimal] = None,
    ) -> bool:
        if approved:
            self._cur.execute(
                """
                UPDATE attendance_records
                SET site_visit_cost=%s, cost_approved=1, cost_approved_by=%s, cost_approved_at=%s
                WHERE attendance_id=%s
                """,
                (cost, int(decided_by), decided_at, int(attendance_id)),
            )
        else:
            self._cur.execute(
                """
                UPDATE attendance_records
                SET cost_approved=0, cost_approved_by=%s, cost_approved_at=%s
                WHERE attendance_id=%s
                """,
                (int(decided_by), decided_at, int(attendance_id)),
            )
        return self._cur.rowcount > 0

    def delete(self, attendance_id: int) -> bool:
        # site_visit_details / site_visit_expenses go with it (ON DELETE CASCADE).
        self._cur.execute("DELETE FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))
        return self._cur.rowcount > 0

    def list_for_employee(self, employee_id: int, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM attendance_records
            WHERE employee_id=%s AND work_date BETWEEN %s AND %s
            ORDER BY work_date
            """,
            (int(employee_id), start_date, end_date),
        )
        return [_row_to_record(r) for r in fetchall(self._cur)]

    def list_between(self, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM attendance_records
            WHERE work_date BETWEEN %s AND %s
            ORDER BY work_date DESC, employee_id ASC
            """,
            (start_date, end_date),
        )
        return [_row_to_record(r) for r in fetchall(self._cur)]
