from __future__ import annotations

from datetime import date, datetime

import pytest
from mysql.connector import errorcode, errors

from src.staff_attendance.staff_attendance.attendance.model import AttendanceMark
from src.staff_attendance.staff_attendance.attendance.mysql_attendance_repository import MySQLAttendanceRepository
from src.staff_attendance.staff_attendance.balances.mysql_balance_repository import MySQLCompOffRepository
from src.staff_attendance.staff_attendance.core.enums import AttendanceStatus
from src.staff_attendance.staff_attendance.core.exceptions import AlreadyMarked
from src.staff_attendance.staff_attendance.leaves.mysql_leave_repository import MySQLLeaveQuotaRepository


class ScriptedCursor:
    """Records statements; INSERTs can be made to fail like the connector does."""

    def __init__(self, *, insert_error=None, rows=()):
        self.statements = []
        self.lastrowid = 41
        self.rowcount = 1
        self._insert_error = insert_error
        self._rows = list(rows)

    def execute(self, sql, params=()):
        self.statements.append(" ".join(sql.split()))
        if self._insert_error and sql.lstrip().upper().startswith("INSERT"):
            raise self._insert_error

    def fetchone(self):
        return self._rows.pop(0) if self._rows else None

    def fetchall(self):
        rows, self._rows = self._rows, []
        return rows


def _duplicate():
    return errors.IntegrityError(msg="Duplicate entry", errno=errorcode.ER_DUP_ENTRY)


MARK = AttendanceMark(
    employee_id=2,
    work_date=date(2026, 2, 2),
    status=AttendanceStatus.PRESENT,
    marked_at=datetime(2026, 2, 2, 9, 15),
)


def test_attendance_insert_race_is_already_marked():
    repo = MySQLAttendanceRepository(ScriptedCursor(insert_error=_duplicate()))

    with pytest.raises(AlreadyMarked, match="2026-02-02"):
        repo.insert(MARK)


def test_other_integrity_errors_propagate():
    missing_employee = errors.IntegrityError(msg="FK", errno=errorcode.ER_NO_REFERENCED_ROW_2)
    repo = MySQLAttendanceRepository(ScriptedCursor(insert_error=missing_employee))

    with pytest.raises(errors.IntegrityError):
        repo.insert(MARK)


def test_attendance_insert_returns_new_id():
    assert MySQLAttendanceRepository(ScriptedCursor()).insert(MARK) == 41


def test_comp_off_insert_race_is_already_marked():
    repo = MySQLCompOffRepository(ScriptedCursor(insert_error=_duplicate()))

    with pytest.raises(AlreadyMarked):
        repo.create(
            employee_id=2,
            earned_date=date(2026, 2, 2),
            earned_for_date=date(2026, 2, 1),
            earned_reason="Worked on Sunday",
            expires_at=date(2026, 5, 3),
        )


def test_quota_create_tolerates_a_concurrent_first_request():
    # The other transaction's row already holds 3 pending days.
    committed = {"employee_id": 2, "annual_leave_quota": 12, "leaves_taken": 0, "leaves_pending": 3}
    cur = ScriptedCursor(rows=[committed])

    quota = MySQLLeaveQuotaRepository(cur).create(2, annual_leave_quota=12)

    assert cur.statements[0].startswith("INSERT IGNORE INTO leave_quotas")
    assert cur.statements[1].endswith("FOR UPDATE")
    assert quota.leaves_pending == 3
    assert quota.remaining == 9
