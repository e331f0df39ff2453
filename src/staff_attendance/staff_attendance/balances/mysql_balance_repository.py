from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import CompOffStatus
from ..core.exceptions import AlreadyMarked
from ..database.mysql_base import duplicate_key_as, fetchall, fetchone, lock_clause, to_decimal
from .model import CompensatoryOff, MonthlyBalance
from .repository import CompOffRepository, MonthlyBalanceRepository

_COMP_OFF_COLUMNS = """
    comp_off_id, employee_id, earned_date, earned_for_date, earned_reason,
    status, used_on, expires_at
"""

_BALANCE_COLUMNS = """
    employee_id, year, month, total_hours_worked, expected_hours, balance_hours,
    working_days, days_present, days_wfh, days_half_day, days_on_leave, days_late,
    comp_off_earned, comp_off_used, comp_off_balance
"""


def _row_to_comp_off(r: dict) -> CompensatoryOff:
    return CompensatoryOff(
        comp_off_id=int(r["comp_off_id"]),
        employee_id=int(r["employee_id"]),
        earned_date=r["earned_date"],
        earned_for_date=r["earned_for_date"],
        earned_reason=r.get("earned_reason"),
        status=CompOffStatus(r["status"]),
        used_on=r.get("used_on"),
        expires_at=r.get("expires_at"),
    )


def _row_to_balance(r: dict) -> MonthlyBalance:
    return MonthlyBalance(
        employee_id=int(r["employee_id"]),
        year=int(r["year"]),
        month=int(r["month"]),
        total_hours_worked=to_decimal(r["total_hours_worked"]),
        expected_hours=to_decimal(r["expected_hours"]),
        balance_hours=to_decimal(r["balance_hours"]),
        working_days=int(r["working_days"]),
        days_present=int(r["days_present"]),
        days_wfh=int(r["days_wfh"]),
        days_half_day=int(r["days_half_day"]),
        days_on_leave=int(r["days_on_leave"]),
        days_late=int(r["days_late"]),
        comp_off_earned=int(r["comp_off_earned"]),
        comp_off_used=int(r["comp_off_used"]),
        comp_off_balance=int(r["comp_off_balance"]),
    )


class MySQLCompOffRepository(CompOffRepository):
    def __init__(self, cur):
        self._cur = cur

    def create(
        self,
        *,
        employee_id: int,
        earned_date: date,
        earned_for_date: date,
        earned_reason: Optional[str],
        expires_at: Optional[date],
    ) -> int:
        with duplicate_key_as(AlreadyMarked, f"A comp-off was already credited for {earned_for_date.isoformat()}"):
            self._cur.execute(
                """
                INSERT INTO compensatory_offs(
                    employee_id, earned_date, earned_for_date, earned_reason, status, expires_at
                )
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(employee_id),
                    earned_date,
                    earned_for_date,
                    earned_reason,
                    CompOffStatus.AVAILABLE.value,
                    expires_at,
                ),
            )
        return int(self._cur.lastrowid)

    def get_by_id(self, comp_off_id: int, *, for_update: bool = False) -> Optional[CompensatoryOff]:
        lock = lock_clause(for_update)
        self._cur.execute(
            f"SELECT {_COMP_OFF_COLUMNS} FROM compensatory_offs WHERE comp_off_id=%s{lock}",
            (int(comp_off_id),),
        )
        r = fetchone(self._cur)
        return _row_to_comp_off(r) if r else None

    def get_for_earned_date(self, employee_id: int, earned_for_date: date) -> Optional[CompensatoryOff]:
        self._cur.execute(
            f"SELECT {_COMP_OFF_COLUMNS} FROM compensatory_offs WHERE employee_id=%s AND earned_for_date=%s",
            (int(employee_id), earned_for_date),
        )
        r = fetchone(self._cur)
        return _row_to_comp_off(r) if r else None

    def set_status(
        self,
        comp_off_id: int,
        *,
        status: CompOffStatus,
        expected: CompOffStatus,
        used_on: Optional[date] = None,
    ) -> bool:
        if status == CompOffStatus.USED:
            self._cur.execute(
                """
                UPDATE compensatory_offs
                SET status=%s, used_on=%s
                WHERE comp_off_id=%s AND status=%s
                """,
                (status.value, used_on, int(comp_off_id), expected.value),
            )
        else:
            self._cur.execute(
                "UPDATE compensatory_offs SET status=%s WHERE comp_off_id=%s AND status=%s",
                (status.value, int(comp_off_id), expected.value),
            )
        return self._cur.rowcount > 0

    def list_for_employee(self, employee_id: int) -> Sequence[CompensatoryOff]:
        self._cur.execute(
            f"""
            SELECT {_COMP_OFF_COLUMNS}
            FROM compensatory_offs
            WHERE employee_id=%s
            ORDER BY earned_date DESC, comp_off_id DESC
            """,
            (int(employee_id),),
        )
        return [_row_to_comp_off(r) for r in fetchall(self._cur)]

    def list_available(self, employee_id: int, *, today: date) -> Sequence[CompensatoryOff]:
        self._cur.execute(
            f"""
            SELECT {_COMP_OFF_COLUMNS}
            FROM compensatory_offs
            WHERE employee_id=%s AND status=%s
              AND (expires_at IS NULL OR expires_at > %s)
            ORDER BY expires_at IS NULL, expires_at ASC, comp_off_id ASC
            """,
            (int(employee_id), CompOffStatus.AVAILABLE.value, today),
        )
        return [_row_to_comp_off(r) for r in fetchall(self._cur)]

    def list_earned_between(self, employee_id: int, start_date: date, end_date: date) -> Sequence[CompensatoryOff]:
        self._cur.execute(
            f"""
            SELECT {_COMP_OFF_COLUMNS}
            FROM compensatory_offs
            WHERE employee_id=%s AND earned_date BETWEEN %s AND %s
            ORDER BY comp_off_id
            """,
            (int(employee_id), start_date, end_date),
        )
        return [_row_to_comp_off(r) for r in fetchall(self._cur)]


class MySQLMonthlyBalanceRepository(MonthlyBalanceRepository):
    def __init__(self, cur):
        self._cur = cur

    def upsert(self, balance: MonthlyBalance) -> None:
        self._cur.execute(
            """
            INSERT INTO monthly_balances(
                employee_id, year, month, total_hours_worked, expected_hours, balance_hours,
                working_days, days_present, days_wfh, days_half_day, days_on_leave, days_late,
                comp_off_earned, comp_off_used, comp_off_balance
            )
            VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
            ON DUPLICATE KEY UPDATE
                total_hours_worked=VALUES(total_hours_worked),
                expected_hours=VALUES(expected_hours),
                balance_hours=VALUES(balance_hours),
                working_days=VALUES(working_days),
                days_present=VALUES(days_present),
                days_wfh=VALUES(days_wfh),
                days_half_day=VALUES(days_half_day),
                days_on_leave=VALUES(days_on_leave),
                days_late=VALUES(days_late),
                comp_off_earned=VALUES(comp_off_earned),
                comp_off_used=VALUES(comp_off_used),
                comp_off_balance=VALUES(comp_off_balance)
            """,
            (
                int(balance.employee_id),
                int(balance.year),
                int(balance.month),
                balance.total_hours_worked,
                balance.expected_hours,
                balance.balance_hours,
                balance.working_days,
                balance.days_present,
                balance.days_wfh,
                balance.days_half_day,
                balance.days_on_leave,
                balance.days_late,
                balance.comp_off_earned,
                balance.comp_off_used,
                balance.comp_off_balance,
            ),
        )

    def get(self, employee_id: int, year: int, month: int) -> Optional[MonthlyBalance]:
        self._cur.execute(
            f"SELECT {_BALANCE_COLUMNS} FROM monthly_balances WHERE employee_id=%s AND year=%s AND month=%s",
            (int(employee_id), int(year), int(month)),
        )
        r = fetchone(self._cur)
        return _row_to_balance(r) if r else None

    def list_for_month(self, year: int, month: int) -> Sequence[MonthlyBalance]:
        self._cur.execute(
            f"SELECT {_BALANCE_COLUMNS} FROM monthly_balances WHERE year=%s AND month=%s ORDER BY employee_id",
            (int(year), int(month)),
        )
        return [_row_to_balance(r) for r in fetchall(self._cur)]
