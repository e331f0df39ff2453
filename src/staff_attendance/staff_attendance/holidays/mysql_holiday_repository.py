from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.exceptions import AlreadyMarked
from ..database.mysql_base import duplicate_key_as, fetchall, fetchone, to_bool
from .model import Holiday
from .repository import HolidayRepository

_COLUMNS = "holiday_id, holiday_date, holiday_name, description, is_recurring, created_by"


def _row_to_holiday(r: dict) -> Holiday:
    return Holiday(
        holiday_id=int(r["holiday_id"]),
        holiday_date=r["holiday_date"],
        name=r["holiday_name"],
        description=r.get("description"),
        is_recurring=to_bool(r.get("is_recurring")),
        created_by=int(r["created_by"]) if r.get("created_by") is not None else None,
    )


class MySQLHolidayRepository(HolidayRepository):
    def __init__(self, cur):
        self._cur = cur

    def list_between(self, start_date: date, end_date: date) -> Sequence[Holiday]:
        # Recurring holidays are stored once and matched on month/day in Python.
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM holidays
            WHERE holiday_date BETWEEN %s AND %s OR is_recurring=1
            ORDER BY holiday_date
            """,
            (start_date, end_date),
        )
        holidays = [_row_to_holiday(r) for r in fetchall(self._cur)]
        return [h for h in holidays if not h.is_recurring or _recurs_in(h, start_date, end_date)]

    def list_for_year(self, year: Optional[int] = None) -> Sequence[Holiday]:
        if year is None:
            self._cur.execute(f"SELECT {_COLUMNS} FROM holidays ORDER BY holiday_date")
        else:
            self._cur.execute(
                f"SELECT {_COLUMNS} FROM holidays WHERE YEAR(holiday_date)=%s OR is_recurring=1 ORDER BY holiday_date",
                (int(year),),
            )
        return [_row_to_holiday(r) for r in fetchall(self._cur)]

    def get_by_id(self, holiday_id: int) -> Optional[Holiday]:
        self._cur.execute(f"SELECT {_COLUMNS} FROM holidays WHERE holiday_id=%s", (int(holiday_id),))
        r = fetchone(self._cur)
        return _row_to_holiday(r) if r else None

    def add(
        self,
        *,
        holiday_date: date,
        name: str,
        description: Optional[str],
        is_recurring: bool,
        created_by: Optional[int],
    ) -> int:
        with duplicate_key_as(AlreadyMarked, f"A holiday is already declared on {holiday_date.isoformat()}"):
            self._cur.execute(
                """
                INSERT INTO holidays(holiday_date, holiday_name, description, is_recurring, created_by)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (holiday_date, name, description, int(is_recurring), created_by),
            )
        return int(self._cur.lastrowid)

    def delete(self, holiday_id: int) -> bool:
        self._cur.execute("DELETE FROM holidays WHERE holiday_id=%s", (int(holiday_id),))
        return self._cur.rowcount > 0


def _recurs_in(holiday: Holiday, start_date: date, end_date: date) -> bool:
    for year in range(start_date.year, end_date.year + 1):
        try:
            candidate = holiday.holiday_date.replace(year=year)
        except ValueError:
            continue
        if start_date <= candidate <= end_date:
            return True
    return False
