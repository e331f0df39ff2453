from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import SiteVisitStatus
from ..core.exceptions import AlreadyMarked
from ..database.mysql_base import duplicate_key_as, fetchall, fetchone, in_clause, lock_clause, to_decimal
from .model import ExpenseItem, SiteVisit, SiteVisitDetails, SiteVisitExpense
from .repository import SiteVisitRepository

_COLUMNS = """
    site_visit_id, attendance_id, employee_id, visit_date, location, company_name,
    num_gauges, visit_summary, conclusion, status, submitted_at, reviewed_by,
    reviewed_at, rejection_reason
"""

_AUTOCOMPLETE_SQL = {
    "location": """
        SELECT location AS value, COUNT(*) AS usage_count
        FROM site_visit_details
        WHERE location IS NOT NULL AND location <> ''
        GROUP BY location
    """,
    "company": """
        SELECT company_name AS value, COUNT(*) AS usage_count
        FROM site_visit_details
        WHERE company_name IS NOT NULL AND company_name <> ''
        GROUP BY company_name
    """,
    "expense_type": """
        SELECT expense_type AS value, COUNT(*) AS usage_count
        FROM site_visit_expenses
        WHERE expense_type IS NOT NULL AND expense_type <> ''
        GROUP BY expense_type
    """,
}


def _row_to_expense(r: dict) -> SiteVisitExpense:
    return SiteVisitExpense(
        expense_id=int(r["expense_id"]),
        site_visit_id=int(r["site_visit_id"]),
        expense_type=r["expense_type"],
        amount=to_decimal(r["amount"]),
        description=r.get("description"),
        notes=r.get("notes"),
    )


def _row_to_site_visit(r: dict, expenses: Sequence[SiteVisitExpense]) -> SiteVisit:
    return SiteVisit(
        site_visit_id=int(r["site_visit_id"]),
        attendance_id=int(r["attendance_id"]),
        employee_id=int(r["employee_id"]),
        visit_date=r["visit_date"],
        location=r["location"],
        status=SiteVisitStatus(r["status"]),
        company_name=r.get("company_name"),
        num_gauges=int(r.get("num_gauges") or 0),
        visit_summary=r.get("visit_summary"),
        conclusion=r.get("conclusion"),
        submitted_at=r.get("submitted_at"),
        reviewed_by=r.get("reviewed_by"),
        reviewed_at=r.get("reviewed_at"),
        rejection_reason=r.get("rejection_reason"),
        expenses=tuple(expenses),
    )


class MySQLSiteVisitRepository(SiteVisitRepository):
    def __init__(self, cur):
        self._cur = cur

    def _expenses_for(self, site_visit_ids: Sequence[int]) -> dict[int, list[SiteVisitExpense]]:
        grouped: dict[int, list[SiteVisitExpense]] = {int(i): [] for i in site_visit_ids}
        if not grouped:
            return grouped

        placeholders = in_clause(list(grouped))
        self._cur.execute(
            f"""
            SELECT expense_id, site_visit_id, expense_type, amount, description, notes
            FROM site_visit_expenses
            WHERE site_visit_id IN ({placeholders})
            ORDER BY expense_id
            """,
            tuple(grouped),
        )
        for r in fetchall(self._cur):
            expense = _row_to_expense(r)
            grouped[expense.site_visit_id].append(expense)
        return grouped

    def _load_one(self, where: str, params: tuple, *, for_update: bool = False) -> Optional[SiteVisit]:
        lock = lock_clause(for_update)
        self._cur.execute(f"SELECT {_COLUMNS} FROM site_visit_details WHERE {where}{lock}", params)
        r = fetchone(self._cur)
        if not r:
            return None
        expenses = self._expenses_for([int(r["site_visit_id"])])
        return _row_to_site_visit(r, expenses[int(r["site_visit_id"])])

    def create(
        self,
        *,
        attendance_id: int,
        employee_id: int,
        visit_date: date,
        details: SiteVisitDetails,
    ) -> int:
        with duplicate_key_as(AlreadyMarked, f"A site visit already exists for {visit_date.isoformat()}"):
            self._cur.execute(
                """
                INSERT INTO site_visit_details(
                    attendance_id, employee_id, visit_date, location, company_name,
                    num_gauges, visit_summary, conclusion, status
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(attendance_id),
                    int(employee_id),
                    visit_date,
                    details.location,
                    details.company_name,
                    int(details.num_gauges),
                    details.visit_summary,
                    details.conclusion,
                    SiteVisitStatus.DRAFT.value,
                ),
            )
        return int(self._cur.lastrowid)

    def get(self, site_visit_id: int, *, for_update: bool = False) -> Optional[SiteVisit]:
        return self._load_one("site_visit_id=%s", (int(site_visit_id),), for_update=for_update)

    def get_by_attendance_id(self, attendance_id: int) -> Optional[SiteVisit]:
        return self._load_one("attendance_id=%s", (int(attendance_id),))

    def get_for_employee_and_date(self, employee_id: int, visit_date: date) -> Optional[SiteVisit]:
        return self._load_one("employee_id=%s AND visit_date=%s", (int(employee_id), visit_date))

    def update_details(self, site_visit_id: int, details: SiteVisitDetails) -> bool:
        self._cur.execute(
            """
            UPDATE site_visit_details
            SET location=%s, company_name=%s, num_gauges=%s, visit_summary=%s, conclusion=%s
            WHERE site_visit_id=%s
            """,
            (
                details.location,
                details.company_name,
                int(details.num_gauges),
                details.visit_summary,
                details.conclusion,
                int(site_visit_id),
            ),
        )
        return self._cur.rowcount > 0

    def set_status(
        self,
        site_visit_id: int,
        *,
        status: SiteVisitStatus,
        expected: SiteVisitStatus,
        submitted_at: Optional[datetime] = None,
        reviewed_by: Optional[int] = None,
        reviewed_at: Optional[datetime] = None,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        self._cur.execute(
            """
            UPDATE site_visit_details
            SET status=%s,
                submitted_at=COALESCE(%s, submitted_at),
                reviewed_by=COALESCE(%s, reviewed_by),
                reviewed_at=COALESCE(%s, reviewed_at),
                rejection_reason=%s
            WHERE site_visit_id=%s AND status=%s
            """,
            (
                status.value,
                submitted_at,
                reviewed_by,
                reviewed_at,
                rejection_reason,
                int(site_visit_id),
                expected.value,
            ),
        )
        return self._cur.rowcount > 0

    def add_expense(self, site_visit_id: int, item: ExpenseItem) -> int:
        self._cur.execute(
            """
            INSERT INTO site_visit_expenses(site_visit_id, expense_type, amount, description, notes)
            VALUES(%s,%s,%s,%s,%s)
            """,
            (int(site_visit_id), item.expense_type, item.amount, item.description, item.notes),
        )
        return int(self._cur.lastrowid)

    def get_expense(self, expense_id: int) -> Optional[SiteVisitExpense]:
        self._cur.execute(
            """
            SELECT expense_id, site_visit_id, expense_type, amount, description, notes
            FROM site_visit_expenses
            WHERE expense_id=%s
            """,
            (int(expense_id),),
        )
        r = fetchone(self._cur)
        return _row_to_expense(r) if r else None

    def update_expense(self, expense_id: int, item: ExpenseItem) -> bool:
        self._cur.execute(
            """
            UPDATE site_visit_expenses
            SET expense_type=%s, amount=%s, description=%s, notes=%s
            WHERE expense_id=%s
            """,
            (item.expense_type, item.amount, item.description, item.notes, int(expense_id)),
        )
        return self._cur.rowcount > 0

    def delete_expense(self, expense_id: int) -> bool:
        self._cur.execute("DELETE FROM site_visit_expenses WHERE expense_id=%s", (int(expense_id),))
        return self._cur.rowcount > 0

    def history(
        self,
        *,
        status: Optional[SiteVisitStatus] = None,
        employee_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 100,
    ) -> Sequence[SiteVisit]:
        clauses = ["1=1"]
        params: list[object] = []

        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(int(employee_id))
        if start_date is not None:
            clauses.append("visit_date >= %s")
            params.append(start_date)
        if end_date is not None:
            clauses.append("visit_date <= %s")
            params.append(end_date)

        where = " AND ".join(clauses)
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM site_visit_details
            WHERE {where}
            ORDER BY visit_date DESC, site_visit_id DESC
            LIMIT %s
            """,
            tuple(params + [int(limit)]),
        )
        rows = fetchall(self._cur)
        expenses = self._expenses_for([int(r["site_visit_id"]) for r in rows])
        return [_row_to_site_visit(r, expenses[int(r["site_visit_id"])]) for r in rows]

    def autocomplete(self, kind: str, *, limit: int = 20) -> Sequence[str]:
        source = _AUTOCOMPLETE_SQL[kind]
        self._cur.execute(
            f"""
            SELECT value
            FROM ({source}) AS suggestions
            ORDER BY usage_count DESC, value ASC
            LIMIT %s
            """,
            (int(limit),),
        )
        return [str(r["value"]) for r in fetchall(self._cur)]
