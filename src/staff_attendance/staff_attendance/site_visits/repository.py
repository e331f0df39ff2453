from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import SiteVisitStatus
from .model import ExpenseItem, SiteVisit, SiteVisitDetails, SiteVisitExpense


class SiteVisitRepository(Protocol):
    def create(
        self,
        *,
        attendance_id: int,
        employee_id: int,
        visit_date: date,
        details: SiteVisitDetails,
    ) -> int:
        """Insert a draft claim; attendance_id is unique in storage."""

        raise NotImplementedError

    def get(self, site_visit_id: int, *, for_update: bool = False) -> Optional[SiteVisit]:
        """Load the claim with its current line items."""

        raise NotImplementedError

    def get_by_attendance_id(self, attendance_id: int) -> Optional[SiteVisit]:
        raise NotImplementedError

    def get_for_employee_and_date(self, employee_id: int, visit_date: date) -> Optional[SiteVisit]:
        raise NotImplementedError

    def update_details(self, site_visit_id: int, details: SiteVisitDetails) -> bool:
        raise NotImplementedError

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
        raise NotImplementedError

    def add_expense(self, site_visit_id: int, item: ExpenseItem) -> int:
        raise NotImplementedError

    def get_expense(self, expense_id: int) -> Optional[SiteVisitExpense]:
        raise NotImplementedError

    def update_expense(self, expense_id: int, item: ExpenseItem) -> bool:
        raise NotImplementedError

    def delete_expense(self, expense_id: int) -> bool:
        raise NotImplementedError

    def history(
        self,
        *,
        status: Optional[SiteVisitStatus] = None,
        employee_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 100,
    ) -> Sequence[SiteVisit]:
        raise NotImplementedError

    def autocomplete(self, kind: str, *, limit: int = 20) -> Sequence[str]:
        """Distinct values of ``kind`` ranked by how often they were used."""

        raise NotImplementedError
