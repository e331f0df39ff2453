from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import SiteVisitStatus
from ..core.workflow import ApprovalWorkflow

SITE_VISIT_WORKFLOW: ApprovalWorkflow[SiteVisitStatus] = ApprovalWorkflow(
    name="site visit claim",
    transitions={
        (SiteVisitStatus.DRAFT, "submit"): SiteVisitStatus.SUBMITTED,
        (SiteVisitStatus.SUBMITTED, "approve"): SiteVisitStatus.APPROVED,
        (SiteVisitStatus.SUBMITTED, "reject"): SiteVisitStatus.REJECTED,
    },
)

AUTOCOMPLETE_KINDS = ("location", "company", "expense_type")


@dataclass(frozen=True)
class SiteVisitExpense:
    expense_id: int
    site_visit_id: int
    expense_type: str
    amount: Decimal
    description: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class SiteVisit:
    """Expense claim for one site-visit day (one per attendance record)."""

    site_visit_id: int
    attendance_id: int
    employee_id: int
    visit_date: date
    location: str
    status: SiteVisitStatus
    company_name: Optional[str] = None
    num_gauges: int = 0
    visit_summary: Optional[str] = None
    conclusion: Optional[str] = None
    submitted_at: Optional[datetime] = None
    reviewed_by: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    expenses: tuple[SiteVisitExpense, ...] = ()

    @property
    def total(self) -> Decimal:
        return sum((e.amount for e in self.expenses), Decimal("0.00"))

    @property
    def is_editable(self) -> bool:
        return self.status == SiteVisitStatus.DRAFT


@dataclass(frozen=True)
class SiteVisitDetails:
    """Editable header fields of a claim."""

    location: str
    company_name: Optional[str] = None
    num_gauges: int = 0
    visit_summary: Optional[str] = None
    conclusion: Optional[str] = None


@dataclass(frozen=True)
class ExpenseItem:
    """A line item as submitted by the employee, before it gets an id."""

    expense_type: str
    amount: Decimal
    description: Optional[str] = None
    notes: Optional[str] = None
