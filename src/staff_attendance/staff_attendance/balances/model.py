from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from ..core.enums import CompOffStatus
from ..core.workflow import ApprovalWorkflow

COMP_OFF_WORKFLOW: ApprovalWorkflow[CompOffStatus] = ApprovalWorkflow(
    name="comp-off credit",
    transitions={
        (CompOffStatus.AVAILABLE, "use"): CompOffStatus.USED,
        (CompOffStatus.AVAILABLE, "expire"): CompOffStatus.EXPIRED,
        (CompOffStatus.AVAILABLE, "cancel"): CompOffStatus.CANCELLED,
    },
)


@dataclass(frozen=True)
class CompensatoryOff:
    """A credited day off earned by working a weekly off or company holiday."""

    comp_off_id: int
    employee_id: int
    earned_date: date
    earned_for_date: date
    status: CompOffStatus
    earned_reason: Optional[str] = None
    used_on: Optional[date] = None
    expires_at: Optional[date] = None

    def is_expired(self, today: date) -> bool:
        """Lazy expiry: a credit is usable only while expires_at > today."""
        return self.expires_at is not None and self.expires_at <= today

    def is_available(self, today: date) -> bool:
        return self.status == CompOffStatus.AVAILABLE and not self.is_expired(today)


@dataclass(frozen=True)
class MonthlyBalance:
    """Materialized monthly aggregate. Always re-derivable, never hand-edited."""

    employee_id: int
    year: int
    month: int
    total_hours_worked: Decimal
    expected_hours: Decimal
    balance_hours: Decimal
    working_days: int
    days_present: int
    days_wfh: int
    days_half_day: int
    days_on_leave: int
    days_late: int
    comp_off_earned: int
    comp_off_used: int
    comp_off_balance: int
