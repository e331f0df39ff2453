from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import LeaveStatus, LeaveType
from ..core.workflow import ApprovalWorkflow

LEAVE_WORKFLOW: ApprovalWorkflow[LeaveStatus] = ApprovalWorkflow(
    name="leave request",
    transitions={
        (LeaveStatus.PENDING, "approve"): LeaveStatus.APPROVED,
        (LeaveStatus.PENDING, "reject"): LeaveStatus.REJECTED,
        (LeaveStatus.PENDING, "cancel"): LeaveStatus.CANCELLED,
    },
)


@dataclass(frozen=True)
class LeaveRequest:
    request_id: int
    employee_id: int
    start_date: date
    end_date: date
    leave_type: LeaveType
    reason: str
    status: LeaveStatus
    created_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    @property
    def days(self) -> int:
        """Inclusive day count reserved against the quota."""
        return (self.end_date - self.start_date).days + 1

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class LeaveQuota:
    employee_id: int
    annual_leave_quota: int
    leaves_taken: int = 0
    leaves_pending: int = 0

    @property
    def remaining(self) -> int:
        return self.annual_leave_quota - self.leaves_taken - self.leaves_pending

    def can_reserve(self, days: int) -> bool:
        return self.leaves_taken + self.leaves_pending + int(days) <= self.annual_leave_quota
