from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import LeaveStatus, LeaveType
from .model import LeaveQuota, LeaveRequest


class LeaveRepository(Protocol):
    def create(
        self,
        *,
        employee_id: int,
        start_date: date,
        end_date: date,
        leave_type: LeaveType,
        reason: str,
        created_at: datetime,
    ) -> int:
        raise NotImplementedError

    def get(self, request_id: int, *, for_update: bool = False) -> Optional[LeaveRequest]:
        raise NotImplementedError

    def decide(
        self,
        *,
        request_id: int,
        status: LeaveStatus,
        decided_by: Optional[int],
        decided_at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        """Move a pending request to ``status``; False if it was not pending."""

        raise NotImplementedError

    def list_requests(
        self,
        *,
        status: Optional[LeaveStatus] = None,
        employee_id: Optional[int] = None,
        limit: int = 200,
    ) -> Sequence[LeaveRequest]:
        raise NotImplementedError

    def list_approved_overlapping(self, employee_id: int, start_date: date, end_date: date) -> Sequence[LeaveRequest]:
        raise NotImplementedError


class LeaveQuotaRepository(Protocol):
    def get_for_update(self, employee_id: int) -> Optional[LeaveQuota]:
        """Read the quota row holding a row lock until the unit of work ends."""

        raise NotImplementedError

    def create(self, employee_id: int, *, annual_leave_quota: int) -> LeaveQuota:
        raise NotImplementedError

    def save(self, quota: LeaveQuota) -> None:
        raise NotImplementedError
