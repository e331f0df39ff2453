from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import CompOffStatus
from .model import CompensatoryOff, MonthlyBalance


class CompOffRepository(Protocol):
    def create(
        self,
        *,
        employee_id: int,
        earned_date: date,
        earned_for_date: date,
        earned_reason: Optional[str],
        expires_at: Optional[date],
    ) -> int:
        raise NotImplementedError

    def get_by_id(self, comp_off_id: int, *, for_update: bool = False) -> Optional[CompensatoryOff]:
        raise NotImplementedError

    def get_for_earned_date(self, employee_id: int, earned_for_date: date) -> Optional[CompensatoryOff]:
        """The credit minted for working ``earned_for_date`` (unique per employee)."""

        raise NotImplementedError

    def set_status(
        self,
        comp_off_id: int,
        *,
        status: CompOffStatus,
        expected: CompOffStatus,
        used_on: Optional[date] = None,
    ) -> bool:
        """Compare-and-set transition; returns False when ``expected`` no longer holds."""

        raise NotImplementedError

    def list_for_employee(self, employee_id: int) -> Sequence[CompensatoryOff]:
        raise NotImplementedError

    def list_available(self, employee_id: int, *, today: date) -> Sequence[CompensatoryOff]:
        """status = available AND (expires_at IS NULL OR expires_at > today)."""

        raise NotImplementedError

    def list_earned_between(self, employee_id: int, start_date: date, end_date: date) -> Sequence[CompensatoryOff]:
        raise NotImplementedError


class MonthlyBalanceRepository(Protocol):
    def upsert(self, balance: MonthlyBalance) -> None:
        raise NotImplementedError

    def get(self, employee_id: int, year: int, month: int) -> Optional[MonthlyBalance]:
        raise NotImplementedError

    def list_for_month(self, year: int, month: int) -> Sequence[MonthlyBalance]:
        raise NotImplementedError
