from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Sequence

from ..attendance.hours.base import HoursCalculator
from ..common.datetime_utils import month_bounds, now_local
from ..core.enums import CompOffStatus
from ..core.exceptions import NotAvailable, NotFound
from ..core.policy import WorkPolicy
from ..database.unit_of_work import UnitOfWork, UnitOfWorkFactory
from ..employees.model import Actor
from ..employees.permissions import require_self_or_admin
from ..holidays.calendar import WorkCalendar
from .model import COMP_OFF_WORKFLOW, CompensatoryOff, MonthlyBalance
from .projection import project_monthly_balance

logger = logging.getLogger(__name__)


class BalanceService:
    """Monthly balance projection and the comp-off earn/use ledger."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        *,
        policy: WorkPolicy,
        calculator: HoursCalculator,
        clock: Callable[[], datetime] = now_local,
    ):
        self._uow_factory = uow_factory
        self._policy = policy
        self._calculator = calculator
        self._clock = clock

    def _today(self) -> date:
        return self._clock().date()

    def calendar_for(self, uow: UnitOfWork, start: date, end: date) -> WorkCalendar:
        return WorkCalendar(self._policy, tuple(uow.holidays.list_between(start, end)))

    # ---- projection -----------------------------------------------------

    def derive(self, uow: UnitOfWork, employee_id: int, year: int, month: int) -> MonthlyBalance:
        start, end = month_bounds(year, month)
        return project_monthly_balance(
            employee_id=int(employee_id),
            year=int(year),
            month=int(month),
            records=uow.attendance.list_for_employee(int(employee_id), start, end),
            approved_leaves=uow.leaves.list_approved_overlapping(int(employee_id), start, end),
            credits=uow.comp_offs.list_earned_between(int(employee_id), start, end),
            calendar=self.calendar_for(uow, start, end),
            calculator=self._calculator,
        )

    def refresh(self, uow: UnitOfWork, employee_id: int, year: int, month: int) -> MonthlyBalance:
        """Re-derive and store the month inside the caller's transaction."""

        balance = self.derive(uow, employee_id, year, month)
        uow.balances.upsert(balance)
        return balance

    def recompute_monthly_balance(self, employee_id: int, year: int, month: int) -> MonthlyBalance:
        with self._uow_factory() as uow:
            if not uow.employees.get_by_id(int(employee_id)):
                logger.warning("Balance recompute for unknown employee %s", employee_id)
                raise NotFound(f"Employee {employee_id} not found")
            balance = self.refresh(uow, employee_id, year, month)

        logger.info(
            "Recomputed balance employee=%s %04d-%02d total=%s expected=%s",
            employee_id,
            int(year),
            int(month),
            balance.total_hours_worked,
            balance.expected_hours,
        )
        return balance

    def recompute_all(self, year: int, month: int) -> list[MonthlyBalance]:
        """Month-end job: rebuild the cache row of every active employee."""

        with self._uow_factory() as uow:
            balances = [self.refresh(uow, e.employee_id, year, month) for e in uow.employees.list_active()]

        logger.info("Recomputed %s monthly balances for %04d-%02d", len(balances), int(year), int(month))
        return balances

    def get_monthly_balance(self, actor: Actor, employee_id: int, year: int, month: int) -> MonthlyBalance:
        require_self_or_admin(actor, employee_id, "view balances")

        with self._uow_factory() as uow:
            cached = uow.balances.get(int(employee_id), int(year), int(month))
            if cached:
                return cached
            if not uow.employees.get_by_id(int(employee_id)):
                raise NotFound(f"Employee {employee_id} not found")
            return self.refresh(uow, employee_id, year, month)

    # ---- comp-off ledger -------------------------------------------------

    def earn_credit(self, uow: UnitOfWork, employee_id: int, work_date: date, reason: str) -> CompensatoryOff:
        """Mint the credit for working ``work_date``; an existing credit for that day is returned as is."""

        existing = uow.comp_offs.get_for_earned_date(int(employee_id), work_date)
        if existing:
            return existing

        earned = self._today()
        expiry_days = self._policy.comp_off_expiry_days
        expires_at = earned + timedelta(days=expiry_days) if expiry_days is not None else None
        comp_off_id = uow.comp_offs.create(
            employee_id=int(employee_id),
            earned_date=earned,
            earned_for_date=work_date,
            earned_reason=reason,
            expires_at=expires_at,
        )
        logger.info("Comp-off %s earned by employee %s for %s", comp_off_id, employee_id, work_date)
        return CompensatoryOff(
            comp_off_id=comp_off_id,
            employee_id=int(employee_id),
            earned_date=earned,
            earned_for_date=work_date,
            status=CompOffStatus.AVAILABLE,
            earned_reason=reason,
            expires_at=expires_at,
        )

    def cancel_credit_for_day(self, uow: UnitOfWork, employee_id: int, work_date: date) -> Optional[CompensatoryOff]:
        """Withdraw the still-available credit of a day that no longer counts as worked."""

        credit = uow.comp_offs.get_for_earned_date(int(employee_id), work_date)
        if not credit or not COMP_OFF_WORKFLOW.can(credit.status, "cancel"):
            return None

        status = COMP_OFF_WORKFLOW.next_state(credit.status, "cancel")
        if not uow.comp_offs.set_status(credit.comp_off_id, status=status, expected=credit.status):
            return None
        logger.info("Comp-off %s cancelled (employee %s, %s)", credit.comp_off_id, employee_id, work_date)
        return replace(credit, status=status)

    def use_comp_off(self, actor: Actor, employee_id: int, credit_id: int, used_on: date) -> CompensatoryOff:
        require_self_or_admin(actor, employee_id, "use comp-offs")
        today = self._today()

        with self._uow_factory() as uow:
            credit = uow.comp_offs.get_by_id(int(credit_id), for_update=True)
            if not credit or credit.employee_id != int(employee_id):
                logger.warning("Comp-off %s not found for employee %s", credit_id, employee_id)
                raise NotFound(f"Comp-off {credit_id} not found")
            if not credit.is_available(today):
                raise NotAvailable(f"Comp-off {credit_id} is not available (status '{credit.status.value}')")

            status = COMP_OFF_WORKFLOW.next_state(credit.status, "use")
            if not uow.comp_offs.set_status(credit.comp_off_id, status=status, expected=credit.status, used_on=used_on):
                raise NotAvailable(f"Comp-off {credit_id} is not available")

            self.refresh(uow, employee_id, credit.earned_date.year, credit.earned_date.month)

        logger.info("Comp-off %s used by employee %s on %s", credit_id, employee_id, used_on)
        return replace(credit, status=status, used_on=used_on)

    def list_available_comp_offs(self, actor: Actor, employee_id: int) -> Sequence[CompensatoryOff]:
        require_self_or_admin(actor, employee_id, "view comp-offs")
        with self._uow_factory() as uow:
            return uow.comp_offs.list_available(int(employee_id), today=self._today())

    def list_comp_offs(self, actor: Actor, employee_id: int) -> Sequence[CompensatoryOff]:
        require_self_or_admin(actor, employee_id, "view comp-offs")
        with self._uow_factory() as uow:
            return uow.comp_offs.list_for_employee(int(employee_id))
