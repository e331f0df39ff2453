from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..balances.service import BalanceService
from ..common.datetime_utils import now_local
from ..common.validators import optional_text, require_non_empty
from ..core.exceptions import NotFound
from ..database.unit_of_work import UnitOfWork, UnitOfWorkFactory
from ..employees.model import Actor
from ..employees.permissions import require_admin
from .model import Holiday

logger = logging.getLogger(__name__)


class HolidayService:
    """Company holiday calendar.

    Declaring or deleting a holiday changes the month's working days, so every
    active employee's balance for that month is re-derived in the same
    transaction. A recurring holiday also refreshes its month in the current
    year. Credits already earned or missed stay as they were marked.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        balances: BalanceService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._uow_factory = uow_factory
        self._balances = balances
        self._clock = clock

    def _refresh_months(self, uow: UnitOfWork, holiday: Holiday) -> None:
        months = {(holiday.holiday_date.year, holiday.holiday_date.month)}
        if holiday.is_recurring:
            months.add((self._clock().year, holiday.holiday_date.month))
        for employee in uow.employees.list_active():
            for year, month in sorted(months):
                self._balances.refresh(uow, employee.employee_id, year, month)

    def list_holidays(self, year: Optional[int] = None) -> Sequence[Holiday]:
        with self._uow_factory() as uow:
            return list(uow.holidays.list_for_year(year))

    def declare_holiday(
        self,
        actor: Actor,
        *,
        holiday_date: date,
        name: str,
        description: Optional[str] = None,
        is_recurring: bool = False,
    ) -> Holiday:
        require_admin(actor, "declare holidays")
        name = require_non_empty(name, "Holiday name")

        with self._uow_factory() as uow:
            holiday_id = uow.holidays.add(
                holiday_date=holiday_date,
                name=name,
                description=optional_text(description),
                is_recurring=bool(is_recurring),
                created_by=actor.employee_id,
            )
            holiday = uow.holidays.get_by_id(holiday_id)
            self._refresh_months(uow, holiday)

        logger.info("Holiday %s declared on %s by %s", name, holiday_date, actor.employee_id)
        return holiday

    def delete_holiday(self, actor: Actor, holiday_id: int) -> Holiday:
        require_admin(actor, "delete holidays")

        with self._uow_factory() as uow:
            holiday = uow.holidays.get_by_id(int(holiday_id))
            if not holiday:
                raise NotFound(f"Holiday {holiday_id} not found")
            uow.holidays.delete(holiday.holiday_id)
            self._refresh_months(uow, holiday)

        logger.info("Holiday %s (%s) deleted by %s", holiday.name, holiday.holiday_date, actor.employee_id)
        return holiday
