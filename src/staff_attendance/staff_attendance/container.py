from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Sequence

from .attendance.hours.base import HoursCalculator
from .attendance.hours.standard_calculator import StandardHoursCalculator
from .attendance.service import AttendanceService
from .balances.service import BalanceService
from .bot.commands import BotCommandHandler
from .common.datetime_utils import now_local
from .core.policy import WorkPolicy
from .database.connection import DBConfig, DatabaseConnection
from .database.unit_of_work import UnitOfWorkFactory, mysql_unit_of_work_factory
from .holidays.service import HolidayService
from .leaves.service import LeaveService
from .notifications.dispatcher import NotificationDispatcher
from .notifications.sinks import LoggingNotificationSink, MySQLNotificationSink, NotificationSink
from .site_visits.service import SiteVisitService


@dataclass(frozen=True)
class Container:
    policy: WorkPolicy
    uow_factory: UnitOfWorkFactory
    notifier: NotificationDispatcher

    attendance_service: AttendanceService
    balance_service: BalanceService
    holiday_service: HolidayService
    leave_service: LeaveService
    site_visit_service: SiteVisitService
    bot_commands: BotCommandHandler


def wire(
    *,
    uow_factory: UnitOfWorkFactory,
    policy: WorkPolicy,
    sinks: Sequence[NotificationSink],
    calculator: Optional[HoursCalculator] = None,
    clock: Callable[[], datetime] = now_local,
) -> Container:
    """Assemble services over any unit-of-work factory (MySQL or in-memory)."""

    notifier = NotificationDispatcher(sinks)
    balance_service = BalanceService(
        uow_factory,
        policy=policy,
        calculator=calculator or StandardHoursCalculator(policy),
        clock=clock,
    )
    attendance_service = AttendanceService(uow_factory, balance_service, clock=clock)
    holiday_service = HolidayService(uow_factory, balance_service, clock=clock)
    leave_service = LeaveService(uow_factory, balance_service, notifier, policy=policy, clock=clock)
    site_visit_service = SiteVisitService(uow_factory, notifier, clock=clock)
    bot_commands = BotCommandHandler(attendance_service, balance_service, leave_service, clock=clock)

    return Container(
        policy=policy,
        uow_factory=uow_factory,
        notifier=notifier,
        attendance_service=attendance_service,
        balance_service=balance_service,
        holiday_service=holiday_service,
        leave_service=leave_service,
        site_visit_service=site_visit_service,
        bot_commands=bot_commands,
    )


def build_container(*, db_config: dict, settings: Any = None) -> Container:
    conn = DatabaseConnection(DBConfig.from_dict(db_config))
    return wire(
        uow_factory=mysql_unit_of_work_factory(conn),
        policy=WorkPolicy.from_settings(settings),
        sinks=[LoggingNotificationSink(), MySQLNotificationSink(conn)],
    )
