from __future__ import annotations

from typing import Callable, Optional, Protocol

from ..attendance.mysql_attendance_repository import MySQLAttendanceRepository
from ..attendance.repository import AttendanceRepository
from ..balances.mysql_balance_repository import MySQLCompOffRepository, MySQLMonthlyBalanceRepository
from ..balances.repository import CompOffRepository, MonthlyBalanceRepository
from ..employees.mysql_employee_repository import MySQLEmployeeRepository
from ..employees.repository import EmployeeRepository
from ..holidays.mysql_holiday_repository import MySQLHolidayRepository
from ..holidays.repository import HolidayRepository
from ..leaves.mysql_leave_repository import MySQLLeaveQuotaRepository, MySQLLeaveRepository
from ..leaves.repository import LeaveQuotaRepository, LeaveRepository
from ..site_visits.mysql_site_visit_repository import MySQLSiteVisitRepository
from ..site_visits.repository import SiteVisitRepository
from .connection import DatabaseConnection
from .mysql_base import db_cursor


class UnitOfWork(Protocol):
    """One transaction with every repository bound to it.

    Used as a context manager: commit on clean exit, rollback on exception.
    """

    employees: EmployeeRepository
    holidays: HolidayRepository
    attendance: AttendanceRepository
    comp_offs: CompOffRepository
    balances: MonthlyBalanceRepository
    leaves: LeaveRepository
    leave_quotas: LeaveQuotaRepository
    site_visits: SiteVisitRepository

    def __enter__(self) -> "UnitOfWork":
        raise NotImplementedError

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        raise NotImplementedError


UnitOfWorkFactory = Callable[[], UnitOfWork]


class MySQLUnitOfWork:
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory
        self._ctx = None

    def __enter__(self) -> "MySQLUnitOfWork":
        self._ctx = db_cursor(self._conn_factory)
        _, cur = self._ctx.__enter__()

        self.employees = MySQLEmployeeRepository(cur)
        self.holidays = MySQLHolidayRepository(cur)
        self.attendance = MySQLAttendanceRepository(cur)
        self.comp_offs = MySQLCompOffRepository(cur)
        self.balances = MySQLMonthlyBalanceRepository(cur)
        self.leaves = MySQLLeaveRepository(cur)
        self.leave_quotas = MySQLLeaveQuotaRepository(cur)
        self.site_visits = MySQLSiteVisitRepository(cur)
        return self

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        ctx, self._ctx = self._ctx, None
        return ctx.__exit__(exc_type, exc, tb)


def mysql_unit_of_work_factory(conn_factory: DatabaseConnection) -> UnitOfWorkFactory:
    return lambda: MySQLUnitOfWork(conn_factory)
