from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Sequence

from ..attendance.hours.base import HoursCalculator
from ..attendance.model import AttendanceRecord
from ..common.datetime_utils import iter_days, month_bounds
from ..core.enums import AttendanceStatus, CompOffStatus
from ..holidays.calendar import WorkCalendar
from ..leaves.model import LeaveRequest
from .model import CompensatoryOff, MonthlyBalance

_TWO_PLACES = Decimal("0.01")


def _hours(minutes: int) -> Decimal:
    return (Decimal(int(minutes)) / Decimal(60)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def _leave_dates(leaves: Iterable[LeaveRequest], start: date, end: date) -> set[date]:
    dates: set[date] = set()
    for leave in leaves:
        lo = max(leave.start_date, start)
        hi = min(leave.end_date, end)
        if lo <= hi:
            dates.update(iter_days(lo, hi))
    return dates


def project_monthly_balance(
    *,
    employee_id: int,
    year: int,
    month: int,
    records: Sequence[AttendanceRecord],
    approved_leaves: Sequence[LeaveRequest],
    credits: Sequence[CompensatoryOff],
    calendar: WorkCalendar,
    calculator: HoursCalculator,
) -> MonthlyBalance:
    """Derive one employee's month from the ledgers.

    Pure: no I/O, no clock. The same inputs always yield an equal result.
    Comp-off counters follow the stored credit status; lazy expiry only
    affects whether a credit can still be spent.
    """

    start, end = month_bounds(year, month)
    in_month = [r for r in records if start <= r.work_date <= end]
    working = set(calendar.working_days(start, end))

    total_minutes = sum(calculator.worked_minutes(r) for r in in_month)
    total_hours = _hours(total_minutes)

    leave_days = _leave_dates(approved_leaves, start, end) & working
    standard = Decimal(str(calendar.policy.standard_day_hours))
    expected_days = max(len(working) - len(leave_days), 0)
    expected_hours = (standard * expected_days).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)

    on_leave_records = {r.work_date for r in in_month if r.status == AttendanceStatus.ON_LEAVE}

    earned_in_month = [c for c in credits if start <= c.earned_date <= end]
    used = sum(1 for c in earned_in_month if c.status == CompOffStatus.USED)
    earned = sum(1 for c in earned_in_month if c.status in (CompOffStatus.AVAILABLE, CompOffStatus.USED))

    return MonthlyBalance(
        employee_id=int(employee_id),
        year=int(year),
        month=int(month),
        total_hours_worked=total_hours,
        expected_hours=expected_hours,
        balance_hours=total_hours - expected_hours,
        working_days=len(working),
        days_present=sum(1 for r in in_month if r.status == AttendanceStatus.PRESENT),
        days_wfh=sum(1 for r in in_month if r.status == AttendanceStatus.WFH),
        days_half_day=sum(1 for r in in_month if r.status == AttendanceStatus.HALF_DAY),
        days_on_leave=len(leave_days | on_leave_records),
        days_late=sum(1 for r in in_month if calculator.is_late(r)),
        comp_off_earned=earned,
        comp_off_used=used,
        comp_off_balance=earned - used,
    )
