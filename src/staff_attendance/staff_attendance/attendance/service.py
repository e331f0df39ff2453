from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Callable, Optional, Sequence, Union

from ..balances.service import BalanceService
from ..common.datetime_utils import now_local
from ..common.validators import optional_text
from ..core.enums import AttendanceStatus, CompOffStatus
from ..core.exceptions import AlreadyMarked, AuthorizationError, InvalidRange, NotFound, ValidationError
from ..database.unit_of_work import UnitOfWork, UnitOfWorkFactory
from ..employees.model import Actor
from ..employees.permissions import require_admin, require_self_or_admin
from .model import AttendanceMark, AttendanceRecord

logger = logging.getLogger(__name__)


def _coerce_status(status: Union[AttendanceStatus, str]) -> AttendanceStatus:
    try:
        return AttendanceStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown attendance status: {status!r}") from None


class AttendanceService:
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

    def _ensure_employee(self, uow: UnitOfWork, employee_id: int) -> None:
        if not uow.employees.get_by_id(int(employee_id)):
            logger.warning("Attendance write for unknown employee %s", employee_id)
            raise NotFound(f"Employee {employee_id} not found")

    def _refresh_months(self, uow: UnitOfWork, employee_id: int, *days: date) -> None:
        for year, month in sorted({(d.year, d.month) for d in days}):
            self._balances.refresh(uow, employee_id, year, month)

    def mark_attendance(
        self,
        actor: Actor,
        *,
        employee_id: int,
        work_date: Optional[date] = None,
        status: Union[AttendanceStatus, str],
        entry_time: Optional[time] = None,
        exit_time: Optional[time] = None,
        notes: Optional[str] = None,
    ) -> AttendanceRecord:
        """Upsert the day's record.

        Employees may only mark their own attendance, only for today and only
        once. Admins may write any employee and any date (flagged admin-edited).
        Working a weekly off or holiday earns a comp-off credit in the same
        transaction, and the month's balance is re-derived before commit.
        """

        status = _coerce_status(status)
        now = self._clock()
        work_date = work_date or now.date()

        if not actor.is_admin:
            require_self_or_admin(actor, employee_id, "mark attendance")
            if work_date != now.date():
                raise AuthorizationError("Employees can only mark attendance for today")

        if entry_time and exit_time and exit_time < entry_time:
            raise InvalidRange("Exit time cannot be earlier than entry time")

        with self._uow_factory() as uow:
            self._ensure_employee(uow, employee_id)

            existing = uow.attendance.get_for_employee_and_date(int(employee_id), work_date, for_update=True)
            if existing and not actor.is_admin:
                raise AlreadyMarked(f"Attendance for {work_date.isoformat()} is already marked")

            calendar = self._balances.calendar_for(uow, work_date, work_date)
            touched = [work_date]
            comp_off_earned = False

            if status.is_work and calendar.is_non_working_day(work_date):
                credit = self._balances.earn_credit(
                    uow, employee_id, work_date, calendar.non_working_reason(work_date) or "Worked on a day off"
                )
                comp_off_earned = credit.status != CompOffStatus.CANCELLED
                touched.append(credit.earned_date)
            elif existing:
                cancelled = self._balances.cancel_credit_for_day(uow, employee_id, work_date)
                if cancelled:
                    touched.append(cancelled.earned_date)

            mark = AttendanceMark(
                employee_id=int(employee_id),
                work_date=work_date,
                status=status,
                entry_time=entry_time,
                exit_time=exit_time,
                notes=optional_text(notes),
                comp_off_earned=comp_off_earned,
                admin_edited=actor.is_admin,
                marked_at=now,
            )
            if existing:
                uow.attendance.update_mark(existing.attendance_id, mark)
                attendance_id = existing.attendance_id
            else:
                attendance_id = uow.attendance.insert(mark)

            self._refresh_months(uow, employee_id, *touched)
            record = uow.attendance.get_by_id(attendance_id)

        logger.info(
            "Attendance %s employee=%s date=%s status=%s by=%s",
            "updated" if existing else "marked",
            employee_id,
            work_date,
            status.value,
            actor.employee_id,
        )
        return record

    def check_in(self, actor: Actor) -> AttendanceRecord:
        now = self._clock()
        return self.mark_attendance(
            actor,
            employee_id=actor.employee_id,
            work_date=now.date(),
            status=AttendanceStatus.PRESENT,
            entry_time=now.time().replace(second=0, microsecond=0),
        )

    def check_out(self, actor: Actor) -> AttendanceRecord:
        now = self._clock()
        today = now.date()
        exit_time = now.time().replace(second=0, microsecond=0)

        with self._uow_factory() as uow:
            record = uow.attendance.get_for_employee_and_date(actor.employee_id, today, for_update=True)
            if not record:
                raise NotFound("No attendance marked for today")
            if record.exit_time is not None:
                raise AlreadyMarked("Already checked out today")
            if record.entry_time and exit_time < record.entry_time:
                raise InvalidRange("Exit time cannot be earlier than entry time")

            uow.attendance.set_exit_time(record.attendance_id, exit_time)
            self._refresh_months(uow, actor.employee_id, today)
            record = uow.attendance.get_by_id(record.attendance_id)

        logger.info("Employee %s checked out at %s", actor.employee_id, exit_time)
        return record

    def delete_attendance(self, actor: Actor, attendance_id: int) -> None:
        """Admin override: hard delete, cascading the day's site-visit claim."""

        require_admin(actor, "delete attendance records")

        with self._uow_factory() as uow:
            record = uow.attendance.get_by_id(int(attendance_id), for_update=True)
            if not record:
                logger.warning("Delete requested for unknown attendance %s", attendance_id)
                raise NotFound(f"Attendance record {attendance_id} not found")

            touched = [record.work_date]
            cancelled = self._balances.cancel_credit_for_day(uow, record.employee_id, record.work_date)
            if cancelled:
                touched.append(cancelled.earned_date)

            uow.attendance.delete(record.attendance_id)
            self._refresh_months(uow, record.employee_id, *touched)

        logger.info("Attendance %s deleted by admin %s", attendance_id, actor.employee_id)

    def get_record(self, actor: Actor, attendance_id: int) -> AttendanceRecord:
        with self._uow_factory() as uow:
            record = uow.attendance.get_by_id(int(attendance_id))
        if not record:
            raise NotFound(f"Attendance record {attendance_id} not found")
        require_self_or_admin(actor, record.employee_id, "view attendance")
        return record

    def list_for_employee(
        self, actor: Actor, employee_id: int, start_date: date, end_date: date
    ) -> Sequence[AttendanceRecord]:
        require_self_or_admin(actor, employee_id, "view attendance")
        if end_date < start_date:
            raise InvalidRange("End date must be on or after start date")
        with self._uow_factory() as uow:
            return uow.attendance.list_for_employee(int(employee_id), start_date, end_date)

    def list_for_range(self, actor: Actor, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        require_admin(actor, "view attendance of all employees")
        if end_date < start_date:
            raise InvalidRange("End date must be on or after start date")
        with self._uow_factory() as uow:
            return uow.attendance.list_between(start_date, end_date)
