from __future__ import annotations

from datetime import date, time
from decimal import Decimal

import pytest

from src.staff_attendance.staff_attendance.attendance.model import AttendanceMark
from src.staff_attendance.staff_attendance.core.enums import AttendanceStatus, CompOffStatus
from src.staff_attendance.staff_attendance.core.exceptions import (
    AlreadyMarked,
    AuthorizationError,
    InvalidRange,
    NotFound,
    ValidationError,
)
from src.staff_attendance.staff_attendance.site_visits.model import ExpenseItem, SiteVisitDetails


def test_present_day_counts_worked_hours_into_month(container, store, employee):
    record = container.attendance_service.mark_attendance(
        employee,
        employee_id=employee.employee_id,
        status="present",
        entry_time=time(9, 0),
        exit_time=time(17, 30),
    )

    assert record.work_date == date(2026, 2, 2)
    assert record.status == AttendanceStatus.PRESENT
    assert not record.comp_off_earned
    assert not record.admin_edited

    balance = store.state.balances[(employee.employee_id, 2026, 2)]
    assert balance.total_hours_worked == Decimal("8.50")
    # February 2026: 28 days - 4 Sundays - Foundation Day
    assert balance.working_days == 23
    assert balance.expected_hours == Decimal("184.00")
    assert balance.balance_hours == Decimal("-175.50")
    assert balance.days_present == 1
    assert balance.days_late == 0


def test_working_a_company_holiday_earns_comp_off(container, store, clock, employee):
    clock.set(2026, 1, 26, 10, 0)

    record = container.attendance_service.check_in(employee)

    assert record.comp_off_earned is True
    credits = list(store.state.comp_offs.values())
    assert len(credits) == 1
    credit = credits[0]
    assert credit.earned_for_date == date(2026, 1, 26)
    assert credit.earned_date == date(2026, 1, 26)
    assert credit.expires_at == date(2026, 4, 26)
    assert credit.status == CompOffStatus.AVAILABLE
    assert credit.earned_reason == "Worked on Republic Day"

    january = store.state.balances[(employee.employee_id, 2026, 1)]
    assert january.comp_off_earned == 1
    assert january.comp_off_balance == 1
    assert january.days_late == 1


def test_employee_cannot_mark_twice(container, employee):
    service = container.attendance_service
    service.mark_attendance(employee, employee_id=employee.employee_id, status="wfh")

    with pytest.raises(AlreadyMarked):
        service.mark_attendance(employee, employee_id=employee.employee_id, status="present")


def test_employee_can_only_mark_today(container, employee):
    with pytest.raises(AuthorizationError):
        container.attendance_service.mark_attendance(
            employee, employee_id=employee.employee_id, work_date=date(2026, 2, 1), status="present"
        )


def test_employee_cannot_mark_for_someone_else(container, employee, other_employee):
    with pytest.raises(AuthorizationError):
        container.attendance_service.mark_attendance(
            employee, employee_id=other_employee.employee_id, status="present"
        )


def test_exit_before_entry_is_rejected(container, store, employee):
    with pytest.raises(InvalidRange):
        container.attendance_service.mark_attendance(
            employee,
            employee_id=employee.employee_id,
            status="present",
            entry_time=time(18, 0),
            exit_time=time(9, 0),
        )
    assert store.state.attendance == {}


def test_unknown_status_is_a_validation_error(container, employee):
    with pytest.raises(ValidationError):
        container.attendance_service.mark_attendance(employee, employee_id=employee.employee_id, status="sleeping")


def test_admin_marking_unknown_employee_is_not_found(container, admin):
    with pytest.raises(NotFound):
        container.attendance_service.mark_attendance(admin, employee_id=99, status="present")


def test_admin_remark_to_absent_withdraws_comp_off(container, store, admin, employee):
    service = container.attendance_service
    sunday = date(2026, 2, 1)

    first = service.mark_attendance(admin, employee_id=employee.employee_id, work_date=sunday, status="present")
    assert first.comp_off_earned is True
    assert first.admin_edited is True
    assert store.state.balances[(employee.employee_id, 2026, 2)].comp_off_earned == 1

    second = service.mark_attendance(admin, employee_id=employee.employee_id, work_date=sunday, status="absent")

    assert second.attendance_id == first.attendance_id
    assert second.comp_off_earned is False
    (credit,) = store.state.comp_offs.values()
    assert credit.status == CompOffStatus.CANCELLED
    assert store.state.balances[(employee.employee_id, 2026, 2)].comp_off_earned == 0


def test_remarking_the_same_day_off_does_not_mint_a_second_credit(container, store, admin, employee):
    service = container.attendance_service
    sunday = date(2026, 2, 1)

    service.mark_attendance(admin, employee_id=employee.employee_id, work_date=sunday, status="present")
    service.mark_attendance(admin, employee_id=employee.employee_id, work_date=sunday, status="wfh")

    assert len(store.state.comp_offs) == 1


def test_check_in_then_check_out(container, store, clock, employee):
    service = container.attendance_service

    record = service.check_in(employee)
    assert record.entry_time == time(9, 15)
    assert record.exit_time is None

    clock.set(2026, 2, 2, 18, 0)
    record = service.check_out(employee)
    assert record.exit_time == time(18, 0)
    assert store.state.balances[(employee.employee_id, 2026, 2)].total_hours_worked == Decimal("8.75")

    with pytest.raises(AlreadyMarked):
        service.check_out(employee)


def test_check_out_without_check_in(container, employee):
    with pytest.raises(NotFound):
        container.attendance_service.check_out(employee)


def test_delete_cascades_site_visit_and_refreshes_balance(container, store, admin, employee):
    record = container.attendance_service.check_in(employee)
    container.site_visit_service.create_site_visit(
        employee,
        attendance_id=record.attendance_id,
        details=SiteVisitDetails(location="Pune plant"),
        expenses=[ExpenseItem(expense_type="Travel", amount=Decimal("120"))],
    )

    with pytest.raises(AuthorizationError):
        container.attendance_service.delete_attendance(employee, record.attendance_id)

    container.attendance_service.delete_attendance(admin, record.attendance_id)

    assert store.state.attendance == {}
    assert store.state.site_visits == {}
    assert store.state.expenses == {}
    assert store.state.balances[(employee.employee_id, 2026, 2)].total_hours_worked == Decimal("0")

    with pytest.raises(NotFound):
        container.attendance_service.delete_attendance(admin, record.attendance_id)


def test_failed_balance_refresh_rolls_back_the_mark(container, store, employee, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("balance store unavailable")

    monkeypatch.setattr(container.balance_service, "refresh", boom)

    with pytest.raises(RuntimeError):
        container.attendance_service.mark_attendance(employee, employee_id=employee.employee_id, status="present")

    assert store.state.attendance == {}
    assert store.rollbacks == 1


def test_concurrent_first_mark_is_already_marked_and_rolls_back(container, store, admin, employee, monkeypatch):
    sunday = date(2026, 2, 1)
    with store.unit_of_work() as uow:
        uow.attendance.insert(AttendanceMark(employee.employee_id, sunday, AttendanceStatus.ABSENT))
        repo_cls = type(uow.attendance)
    original_lookup = repo_cls.get_for_employee_and_date

    # The locked read misses a row another transaction has just committed.
    def racing_lookup(self, employee_id, work_date, *, for_update=False):
        if for_update:
            return None
        return original_lookup(self, employee_id, work_date)

    monkeypatch.setattr(repo_cls, "get_for_employee_and_date", racing_lookup)

    with pytest.raises(AlreadyMarked):
        container.attendance_service.mark_attendance(
            admin, employee_id=employee.employee_id, work_date=sunday, status="present"
        )

    assert store.state.comp_offs == {}
    assert [r.status for r in store.state.attendance.values()] == [AttendanceStatus.ABSENT]
    assert store.rollbacks == 1


def test_listing_other_employees_requires_admin(container, admin, employee, other_employee):
    service = container.attendance_service
    service.check_in(employee)

    with pytest.raises(AuthorizationError):
        service.list_for_employee(other_employee, employee.employee_id, date(2026, 2, 1), date(2026, 2, 28))
    with pytest.raises(AuthorizationError):
        service.list_for_range(employee, date(2026, 2, 1), date(2026, 2, 28))
    with pytest.raises(InvalidRange):
        service.list_for_employee(employee, employee.employee_id, date(2026, 2, 28), date(2026, 2, 1))

    assert len(service.list_for_employee(employee, employee.employee_id, date(2026, 2, 1), date(2026, 2, 28))) == 1
    assert len(service.list_for_range(admin, date(2026, 2, 1), date(2026, 2, 28))) == 1
