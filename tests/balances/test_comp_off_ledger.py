from __future__ import annotations

from datetime import date

import pytest

from src.staff_attendance.staff_attendance.core.enums import CompOffStatus
from src.staff_attendance.staff_attendance.core.exceptions import AuthorizationError, NotAvailable, NotFound

SUNDAY = date(2026, 2, 1)


@pytest.fixture
def credit(container, admin, employee):
    container.attendance_service.mark_attendance(
        admin, employee_id=employee.employee_id, work_date=SUNDAY, status="present"
    )
    (available,) = container.balance_service.list_available_comp_offs(employee, employee.employee_id)
    return available


def test_credit_expires_after_configured_days(credit):
    assert credit.earned_for_date == SUNDAY
    assert credit.earned_date == date(2026, 2, 2)
    assert credit.expires_at == date(2026, 5, 3)


def test_use_credit_once(container, store, employee, credit):
    service = container.balance_service

    used = service.use_comp_off(employee, employee.employee_id, credit.comp_off_id, date(2026, 2, 20))

    assert used.status == CompOffStatus.USED
    assert used.used_on == date(2026, 2, 20)
    assert store.state.comp_offs[credit.comp_off_id].status == CompOffStatus.USED

    balance = store.state.balances[(employee.employee_id, 2026, 2)]
    assert balance.comp_off_earned == 1
    assert balance.comp_off_used == 1
    assert balance.comp_off_balance == 0

    with pytest.raises(NotAvailable):
        service.use_comp_off(employee, employee.employee_id, credit.comp_off_id, date(2026, 2, 21))


def test_expired_credit_cannot_be_used(container, clock, employee, credit):
    clock.set(2026, 5, 3, 9, 0)

    assert container.balance_service.list_available_comp_offs(employee, employee.employee_id) == []
    with pytest.raises(NotAvailable):
        container.balance_service.use_comp_off(employee, employee.employee_id, credit.comp_off_id, date(2026, 5, 4))

    balance = container.balance_service.recompute_monthly_balance(employee.employee_id, 2026, 2)
    assert balance.comp_off_earned == 1
    assert balance.comp_off_used == 0


def test_credit_still_usable_the_day_before_expiry(container, clock, employee, credit):
    clock.set(2026, 5, 2, 9, 0)

    used = container.balance_service.use_comp_off(employee, employee.employee_id, credit.comp_off_id, date(2026, 5, 2))

    assert used.status == CompOffStatus.USED


def test_credit_of_another_employee_is_not_found(container, admin, other_employee, credit):
    with pytest.raises(NotFound):
        container.balance_service.use_comp_off(admin, other_employee.employee_id, credit.comp_off_id, date(2026, 2, 20))


def test_employee_cannot_spend_someone_elses_credit(container, employee, other_employee, credit):
    with pytest.raises(AuthorizationError):
        container.balance_service.use_comp_off(
            other_employee, employee.employee_id, credit.comp_off_id, date(2026, 2, 20)
        )


def test_history_lists_every_status(container, admin, employee, credit):
    container.attendance_service.mark_attendance(
        admin, employee_id=employee.employee_id, work_date=SUNDAY, status="absent"
    )

    (cancelled,) = container.balance_service.list_comp_offs(employee, employee.employee_id)
    assert cancelled.status == CompOffStatus.CANCELLED
    assert container.balance_service.list_available_comp_offs(employee, employee.employee_id) == []
