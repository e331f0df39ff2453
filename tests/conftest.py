from __future__ import annotations

import copy
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Optional

import pytest

from src.staff_attendance.staff_attendance.attendance.model import AttendanceMark, AttendanceRecord
from src.staff_attendance.staff_attendance.balances.model import CompensatoryOff, MonthlyBalance
from src.staff_attendance.staff_attendance.common.datetime_utils import iter_days
from src.staff_attendance.staff_attendance.container import wire
from src.staff_attendance.staff_attendance.core.enums import (
    CompOffStatus,
    LeaveStatus,
    Role,
    SiteVisitStatus,
)
from src.staff_attendance.staff_attendance.core.exceptions import AlreadyMarked
from src.staff_attendance.staff_attendance.core.policy import WorkPolicy
from src.staff_attendance.staff_attendance.employees.model import Actor, Employee
from src.staff_attendance.staff_attendance.holidays.model import Holiday
from src.staff_attendance.staff_attendance.leaves.model import LeaveQuota, LeaveRequest
from src.staff_attendance.staff_attendance.site_visits.model import SiteVisit, SiteVisitExpense

ADMIN_ID = 1
EMPLOYEE_ID = 2
OTHER_EMPLOYEE_ID = 3


class ConstraintViolation(Exception):
    """Stands in for the storage layer's unique/check constraint errors."""


@dataclass
class InMemoryState:
    employees: dict[int, Employee] = field(default_factory=dict)
    holidays: list[Holiday] = field(default_factory=list)
    attendance: dict[int, AttendanceRecord] = field(default_factory=dict)
    comp_offs: dict[int, CompensatoryOff] = field(default_factory=dict)
    balances: dict[tuple[int, int, int], MonthlyBalance] = field(default_factory=dict)
    leaves: dict[int, LeaveRequest] = field(default_factory=dict)
    quotas: dict[int, LeaveQuota] = field(default_factory=dict)
    site_visits: dict[int, SiteVisit] = field(default_factory=dict)
    expenses: dict[int, SiteVisitExpense] = field(default_factory=dict)
    sequences: Counter = field(default_factory=Counter)

    def next_id(self, name: str) -> int:
        self.sequences[name] += 1
        return self.sequences[name]


class InMemoryEmployees:
    def __init__(self, state: InMemoryState):
        self._s = state

    def get_by_id(self, employee_id):
        return self._s.employees.get(int(employee_id))

    def list_active(self):
        return [e for _, e in sorted(self._s.employees.items()) if e.is_active]

    def list_admins(self):
        return [e for e in self.list_active() if e.role == Role.ADMIN]


class InMemoryHolidays:
    def __init__(self, state: InMemoryState):
        self._s = state

    def list_between(self, start_date, end_date):
        return [h for h in self._s.holidays if any(h.falls_on(d) for d in iter_days(start_date, end_date))]

    def list_for_year(self, year=None):
        found = [h for h in self._s.holidays if year is None or h.is_recurring or h.holiday_date.year == int(year)]
        return sorted(found, key=lambda h: h.holiday_date)

    def get_by_id(self, holiday_id):
        return next((h for h in self._s.holidays if h.holiday_id == int(holiday_id)), None)

    def add(self, *, holiday_date, name, description, is_recurring, created_by) -> int:
        if any(h.holiday_date == holiday_date for h in self._s.holidays):
            raise AlreadyMarked(f"A holiday is already declared on {holiday_date.isoformat()}")
        holiday_id = self._s.next_id("holiday")
        self._s.holidays.append(
            Holiday(holiday_id, holiday_date, name, description, is_recurring=is_recurring, created_by=created_by)
        )
        return holiday_id

    def delete(self, holiday_id) -> bool:
        before = len(self._s.holidays)
        self._s.holidays = [h for h in self._s.holidays if h.holiday_id != int(holiday_id)]
        return len(self._s.holidays) < before


class InMemoryAttendance:
    def __init__(self, state: InMemoryState):
        self._s = state

    def get_by_id(self, attendance_id, *, for_update=False):
        return self._s.attendance.get(int(attendance_id))

    def get_for_employee_and_date(self, employee_id, work_date, *, for_update=False):
        for r in self._s.attendance.values():
            if r.employee_id == int(employee_id) and r.work_date == work_date:
                return r
        return None

    def insert(self, mark: AttendanceMark) -> int:
        if self.get_for_employee_and_date(mark.employee_id, mark.work_date):
            raise AlreadyMarked(f"Attendance for {mark.work_date.isoformat()} is already marked")
        attendance_id = self._s.next_id("attendance")
        self._s.attendance[attendance_id] = AttendanceRecord(
            attendance_id=attendance_id,
            employee_id=mark.employee_id,
            work_date=mark.work_date,
            status=mark.status,
            entry_time=mark.entry_time,
            exit_time=mark.exit_time,
            notes=mark.notes,
            comp_off_earned=mark.comp_off_earned,
            admin_edited=mark.admin_edited,
            marked_at=mark.marked_at,
        )
        return attendance_id

    def update_mark(self, attendance_id, mark: AttendanceMark) -> bool:
        record = self._s.attendance.get(int(attendance_id))
        if not record:
            return False
        self._s.attendance[record.attendance_id] = replace(
            record,
            status=mark.status,
            entry_time=mark.entry_time,
            exit_time=mark.exit_time,
            notes=mark.notes,
            comp_off_earned=mark.comp_off_earned,
            admin_edited=mark.admin_edited,
            marked_at=mark.marked_at,
        )
        return True

    def _patch(self, attendance_id, **changes) -> bool:
        record = self._s.attendance.get(int(attendance_id))
        if not record:
            return False
        self._s.attendance[record.attendance_id] = replace(record, **changes)
        return True

    def set_exit_time(self, attendance_id, exit_time) -> bool:
        return self._patch(attendance_id, exit_time=exit_time)

    def set_site_visit(self, attendance_id, *, location) -> bool:
        return self._patch(attendance_id, is_site_visit=True, site_location=location)

    def set_cost_decision(self, attendance_id, *, approved, decided_by, decided_at, cost=None) -> bool:
        changes = dict(cost_approved=approved, cost_approved_by=decided_by, cost_approved_at=decided_at)
        if approved:
            changes["site_visit_cost"] = cost
        return self._patch(attendance_id, **changes)

    def delete(self, attendance_id) -> bool:
        record = self._s.attendance.pop(int(attendance_id), None)
        if not record:
            return False
        for visit in [v for v in self._s.site_visits.values() if v.attendance_id == record.attendance_id]:
            del self._s.site_visits[visit.site_visit_id]
            for expense_id in [e.expense_id for e in self._s.expenses.values() if e.site_visit_id == visit.site_visit_id]:
                del self._s.expenses[expense_id]
        return True

    def list_for_employee(self, employee_id, start_date, end_date):
        rows = [
            r
            for r in self._s.attendance.values()
            if r.employee_id == int(employee_id) and start_date <= r.work_date <= end_date
        ]
        return sorted(rows, key=lambda r: r.work_date)

    def list_between(self, start_date, end_date):
        rows = [r for r in self._s.attendance.values() if start_date <= r.work_date <= end_date]
        return sorted(rows, key=lambda r: (r.work_date, r.employee_id))


class InMemoryCompOffs:
    def __init__(self, state: InMemoryState):
        self._s = state

    def create(self, *, employee_id, earned_date, earned_for_date, earned_reason, expires_at) -> int:
        if self.get_for_earned_date(employee_id, earned_for_date):
            raise AlreadyMarked(f"A comp-off was already credited for {earned_for_date.isoformat()}")
        comp_off_id = self._s.next_id("comp_off")
        self._s.comp_offs[comp_off_id] = CompensatoryOff(
            comp_off_id=comp_off_id,
            employee_id=int(employee_id),
            earned_date=earned_date,
            earned_for_date=earned_for_date,
            status=CompOffStatus.AVAILABLE,
            earned_reason=earned_reason,
            expires_at=expires_at,
        )
        return comp_off_id

    def get_by_id(self, comp_off_id, *, for_update=False):
        return self._s.comp_offs.get(int(comp_off_id))

    def get_for_earned_date(self, employee_id, earned_for_date):
        for c in self._s.comp_offs.values():
            if c.employee_id == int(employee_id) and c.earned_for_date == earned_for_date:
                return c
        return None

    def set_status(self, comp_off_id, *, status, expected, used_on=None) -> bool:
        credit = self._s.comp_offs.get(int(comp_off_id))
        if not credit or credit.status != expected:
            return False
        changes = {"status": status}
        if status == CompOffStatus.USED:
            changes["used_on"] = used_on
        self._s.comp_offs[credit.comp_off_id] = replace(credit, **changes)
        return True

    def list_for_employee(self, employee_id):
        rows = [c for c in self._s.comp_offs.values() if c.employee_id == int(employee_id)]
        return sorted(rows, key=lambda c: (c.earned_date, c.comp_off_id), reverse=True)

    def list_available(self, employee_id, *, today):
        rows = [
            c
            for c in self._s.comp_offs.values()
            if c.employee_id == int(employee_id)
            and c.status == CompOffStatus.AVAILABLE
            and (c.expires_at is None or c.expires_at > today)
        ]
        return sorted(rows, key=lambda c: (c.expires_at is None, c.expires_at or date.max, c.comp_off_id))

    def list_earned_between(self, employee_id, start_date, end_date):
        rows = [
            c
            for c in self._s.comp_offs.values()
            if c.employee_id == int(employee_id) and start_date <= c.earned_date <= end_date
        ]
        return sorted(rows, key=lambda c: c.comp_off_id)


class InMemoryBalances:
    def __init__(self, state: InMemoryState):
        self._s = state

    def upsert(self, balance):
        self._s.balances[(balance.employee_id, balance.year, balance.month)] = balance

    def get(self, employee_id, year, month):
        return self._s.balances.get((int(employee_id), int(year), int(month)))

    def list_for_month(self, year, month):
        return [b for (_, y, m), b in sorted(self._s.balances.items()) if (y, m) == (int(year), int(month))]


class InMemoryLeaves:
    def __init__(self, state: InMemoryState):
        self._s = state

    def create(self, *, employee_id, start_date, end_date, leave_type, reason, created_at) -> int:
        request_id = self._s.next_id("leave")
        self._s.leaves[request_id] = LeaveRequest(
            request_id=request_id,
            employee_id=int(employee_id),
            start_date=start_date,
            end_date=end_date,
            leave_type=leave_type,
            reason=reason,
            status=LeaveStatus.PENDING,
            created_at=created_at,
        )
        return request_id

    def get(self, request_id, *, for_update=False):
        return self._s.leaves.get(int(request_id))

    def decide(self, *, request_id, status, decided_by, decided_at, rejection_reason=None) -> bool:
        request = self._s.leaves.get(int(request_id))
        if not request or request.status != LeaveStatus.PENDING:
            return False
        self._s.leaves[request.request_id] = replace(
            request,
            status=status,
            approved_by=decided_by,
            decided_at=decided_at,
            rejection_reason=rejection_reason,
        )
        return True

    def list_requests(self, *, status=None, employee_id=None, limit=200):
        rows = [
            r
            for r in self._s.leaves.values()
            if (status is None or r.status == status) and (employee_id is None or r.employee_id == int(employee_id))
        ]
        return sorted(rows, key=lambda r: r.request_id, reverse=True)[:limit]

    def list_approved_overlapping(self, employee_id, start_date, end_date):
        return [
            r
            for r in self._s.leaves.values()
            if r.employee_id == int(employee_id)
            and r.status == LeaveStatus.APPROVED
            and r.start_date <= end_date
            and r.end_date >= start_date
        ]


class InMemoryLeaveQuotas:
    def __init__(self, state: InMemoryState):
        self._s = state

    def get_for_update(self, employee_id):
        return self._s.quotas.get(int(employee_id))

    def create(self, employee_id, *, annual_leave_quota):
        return self._s.quotas.setdefault(
            int(employee_id), LeaveQuota(employee_id=int(employee_id), annual_leave_quota=int(annual_leave_quota))
        )

    def save(self, quota):
        if quota.leaves_taken < 0 or quota.leaves_pending < 0:
            raise ConstraintViolation("chk_quota_non_negative")
        if quota.leaves_taken + quota.leaves_pending > quota.annual_leave_quota:
            raise ConstraintViolation("chk_quota_limit")
        self._s.quotas[quota.employee_id] = quota


class InMemorySiteVisits:
    def __init__(self, state: InMemoryState):
        self._s = state

    def _with_expenses(self, visit):
        if visit is None:
            return None
        items = sorted(
            (e for e in self._s.expenses.values() if e.site_visit_id == visit.site_visit_id),
            key=lambda e: e.expense_id,
        )
        return replace(visit, expenses=tuple(items))

    def create(self, *, attendance_id, employee_id, visit_date, details) -> int:
        if self.get_by_attendance_id(attendance_id):
            raise AlreadyMarked("A site visit already exists for this attendance record")
        site_visit_id = self._s.next_id("site_visit")
        self._s.site_visits[site_visit_id] = SiteVisit(
            site_visit_id=site_visit_id,
            attendance_id=int(attendance_id),
            employee_id=int(employee_id),
            visit_date=visit_date,
            location=details.location,
            status=SiteVisitStatus.DRAFT,
            company_name=details.company_name,
            num_gauges=details.num_gauges,
            visit_summary=details.visit_summary,
            conclusion=details.conclusion,
        )
        return site_visit_id

    def get(self, site_visit_id, *, for_update=False):
        return self._with_expenses(self._s.site_visits.get(int(site_visit_id)))

    def get_by_attendance_id(self, attendance_id):
        for v in self._s.site_visits.values():
            if v.attendance_id == int(attendance_id):
                return self._with_expenses(v)
        return None

    def get_for_employee_and_date(self, employee_id, visit_date):
        for v in self._s.site_visits.values():
            if v.employee_id == int(employee_id) and v.visit_date == visit_date:
                return self._with_expenses(v)
        return None

    def update_details(self, site_visit_id, details) -> bool:
        visit = self._s.site_visits.get(int(site_visit_id))
        if not visit:
            return False
        self._s.site_visits[visit.site_visit_id] = replace(
            visit,
            location=details.location,
            company_name=details.company_name,
            num_gauges=details.num_gauges,
            visit_summary=details.visit_summary,
            conclusion=details.conclusion,
        )
        return True

    def set_status(
        self,
        site_visit_id,
        *,
        status,
        expected,
        submitted_at=None,
        reviewed_by=None,
        reviewed_at=None,
        rejection_reason=None,
    ) -> bool:
        visit = self._s.site_visits.get(int(site_visit_id))
        if not visit or visit.status != expected:
            return False
        self._s.site_visits[visit.site_visit_id] = replace(
            visit,
            status=status,
            submitted_at=submitted_at or visit.submitted_at,
            reviewed_by=reviewed_by or visit.reviewed_by,
            reviewed_at=reviewed_at or visit.reviewed_at,
            rejection_reason=rejection_reason,
        )
        return True

    def add_expense(self, site_visit_id, item) -> int:
        expense_id = self._s.next_id("expense")
        self._s.expenses[expense_id] = SiteVisitExpense(
            expense_id=expense_id,
            site_visit_id=int(site_visit_id),
            expense_type=item.expense_type,
            amount=item.amount,
            description=item.description,
            notes=item.notes,
        )
        return expense_id

    def get_expense(self, expense_id):
        return self._s.expenses.get(int(expense_id))

    def update_expense(self, expense_id, item) -> bool:
        expense = self._s.expenses.get(int(expense_id))
        if not expense:
            return False
        self._s.expenses[expense.expense_id] = replace(
            expense,
            expense_type=item.expense_type,
            amount=item.amount,
            description=item.description,
            notes=item.notes,
        )
        return True

    def delete_expense(self, expense_id) -> bool:
        return self._s.expenses.pop(int(expense_id), None) is not None

    def history(self, *, status=None, employee_id=None, start_date=None, end_date=None, limit=100):
        rows = [
            v
            for v in self._s.site_visits.values()
            if (status is None or v.status == status)
            and (employee_id is None or v.employee_id == int(employee_id))
            and (start_date is None or v.visit_date >= start_date)
            and (end_date is None or v.visit_date <= end_date)
        ]
        rows.sort(key=lambda v: (v.visit_date, v.site_visit_id), reverse=True)
        return [self._with_expenses(v) for v in rows[:limit]]

    def autocomplete(self, kind, *, limit=20):
        if kind == "location":
            values = [v.location for v in self._s.site_visits.values()]
        elif kind == "company":
            values = [v.company_name for v in self._s.site_visits.values()]
        else:
            values = [e.expense_type for e in self._s.expenses.values()]
        counts = Counter(v for v in values if v)
        ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
        return [value for value, _ in ranked[:limit]]


class InMemoryUnitOfWork:
    """Transaction over the shared state: a failing block restores the snapshot."""

    def __init__(self, store: "InMemoryStore"):
        self._store = store
        self._snapshot: Optional[InMemoryState] = None

    def __enter__(self):
        state = self._store.state
        self._snapshot = copy.deepcopy(state)
        self.employees = InMemoryEmployees(state)
        self.holidays = InMemoryHolidays(state)
        self.attendance = InMemoryAttendance(state)
        self.comp_offs = InMemoryCompOffs(state)
        self.balances = InMemoryBalances(state)
        self.leaves = InMemoryLeaves(state)
        self.leave_quotas = InMemoryLeaveQuotas(state)
        self.site_visits = InMemorySiteVisits(state)
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self._store.state = self._snapshot
            self._store.rollbacks += 1
        else:
            self._store.commits += 1
        self._snapshot = None
        return False


class InMemoryStore:
    def __init__(self):
        self.state = InMemoryState()
        self.commits = 0
        self.rollbacks = 0

    def unit_of_work(self) -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(self)

    def add_employee(self, employee_id: int, full_name: str, role: Role = Role.EMPLOYEE, **kwargs) -> Employee:
        employee = Employee(employee_id=employee_id, full_name=full_name, role=role, **kwargs)
        self.state.employees[employee_id] = employee
        return employee

    def add_holiday(self, day: date, name: str, *, is_recurring: bool = False) -> Holiday:
        holiday = Holiday(
            holiday_id=self.state.next_id("holiday"),
            holiday_date=day,
            name=name,
            is_recurring=is_recurring,
        )
        self.state.holidays.append(holiday)
        return holiday


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, *args: int) -> None:
        self.now = datetime(*args)


class RecordingSink:
    def __init__(self):
        self.events = []

    def send(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_type):
        return [e for e in self.events if e.event_type == event_type]


@pytest.fixture
def store() -> InMemoryStore:
    s = InMemoryStore()
    s.add_employee(ADMIN_ID, "Asha Admin", Role.ADMIN)
    s.add_employee(EMPLOYEE_ID, "Ravi Kumar")
    s.add_employee(OTHER_EMPLOYEE_ID, "Meena Iyer")
    s.add_holiday(date(2026, 1, 26), "Republic Day")
    s.add_holiday(date(2026, 2, 17), "Foundation Day")
    return s


@pytest.fixture
def clock() -> FixedClock:
    # Monday
    return FixedClock(datetime(2026, 2, 2, 9, 15))


@pytest.fixture
def policy() -> WorkPolicy:
    return WorkPolicy()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def container(store, clock, policy, sink):
    return wire(uow_factory=store.unit_of_work, policy=policy, sinks=[sink], clock=clock)


@pytest.fixture
def admin() -> Actor:
    return Actor(employee_id=ADMIN_ID, role=Role.ADMIN)


@pytest.fixture
def employee() -> Actor:
    return Actor(employee_id=EMPLOYEE_ID, role=Role.EMPLOYEE)


@pytest.fixture
def other_employee() -> Actor:
    return Actor(employee_id=OTHER_EMPLOYEE_ID, role=Role.EMPLOYEE)
