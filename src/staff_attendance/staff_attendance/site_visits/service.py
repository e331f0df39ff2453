from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Iterable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import optional_text, require_non_empty, require_non_negative_int, require_positive_amount
from ..core.constants import AUTOCOMPLETE_LIMIT, DEFAULT_HISTORY_LIMIT, DEFAULT_PENDING_LIMIT
from ..core.enums import NotificationType, SiteVisitStatus
from ..core.exceptions import (
    AlreadyMarked,
    EmptyClaim,
    InvalidTransition,
    MissingReason,
    NotEditable,
    NotFound,
    ValidationError,
)
from ..database.unit_of_work import UnitOfWork, UnitOfWorkFactory
from ..employees.model import Actor
from ..employees.permissions import require_admin, require_self_or_admin
from ..notifications.dispatcher import NotificationDispatcher
from ..notifications.model import NotificationEvent
from .model import AUTOCOMPLETE_KINDS, SITE_VISIT_WORKFLOW, ExpenseItem, SiteVisit, SiteVisitDetails, SiteVisitExpense

logger = logging.getLogger(__name__)


def _clean_details(details: SiteVisitDetails) -> SiteVisitDetails:
    return SiteVisitDetails(
        location=require_non_empty(details.location, "Location"),
        company_name=optional_text(details.company_name),
        num_gauges=require_non_negative_int(details.num_gauges, "Number of gauges"),
        visit_summary=optional_text(details.visit_summary),
        conclusion=optional_text(details.conclusion),
    )


def _clean_item(item: ExpenseItem) -> ExpenseItem:
    return ExpenseItem(
        expense_type=require_non_empty(item.expense_type, "Expense type"),
        amount=require_positive_amount(item.amount),
        description=optional_text(item.description),
        notes=optional_text(item.notes),
    )


class SiteVisitService:
    """Site-visit expense claims: draft -> submitted -> approved | rejected.

    Only drafts can be edited, by the owner or an admin. Approval re-sums the
    live line items and writes the total back onto the attendance record.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        notifier: NotificationDispatcher,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._uow_factory = uow_factory
        self._notifier = notifier
        self._clock = clock

    def _load(self, uow: UnitOfWork, site_visit_id: int, *, for_update: bool = False) -> SiteVisit:
        visit = uow.site_visits.get(int(site_visit_id), for_update=for_update)
        if not visit:
            logger.warning("Site visit %s not found", site_visit_id)
            raise NotFound(f"Site visit {site_visit_id} not found")
        return visit

    def _load_draft(self, uow: UnitOfWork, actor: Actor, site_visit_id: int) -> SiteVisit:
        visit = self._load(uow, site_visit_id, for_update=True)
        require_self_or_admin(actor, visit.employee_id, "edit site visits")
        if not visit.is_editable:
            raise NotEditable(f"Site visit {site_visit_id} is {visit.status.value} and can no longer be edited")
        return visit

    def _load_expense_draft(self, uow: UnitOfWork, actor: Actor, expense_id: int) -> SiteVisitExpense:
        expense = uow.site_visits.get_expense(int(expense_id))
        if not expense:
            raise NotFound(f"Expense {expense_id} not found")
        self._load_draft(uow, actor, expense.site_visit_id)
        return expense

    # ---- draft editing ---------------------------------------------------

    def create_site_visit(
        self,
        actor: Actor,
        *,
        attendance_id: int,
        details: SiteVisitDetails,
        expenses: Iterable[ExpenseItem] = (),
    ) -> SiteVisit:
        details = _clean_details(details)
        items = [_clean_item(item) for item in expenses]

        with self._uow_factory() as uow:
            record = uow.attendance.get_by_id(int(attendance_id), for_update=True)
            if not record:
                logger.warning("Site visit for unknown attendance %s", attendance_id)
                raise NotFound(f"Attendance record {attendance_id} not found")
            require_self_or_admin(actor, record.employee_id, "record site visits")

            if uow.site_visits.get_by_attendance_id(record.attendance_id):
                raise AlreadyMarked(f"A site visit already exists for {record.work_date.isoformat()}")

            site_visit_id = uow.site_visits.create(
                attendance_id=record.attendance_id,
                employee_id=record.employee_id,
                visit_date=record.work_date,
                details=details,
            )
            for item in items:
                uow.site_visits.add_expense(site_visit_id, item)
            uow.attendance.set_site_visit(record.attendance_id, location=details.location)
            visit = uow.site_visits.get(site_visit_id)

        logger.info("Site visit %s drafted for attendance %s", site_visit_id, attendance_id)
        return visit

    def update_details(self, actor: Actor, site_visit_id: int, details: SiteVisitDetails) -> SiteVisit:
        details = _clean_details(details)
        with self._uow_factory() as uow:
            visit = self._load_draft(uow, actor, site_visit_id)
            uow.site_visits.update_details(visit.site_visit_id, details)
            uow.attendance.set_site_visit(visit.attendance_id, location=details.location)
            return uow.site_visits.get(visit.site_visit_id)

    def add_expense(self, actor: Actor, site_visit_id: int, item: ExpenseItem) -> SiteVisitExpense:
        item = _clean_item(item)
        with self._uow_factory() as uow:
            visit = self._load_draft(uow, actor, site_visit_id)
            expense_id = uow.site_visits.add_expense(visit.site_visit_id, item)
            return uow.site_visits.get_expense(expense_id)

    def update_expense(self, actor: Actor, expense_id: int, item: ExpenseItem) -> SiteVisitExpense:
        item = _clean_item(item)
        with self._uow_factory() as uow:
            expense = self._load_expense_draft(uow, actor, expense_id)
            uow.site_visits.update_expense(expense.expense_id, item)
            return uow.site_visits.get_expense(expense.expense_id)

    def delete_expense(self, actor: Actor, expense_id: int) -> None:
        with self._uow_factory() as uow:
            expense = self._load_expense_draft(uow, actor, expense_id)
            uow.site_visits.delete_expense(expense.expense_id)

    # ---- workflow --------------------------------------------------------

    def _transition(self, uow: UnitOfWork, visit: SiteVisit, action: str, **stamps) -> SiteVisitStatus:
        status = SITE_VISIT_WORKFLOW.next_state(visit.status, action)
        if not uow.site_visits.set_status(visit.site_visit_id, status=status, expected=visit.status, **stamps):
            raise InvalidTransition(f"Site visit {visit.site_visit_id} changed status concurrently")
        return status

    def submit_for_approval(self, actor: Actor, site_visit_id: int) -> SiteVisit:
        now = self._clock()
        with self._uow_factory() as uow:
            visit = self._load(uow, site_visit_id, for_update=True)
            require_self_or_admin(actor, visit.employee_id, "submit site visits")
            if not SITE_VISIT_WORKFLOW.can(visit.status, "submit"):
                raise InvalidTransition(f"Cannot submit site visit claim in status '{visit.status.value}'")
            if not visit.expenses:
                raise EmptyClaim("Add at least one expense before submitting")

            self._transition(uow, visit, "submit", submitted_at=now)
            submitted = uow.site_visits.get(visit.site_visit_id)
            admins = [a.employee_id for a in uow.employees.list_admins()]

        logger.info("Site visit %s submitted (total %s)", site_visit_id, submitted.total)
        self._notifier.publish(
            NotificationEvent(
                employee_id=admin_id,
                event_type=NotificationType.SITE_VISIT_SUBMITTED,
                payload={
                    "site_visit_id": submitted.site_visit_id,
                    "employee_id": submitted.employee_id,
                    "visit_date": submitted.visit_date,
                    "location": submitted.location,
                    "expense_count": len(submitted.expenses),
                    "total": submitted.total,
                },
            )
            for admin_id in admins
        )
        return submitted

    def approve(self, actor: Actor, site_visit_id: int) -> SiteVisit:
        require_admin(actor, "approve site visit expenses")
        now = self._clock()

        with self._uow_factory() as uow:
            visit = self._load(uow, site_visit_id, for_update=True)
            self._transition(uow, visit, "approve", reviewed_by=actor.employee_id, reviewed_at=now)

            # Re-read the line items inside the lock; the cost written back is the live sum.
            approved = uow.site_visits.get(visit.site_visit_id)
            total = approved.total
            uow.attendance.set_cost_decision(
                approved.attendance_id,
                approved=True,
                decided_by=actor.employee_id,
                decided_at=now,
                cost=total,
            )

        logger.info("Site visit %s approved by %s (total %s)", site_visit_id, actor.employee_id, total)
        self._notifier.publish(
            [
                NotificationEvent(
                    employee_id=approved.employee_id,
                    event_type=NotificationType.SITE_VISIT_APPROVED,
                    payload={
                        "site_visit_id": approved.site_visit_id,
                        "visit_date": approved.visit_date,
                        "total": total,
                    },
                )
            ]
        )
        return approved

    def reject(self, actor: Actor, site_visit_id: int, reason: Optional[str]) -> SiteVisit:
        require_admin(actor, "reject site visit expenses")
        reason = require_non_empty(reason, "Rejection reason", error=MissingReason)
        now = self._clock()

        with self._uow_factory() as uow:
            visit = self._load(uow, site_visit_id, for_update=True)
            self._transition(
                uow, visit, "reject", reviewed_by=actor.employee_id, reviewed_at=now, rejection_reason=reason
            )
            uow.attendance.set_cost_decision(
                visit.attendance_id,
                approved=False,
                decided_by=actor.employee_id,
                decided_at=now,
            )
            rejected = uow.site_visits.get(visit.site_visit_id)

        logger.info("Site visit %s rejected by %s", site_visit_id, actor.employee_id)
        self._notifier.publish(
            [
                NotificationEvent(
                    employee_id=rejected.employee_id,
                    event_type=NotificationType.SITE_VISIT_REJECTED,
                    payload={
                        "site_visit_id": rejected.site_visit_id,
                        "visit_date": rejected.visit_date,
                        "total": rejected.total,
                        "reason": reason,
                    },
                )
            ]
        )
        return rejected

    # ---- reads -----------------------------------------------------------

    def get(self, actor: Actor, site_visit_id: int) -> SiteVisit:
        with self._uow_factory() as uow:
            visit = self._load(uow, site_visit_id)
        require_self_or_admin(actor, visit.employee_id, "view site visits")
        return visit

    def get_for_date(self, actor: Actor, employee_id: int, visit_date: date) -> Optional[SiteVisit]:
        require_self_or_admin(actor, employee_id, "view site visits")
        with self._uow_factory() as uow:
            return uow.site_visits.get_for_employee_and_date(int(employee_id), visit_date)

    def list_pending(self, actor: Actor) -> Sequence[SiteVisit]:
        require_admin(actor, "review pending site visits")
        with self._uow_factory() as uow:
            return uow.site_visits.history(status=SiteVisitStatus.SUBMITTED, limit=DEFAULT_PENDING_LIMIT)

    def history(
        self,
        actor: Actor,
        *,
        status: Optional[SiteVisitStatus] = None,
        employee_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> Sequence[SiteVisit]:
        """Claim history; employees only ever see their own claims."""

        if not actor.is_admin:
            employee_id = actor.employee_id
        with self._uow_factory() as uow:
            return uow.site_visits.history(
                status=status,
                employee_id=employee_id,
                start_date=start_date,
                end_date=end_date,
                limit=limit,
            )

    def autocomplete(self, kind: str) -> Sequence[str]:
        if kind not in AUTOCOMPLETE_KINDS:
            raise ValidationError(f"Invalid type. Must be one of: {', '.join(AUTOCOMPLETE_KINDS)}")
        with self._uow_factory() as uow:
            return uow.site_visits.autocomplete(kind, limit=AUTOCOMPLETE_LIMIT)
