from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional, Sequence, Union

from ..balances.service import BalanceService
from ..common.datetime_utils import months_between, now_local
from ..common.validators import optional_text, require_non_empty
from ..core.constants import DEFAULT_PENDING_LIMIT
from ..core.enums import LeaveStatus, LeaveType, NotificationType
from ..core.exceptions import InvalidRange, InvalidTransition, NotFound, QuotaExceeded, ValidationError
from ..core.policy import WorkPolicy
from ..database.unit_of_work import UnitOfWork, UnitOfWorkFactory
from ..employees.model import Actor
from ..employees.permissions import require_admin, require_self_or_admin
from ..notifications.dispatcher import NotificationDispatcher
from ..notifications.model import NotificationEvent
from .model import LEAVE_WORKFLOW, LeaveQuota, LeaveRequest

logger = logging.getLogger(__name__)

_DECISION_EVENTS = {
    LeaveStatus.APPROVED: NotificationType.LEAVE_APPROVED,
    LeaveStatus.REJECTED: NotificationType.LEAVE_REJECTED,
}


def _coerce_leave_type(value: Union[LeaveType, str]) -> LeaveType:
    try:
        return LeaveType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in LeaveType)
        raise ValidationError(f"Unknown leave type {value!r} (expected one of: {allowed})") from None


class LeaveService:
    """Leave requests with quota reservation: pending -> approved | rejected | cancelled.

    Creating a request reserves its days in ``leaves_pending``; approval moves
    them to ``leaves_taken``, rejection and cancellation release them. The quota
    row is locked for the whole transaction.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        balances: BalanceService,
        notifier: NotificationDispatcher,
        *,
        policy: WorkPolicy,
        clock: Callable[[], datetime] = now_local,
    ):
        self._uow_factory = uow_factory
        self._balances = balances
        self._notifier = notifier
        self._policy = policy
        self._clock = clock

    def _quota_for_update(self, uow: UnitOfWork, employee_id: int) -> LeaveQuota:
        quota = uow.leave_quotas.get_for_update(int(employee_id))
        if quota is None:
            quota = uow.leave_quotas.create(int(employee_id), annual_leave_quota=self._policy.annual_leave_quota)
        return quota

    def request_leave(
        self,
        actor: Actor,
        *,
        start_date: date,
        end_date: date,
        leave_type: Union[LeaveType, str],
        reason: str,
        employee_id: Optional[int] = None,
    ) -> LeaveRequest:
        employee_id = actor.employee_id if employee_id is None else int(employee_id)
        require_self_or_admin(actor, employee_id, "request leave")

        if end_date < start_date:
            raise InvalidRange("End date must be on or after start date")
        leave_type = _coerce_leave_type(leave_type)
        reason = require_non_empty(reason, "Reason")
        days = (end_date - start_date).days + 1

        with self._uow_factory() as uow:
            if not uow.employees.get_by_id(employee_id):
                logger.warning("Leave request for unknown employee %s", employee_id)
                raise NotFound(f"Employee {employee_id} not found")

            quota = self._quota_for_update(uow, employee_id)
            if not quota.can_reserve(days):
                raise QuotaExceeded(f"Requested {days} day(s) but only {max(quota.remaining, 0)} remaining")

            uow.leave_quotas.save(replace(quota, leaves_pending=quota.leaves_pending + days))
            request_id = uow.leaves.create(
                employee_id=employee_id,
                start_date=start_date,
                end_date=end_date,
                leave_type=leave_type,
                reason=reason,
                created_at=self._clock(),
            )
            request = uow.leaves.get(request_id)
            admins = uow.employees.list_admins()

        logger.info("Leave %s requested by employee %s (%s day(s))", request_id, employee_id, days)
        self._notifier.publish(
            NotificationEvent(
                employee_id=admin.employee_id,
                event_type=NotificationType.LEAVE_REQUESTED,
                payload={
                    "request_id": request_id,
                    "employee_id": employee_id,
                    "start_date": start_date,
                    "end_date": end_date,
                    "days": days,
                    "leave_type": leave_type,
                    "reason": reason,
                },
            )
            for admin in admins
        )
        return request

    def _resolve(
        self,
        actor: Actor,
        request_id: int,
        action: str,
        *,
        rejection_reason: Optional[str] = None,
    ) -> tuple[LeaveRequest, Sequence[int]]:
        with self._uow_factory() as uow:
            request = uow.leaves.get(int(request_id), for_update=True)
            if not request:
                logger.warning("Leave request %s not found", request_id)
                raise NotFound(f"Leave request {request_id} not found")
            if action == "cancel":
                require_self_or_admin(actor, request.employee_id, "cancel leave requests")

            status = LEAVE_WORKFLOW.next_state(request.status, action)

            quota = self._quota_for_update(uow, request.employee_id)
            taken = quota.leaves_taken + (request.days if status == LeaveStatus.APPROVED else 0)
            uow.leave_quotas.save(
                replace(quota, leaves_pending=quota.leaves_pending - request.days, leaves_taken=taken)
            )

            decided = uow.leaves.decide(
                request_id=request.request_id,
                status=status,
                decided_by=actor.employee_id if status != LeaveStatus.CANCELLED else None,
                decided_at=self._clock(),
                rejection_reason=rejection_reason,
            )
            if not decided:
                raise InvalidTransition(f"Leave request {request_id} is no longer pending")

            if status == LeaveStatus.APPROVED:
                for year, month in months_between(request.start_date, request.end_date):
                    self._balances.refresh(uow, request.employee_id, year, month)

            resolved = uow.leaves.get(request.request_id)
            admins = [a.employee_id for a in uow.employees.list_admins()]

        logger.info("Leave %s %s by %s", request_id, status.value, actor.employee_id)
        return resolved, admins

    def approve(self, actor: Actor, request_id: int) -> LeaveRequest:
        require_admin(actor, "approve leave requests")
        request, _ = self._resolve(actor, request_id, "approve")
        self._notify_decision(request)
        return request

    def reject(self, actor: Actor, request_id: int, reason: Optional[str] = None) -> LeaveRequest:
        require_admin(actor, "reject leave requests")
        request, _ = self._resolve(actor, request_id, "reject", rejection_reason=optional_text(reason))
        self._notify_decision(request)
        return request

    def cancel(self, actor: Actor, request_id: int) -> LeaveRequest:
        request, admins = self._resolve(actor, request_id, "cancel")
        self._notifier.publish(
            NotificationEvent(
                employee_id=admin_id,
                event_type=NotificationType.LEAVE_CANCELLED,
                payload={
                    "request_id": request.request_id,
                    "employee_id": request.employee_id,
                    "start_date": request.start_date,
                    "end_date": request.end_date,
                },
            )
            for admin_id in admins
        )
        return request

    def _notify_decision(self, request: LeaveRequest) -> None:
        payload = {
            "request_id": request.request_id,
            "employee_id": request.employee_id,
            "status": request.status,
            "start_date": request.start_date,
            "end_date": request.end_date,
        }
        if request.status == LeaveStatus.REJECTED:
            payload["reason"] = request.rejection_reason
        self._notifier.publish(
            [
                NotificationEvent(
                    employee_id=request.employee_id,
                    event_type=_DECISION_EVENTS[request.status],
                    payload=payload,
                )
            ]
        )

    def get(self, actor: Actor, request_id: int) -> LeaveRequest:
        with self._uow_factory() as uow:
            request = uow.leaves.get(int(request_id))
        if not request:
            raise NotFound(f"Leave request {request_id} not found")
        require_self_or_admin(actor, request.employee_id, "view leave requests")
        return request

    def list_for_employee(
        self, actor: Actor, employee_id: int, *, status: Optional[LeaveStatus] = None
    ) -> Sequence[LeaveRequest]:
        require_self_or_admin(actor, employee_id, "view leave requests")
        with self._uow_factory() as uow:
            return uow.leaves.list_requests(employee_id=int(employee_id), status=status)

    def list_pending(self, actor: Actor) -> Sequence[LeaveRequest]:
        require_admin(actor, "review pending leave requests")
        with self._uow_factory() as uow:
            return uow.leaves.list_requests(status=LeaveStatus.PENDING, limit=DEFAULT_PENDING_LIMIT)

    def get_quota(self, actor: Actor, employee_id: int) -> LeaveQuota:
        require_self_or_admin(actor, employee_id, "view leave quotas")
        with self._uow_factory() as uow:
            if not uow.employees.get_by_id(int(employee_id)):
                raise NotFound(f"Employee {employee_id} not found")
            return self._quota_for_update(uow, employee_id)
