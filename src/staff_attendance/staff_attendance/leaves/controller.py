from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import json_body, login_required, ok
from ..common.serialization import to_jsonable
from ..container import Container
from ..core.enums import LeaveStatus
from ..core.exceptions import ValidationError
from ..employees.model import Actor


def register(app: Flask, container: Container) -> None:
    service = container.leave_service

    @app.route("/api/leaves", methods=["POST"], endpoint="request_leave")
    @login_required
    def request_leave(actor: Actor):
        data = json_body()
        leave = service.request_leave(
            actor,
            start_date=parse_iso_date(data.get("start_date") or ""),
            end_date=parse_iso_date(data.get("end_date") or ""),
            leave_type=data.get("leave_type") or "casual",
            reason=data.get("reason") or "",
            employee_id=data.get("employee_id"),
        )
        return ok(leave, 201)

    @app.route("/api/leaves", methods=["GET"], endpoint="list_leaves")
    @login_required
    def list_leaves(actor: Actor):
        raw_status = request.args.get("status")
        try:
            status = LeaveStatus(raw_status) if raw_status else None
        except ValueError:
            raise ValidationError(f"Unknown leave status: {raw_status!r}") from None
        employee_id = request.args.get("employee_id", type=int) or actor.employee_id
        return ok(service.list_for_employee(actor, employee_id, status=status))

    @app.route("/api/leaves/pending", methods=["GET"], endpoint="pending_leaves")
    @login_required
    def pending_leaves(actor: Actor):
        return ok(service.list_pending(actor))

    @app.route("/api/leaves/quota", methods=["GET"], endpoint="leave_quota")
    @login_required
    def leave_quota(actor: Actor):
        employee_id = request.args.get("employee_id", type=int) or actor.employee_id
        quota = service.get_quota(actor, employee_id)
        return ok({**to_jsonable(quota), "remaining": quota.remaining})

    @app.route("/api/leaves/<int:request_id>/approve", methods=["POST"], endpoint="approve_leave")
    @login_required
    def approve_leave(actor: Actor, request_id: int):
        return ok(service.approve(actor, request_id))

    @app.route("/api/leaves/<int:request_id>/reject", methods=["POST"], endpoint="reject_leave")
    @login_required
    def reject_leave(actor: Actor, request_id: int):
        return ok(service.reject(actor, request_id, json_body().get("reason")))

    @app.route("/api/leaves/<int:request_id>/cancel", methods=["POST"], endpoint="cancel_leave")
    @login_required
    def cancel_leave(actor: Actor, request_id: int):
        return ok(service.cancel(actor, request_id))
