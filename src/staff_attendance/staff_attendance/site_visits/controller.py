from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import json_body, login_required, ok, optional_date_arg
from ..common.serialization import to_jsonable
from ..container import Container
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.enums import SiteVisitStatus
from ..core.exceptions import ValidationError
from ..employees.model import Actor
from .model import ExpenseItem, SiteVisitDetails


def _details_from(data: dict) -> SiteVisitDetails:
    return SiteVisitDetails(
        location=data.get("location") or "",
        company_name=data.get("company_name"),
        num_gauges=data.get("num_gauges") or 0,
        visit_summary=data.get("visit_summary"),
        conclusion=data.get("conclusion"),
    )


def _item_from(data: dict) -> ExpenseItem:
    return ExpenseItem(
        expense_type=data.get("expense_type") or data.get("type") or "",
        amount=data.get("amount"),
        description=data.get("description"),
        notes=data.get("notes"),
    )


def _with_total(visit):
    if visit is None:
        return None
    return {**to_jsonable(visit), "total": str(visit.total)}


def register(app: Flask, container: Container) -> None:
    service = container.site_visit_service

    @app.route("/api/site-visits", methods=["POST"], endpoint="create_site_visit")
    @login_required
    def create_site_visit(actor: Actor):
        data = json_body()
        expenses = data.get("expenses") or []
        if not isinstance(expenses, list):
            raise ValidationError("'expenses' must be a list")
        visit = service.create_site_visit(
            actor,
            attendance_id=int(data.get("attendance_id") or 0),
            details=_details_from(data),
            expenses=[_item_from(e) for e in expenses],
        )
        return ok(_with_total(visit), 201)

    @app.route("/api/site-visits/pending", methods=["GET"], endpoint="pending_site_visits")
    @login_required
    def pending_site_visits(actor: Actor):
        return ok([_with_total(v) for v in service.list_pending(actor)])

    @app.route("/api/site-visits/history", methods=["GET"], endpoint="site_visit_history")
    @login_required
    def site_visit_history(actor: Actor):
        raw_status = request.args.get("status")
        try:
            status = SiteVisitStatus(raw_status) if raw_status else None
        except ValueError:
            raise ValidationError(f"Unknown site visit status: {raw_status!r}") from None
        visits = service.history(
            actor,
            status=status,
            employee_id=request.args.get("employee_id", type=int),
            start_date=optional_date_arg("start"),
            end_date=optional_date_arg("end"),
            limit=request.args.get("limit", default=DEFAULT_HISTORY_LIMIT, type=int),
        )
        return ok([_with_total(v) for v in visits])

    @app.route("/api/site-visits/autocomplete", methods=["GET"], endpoint="site_visit_autocomplete")
    @login_required
    def site_visit_autocomplete(actor: Actor):
        return ok(service.autocomplete(request.args.get("type") or ""))

    @app.route("/api/site-visits/by-date/<visit_date>", methods=["GET"], endpoint="site_visit_for_date")
    @login_required
    def site_visit_for_date(actor: Actor, visit_date: str):
        employee_id = request.args.get("employee_id", type=int) or actor.employee_id
        visit = service.get_for_date(actor, employee_id, parse_iso_date(visit_date))
        return ok({"site_visit": _with_total(visit)})

    @app.route("/api/site-visits/<int:site_visit_id>", methods=["GET"], endpoint="get_site_visit")
    @login_required
    def get_site_visit(actor: Actor, site_visit_id: int):
        return ok(_with_total(service.get(actor, site_visit_id)))

    @app.route("/api/site-visits/<int:site_visit_id>", methods=["PUT"], endpoint="update_site_visit")
    @login_required
    def update_site_visit(actor: Actor, site_visit_id: int):
        return ok(_with_total(service.update_details(actor, site_visit_id, _details_from(json_body()))))

    @app.route("/api/site-visits/<int:site_visit_id>/expenses", methods=["POST"], endpoint="add_site_visit_expense")
    @login_required
    def add_site_visit_expense(actor: Actor, site_visit_id: int):
        return ok(service.add_expense(actor, site_visit_id, _item_from(json_body())), 201)

    @app.route("/api/site-visits/expenses/<int:expense_id>", methods=["PUT"], endpoint="update_site_visit_expense")
    @login_required
    def update_site_visit_expense(actor: Actor, expense_id: int):
        return ok(service.update_expense(actor, expense_id, _item_from(json_body())))

    @app.route("/api/site-visits/expenses/<int:expense_id>", methods=["DELETE"], endpoint="delete_site_visit_expense")
    @login_required
    def delete_site_visit_expense(actor: Actor, expense_id: int):
        service.delete_expense(actor, expense_id)
        return ok()

    @app.route("/api/site-visits/<int:site_visit_id>/submit", methods=["POST"], endpoint="submit_site_visit")
    @login_required
    def submit_site_visit(actor: Actor, site_visit_id: int):
        return ok(_with_total(service.submit_for_approval(actor, site_visit_id)))

    @app.route("/api/site-visits/<int:site_visit_id>/approve", methods=["POST"], endpoint="approve_site_visit")
    @login_required
    def approve_site_visit(actor: Actor, site_visit_id: int):
        return ok(_with_total(service.approve(actor, site_visit_id)))

    @app.route("/api/site-visits/<int:site_visit_id>/reject", methods=["POST"], endpoint="reject_site_visit")
    @login_required
    def reject_site_visit(actor: Actor, site_visit_id: int):
        return ok(_with_total(service.reject(actor, site_visit_id, json_body().get("reason"))))
