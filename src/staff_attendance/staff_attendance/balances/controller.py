from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import json_body, login_required, ok
from ..container import Container
from ..employees.model import Actor
from ..employees.permissions import require_admin


def register(app: Flask, container: Container) -> None:
    service = container.balance_service

    @app.route("/api/balances/<int:employee_id>/<int:year>/<int:month>", methods=["GET"], endpoint="get_balance")
    @login_required
    def get_balance(actor: Actor, employee_id: int, year: int, month: int):
        return ok(service.get_monthly_balance(actor, employee_id, year, month))

    @app.route(
        "/api/balances/<int:employee_id>/<int:year>/<int:month>/recompute",
        methods=["POST"],
        endpoint="recompute_balance",
    )
    @login_required
    def recompute_balance(actor: Actor, employee_id: int, year: int, month: int):
        require_admin(actor, "recompute balances")
        return ok(service.recompute_monthly_balance(employee_id, year, month))

    @app.route("/api/balances/<int:year>/<int:month>/recompute", methods=["POST"], endpoint="recompute_all_balances")
    @login_required
    def recompute_all_balances(actor: Actor, year: int, month: int):
        require_admin(actor, "recompute balances")
        balances = service.recompute_all(year, month)
        return ok({"count": len(balances), "balances": balances})

    @app.route("/api/comp-offs", methods=["GET"], endpoint="list_comp_offs")
    @login_required
    def list_comp_offs(actor: Actor):
        employee_id = request.args.get("employee_id", type=int) or actor.employee_id
        if request.args.get("available") == "1":
            return ok(service.list_available_comp_offs(actor, employee_id))
        return ok(service.list_comp_offs(actor, employee_id))

    @app.route("/api/comp-offs/<int:credit_id>/use", methods=["POST"], endpoint="use_comp_off")
    @login_required
    def use_comp_off(actor: Actor, credit_id: int):
        data = json_body()
        credit = service.use_comp_off(
            actor,
            int(data.get("employee_id") or actor.employee_id),
            credit_id,
            parse_iso_date(data.get("used_on") or ""),
        )
        return ok(credit)
