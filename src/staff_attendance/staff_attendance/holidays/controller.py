from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import json_body, login_required, ok
from ..container import Container
from ..employees.model import Actor


def register(app: Flask, container: Container) -> None:
    service = container.holiday_service

    @app.route("/api/holidays", methods=["GET"], endpoint="list_holidays")
    @login_required
    def list_holidays(actor: Actor):
        return ok(service.list_holidays(request.args.get("year", type=int)))

    @app.route("/api/admin/holidays", methods=["POST"], endpoint="declare_holiday")
    @login_required
    def declare_holiday(actor: Actor):
        data = json_body()
        holiday = service.declare_holiday(
            actor,
            holiday_date=parse_iso_date(data.get("holiday_date") or data.get("date") or ""),
            name=data.get("holiday_name") or data.get("name") or "",
            description=data.get("description"),
            is_recurring=bool(data.get("is_recurring")),
        )
        return ok(holiday, 201)

    @app.route("/api/admin/holidays/<int:holiday_id>", methods=["DELETE"], endpoint="delete_holiday")
    @login_required
    def delete_holiday(actor: Actor, holiday_id: int):
        return ok(service.delete_holiday(actor, holiday_id))
