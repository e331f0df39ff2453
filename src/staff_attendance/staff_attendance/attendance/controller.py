from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_clock_time, parse_iso_date
from ..common.http import json_body, login_required, ok, optional_date_arg
from ..container import Container
from ..core.exceptions import ValidationError
from ..employees.model import Actor


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/attendance", methods=["POST"], endpoint="mark_attendance")
    @login_required
    def mark_attendance(actor: Actor):
        data = json_body()
        work_date = parse_iso_date(data["date"]) if data.get("date") else None
        record = service.mark_attendance(
            actor,
            employee_id=int(data.get("employee_id") or actor.employee_id),
            work_date=work_date,
            status=data.get("status") or "",
            entry_time=parse_clock_time(data.get("entry_time")),
            exit_time=parse_clock_time(data.get("exit_time")),
            notes=data.get("notes"),
        )
        return ok(record, 201)

    @app.route("/api/attendance/checkin", methods=["POST"], endpoint="check_in")
    @login_required
    def check_in(actor: Actor):
        return ok(service.check_in(actor), 201)

    @app.route("/api/attendance/checkout", methods=["POST"], endpoint="check_out")
    @login_required
    def check_out(actor: Actor):
        return ok(service.check_out(actor))

    @app.route("/api/attendance", methods=["GET"], endpoint="list_attendance")
    @login_required
    def list_attendance(actor: Actor):
        start_date = optional_date_arg("start")
        end_date = optional_date_arg("end")
        if not start_date or not end_date:
            raise ValidationError("Query parameters 'start' and 'end' are required (YYYY-MM-DD)")

        employee_id = request.args.get("employee_id", type=int)
        if employee_id is None and actor.is_admin and request.args.get("all") == "1":
            return ok(service.list_for_range(actor, start_date, end_date))
        return ok(service.list_for_employee(actor, employee_id or actor.employee_id, start_date, end_date))

    @app.route("/api/attendance/<int:attendance_id>", methods=["GET"], endpoint="get_attendance")
    @login_required
    def get_attendance(actor: Actor, attendance_id: int):
        return ok(service.get_record(actor, attendance_id))

    @app.route("/api/attendance/<int:attendance_id>", methods=["DELETE"], endpoint="delete_attendance")
    @login_required
    def delete_attendance(actor: Actor, attendance_id: int):
        service.delete_attendance(actor, attendance_id)
        return ok()
