from __future__ import annotations

import logging
from datetime import date
from functools import wraps
from typing import Any, Optional

from flask import Flask, jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AlreadyMarked,
    AuthorizationError,
    DomainError,
    InvalidTransition,
    NotAvailable,
    NotEditable,
    NotFound,
    QuotaExceeded,
    ValidationError,
)
from ..employees.model import Actor
from .datetime_utils import parse_iso_date
from .serialization import to_jsonable

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[DomainError], int], ...] = (
    (ValidationError, 400),
    (AuthorizationError, 403),
    (NotFound, 404),
    (InvalidTransition, 409),
    (AlreadyMarked, 409),
    (NotEditable, 409),
    (QuotaExceeded, 422),
    (NotAvailable, 422),
)


class Unauthenticated(DomainError):
    kind = "unauthenticated"


def status_for(error: DomainError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    if isinstance(error, Unauthenticated):
        return 401
    return 400


def current_actor() -> Actor:
    """Identity placed in the session by the auth collaborator."""

    if "employee_id" not in session or "role" not in session:
        raise Unauthenticated("Please log in to continue")
    try:
        return Actor(employee_id=int(session["employee_id"]), role=Role(session["role"]))
    except (TypeError, ValueError):
        raise Unauthenticated("Session identity is invalid") from None


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        return view(current_actor(), *args, **kwargs)

    return wrapper


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def optional_date_arg(name: str) -> Optional[date]:
    value = (request.args.get(name) or "").strip()
    return parse_iso_date(value) if value else None


def ok(payload: Any = None, status: int = 200):
    return jsonify(to_jsonable(payload) if payload is not None else {"ok": True}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(error: DomainError):
        status = status_for(error)
        if isinstance(error, NotFound):
            logger.warning("%s %s -> not_found: %s", request.method, request.path, error.message)
        else:
            logger.info("%s %s -> %s: %s", request.method, request.path, error.kind, error.message)
        return jsonify(error.to_dict()), status

    @app.errorhandler(Exception)
    def handle_unexpected(error: Exception):
        # Let Flask/werkzeug render its own HTTP errors (404 routes, 405, ...).
        code = getattr(error, "code", None)
        if isinstance(code, int):
            return jsonify({"error": "http_error", "message": str(error)}), code
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500
