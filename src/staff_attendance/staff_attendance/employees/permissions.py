from __future__ import annotations

from ..core.exceptions import AuthorizationError
from .model import Actor


def require_admin(actor: Actor, action: str) -> None:
    if not actor.is_admin:
        raise AuthorizationError(f"Only an admin can {action}")


def require_self_or_admin(actor: Actor, employee_id: int, action: str) -> None:
    if not actor.is_admin and not actor.owns(employee_id):
        raise AuthorizationError(f"You can only {action} for yourself")
