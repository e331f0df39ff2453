from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from ..core.enums import NotificationType


@dataclass(frozen=True)
class NotificationEvent:
    """Outbound event handed to the messaging collaborator after commit."""

    employee_id: int
    event_type: NotificationType
    payload: Mapping[str, Any] = field(default_factory=dict)
