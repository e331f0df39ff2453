from __future__ import annotations

import json
import logging
from typing import Protocol

from ..common.serialization import to_jsonable
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from .model import NotificationEvent

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def send(self, event: NotificationEvent) -> None:
        raise NotImplementedError


class LoggingNotificationSink(NotificationSink):
    def send(self, event: NotificationEvent) -> None:
        logger.info(
            "notification %s -> employee %s: %s",
            event.event_type.value,
            event.employee_id,
            to_jsonable(dict(event.payload)),
        )


class MySQLNotificationSink(NotificationSink):
    """Writes events to the ``notifications`` outbox table for the bot/email workers."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def send(self, event: NotificationEvent) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO notifications(employee_id, event_type, payload) VALUES(%s,%s,%s)",
                (
                    int(event.employee_id),
                    event.event_type.value,
                    json.dumps(to_jsonable(dict(event.payload))),
                ),
            )
