from __future__ import annotations

import logging
import threading
from typing import Iterable, Sequence

from .model import NotificationEvent
from .sinks import NotificationSink

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Fire-and-forget delivery of events that were produced by a committed change.

    A failing sink never propagates to the caller: the failure is logged and the
    (sink, event) pair is kept so ``retry_failed`` can redeliver it later.
    """

    def __init__(self, sinks: Sequence[NotificationSink]):
        self._sinks = list(sinks)
        self._failed: list[tuple[NotificationSink, NotificationEvent]] = []
        self._lock = threading.Lock()

    @property
    def failed_count(self) -> int:
        with self._lock:
            return len(self._failed)

    def _deliver(self, sink: NotificationSink, event: NotificationEvent) -> bool:
        try:
            sink.send(event)
            return True
        except Exception:
            logger.exception(
                "Notification delivery failed (sink=%s, type=%s, employee=%s)",
                type(sink).__name__,
                event.event_type.value,
                event.employee_id,
            )
            return False

    def publish(self, events: Iterable[NotificationEvent]) -> None:
        for event in events:
            for sink in self._sinks:
                if not self._deliver(sink, event):
                    with self._lock:
                        self._failed.append((sink, event))

    def retry_failed(self) -> int:
        """Redeliver queued failures; returns how many succeeded this time."""

        with self._lock:
            pending, self._failed = self._failed, []

        delivered = 0
        still_failing: list[tuple[NotificationSink, NotificationEvent]] = []
        for sink, event in pending:
            if self._deliver(sink, event):
                delivered += 1
            else:
                still_failing.append((sink, event))

        if still_failing:
            with self._lock:
                self._failed.extend(still_failing)
        logger.info("Notification retry: delivered=%s still_failing=%s", delivered, len(still_failing))
        return delivered
