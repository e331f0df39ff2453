from __future__ import annotations

from datetime import date

from src.staff_attendance.staff_attendance.container import wire
from src.staff_attendance.staff_attendance.core.enums import LeaveStatus, NotificationType
from src.staff_attendance.staff_attendance.notifications.dispatcher import NotificationDispatcher
from src.staff_attendance.staff_attendance.notifications.model import NotificationEvent


class FlakySink:
    def __init__(self, failures: int):
        self.failures = failures
        self.delivered = []

    def send(self, event):
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("chat gateway down")
        self.delivered.append(event)


def _event(employee_id=2):
    return NotificationEvent(employee_id=employee_id, event_type=NotificationType.LEAVE_APPROVED, payload={"request_id": 1})


def test_failed_delivery_is_queued_and_retried():
    sink = FlakySink(failures=1)
    dispatcher = NotificationDispatcher([sink])

    dispatcher.publish([_event()])

    assert sink.delivered == []
    assert dispatcher.failed_count == 1

    assert dispatcher.retry_failed() == 1
    assert dispatcher.failed_count == 0
    assert len(sink.delivered) == 1


def test_one_failing_sink_does_not_block_the_others():
    broken = FlakySink(failures=5)
    healthy = FlakySink(failures=0)
    dispatcher = NotificationDispatcher([broken, healthy])

    dispatcher.publish([_event(1), _event(2)])

    assert [e.employee_id for e in healthy.delivered] == [1, 2]
    assert dispatcher.failed_count == 2
    assert dispatcher.retry_failed() == 0
    assert dispatcher.failed_count == 2


def test_notification_failure_never_undoes_the_change(store, clock, policy, employee):
    sink = FlakySink(failures=10)
    container = wire(uow_factory=store.unit_of_work, policy=policy, sinks=[sink], clock=clock)

    request = container.leave_service.request_leave(
        employee, start_date=date(2026, 2, 10), end_date=date(2026, 2, 10), leave_type="sick", reason="fever"
    )

    assert store.state.leaves[request.request_id].status == LeaveStatus.PENDING
    assert container.notifier.failed_count == 1
