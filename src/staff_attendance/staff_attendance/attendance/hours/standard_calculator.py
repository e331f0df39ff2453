from __future__ import annotations

from ...common.datetime_utils import elapsed_minutes
from ...core.policy import WorkPolicy
from ..model import AttendanceRecord
from .base import HoursCalculator


class StandardHoursCalculator(HoursCalculator):
    """Standard rule: (exit - entry) - break_minutes when both times exist,
    otherwise the nominal hours configured for the status. Never below 0.

    Statuses that do not imply presence (absent, leave, holiday, weekend)
    contribute nothing.
    """

    def __init__(self, policy: WorkPolicy):
        self._policy = policy

    def worked_minutes(self, record: AttendanceRecord) -> int:
        if not record.status.is_work:
            return 0
        if record.entry_time and record.exit_time:
            minutes = elapsed_minutes(record.entry_time, record.exit_time)
            minutes -= int(self._policy.break_minutes or 0)
            return max(minutes, 0)
        return int(round(self._policy.nominal_hours_for(record.status) * 60))

    def is_late(self, record: AttendanceRecord) -> bool:
        if not record.status.is_work or record.entry_time is None:
            return False
        return record.entry_time > self._policy.on_time_cutoff
