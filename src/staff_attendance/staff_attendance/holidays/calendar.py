from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from ..common.datetime_utils import iter_days
from ..core.policy import WorkPolicy
from .model import Holiday


@dataclass(frozen=True)
class WorkCalendar:
    """Working-day rules for a date window: weekly offs + company holidays."""

    policy: WorkPolicy
    holidays: Sequence[Holiday] = ()

    def holiday_on(self, day: date) -> Optional[Holiday]:
        for holiday in self.holidays:
            if holiday.falls_on(day):
                return holiday
        return None

    def is_weekly_off(self, day: date) -> bool:
        return self.policy.is_weekly_off(day.weekday())

    def is_non_working_day(self, day: date) -> bool:
        return self.is_weekly_off(day) or self.holiday_on(day) is not None

    def non_working_reason(self, day: date) -> Optional[str]:
        holiday = self.holiday_on(day)
        if holiday:
            return f"Worked on {holiday.name}"
        if self.is_weekly_off(day):
            return f"Worked on {day.strftime('%A')}"
        return None

    def working_days(self, start: date, end: date) -> list[date]:
        return [d for d in iter_days(start, end) if not self.is_non_working_day(d)]
