from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from types import MappingProxyType
from typing import Any, Mapping

from . import constants
from .enums import AttendanceStatus


def _default_nominal_hours() -> Mapping[AttendanceStatus, float]:
    return MappingProxyType(
        {
            AttendanceStatus.PRESENT: float(constants.DEFAULT_STANDARD_DAY_HOURS),
            AttendanceStatus.WFH: float(constants.DEFAULT_STANDARD_DAY_HOURS),
            AttendanceStatus.HALF_DAY: constants.DEFAULT_STANDARD_DAY_HOURS / 2,
        }
    )


@dataclass(frozen=True)
class WorkPolicy:
    """Business policy knobs used by the ledgers.

    These are company policy, not protocol: every value can be overridden from
    the settings module (see ``config/``).
    """

    standard_day_hours: float = float(constants.DEFAULT_STANDARD_DAY_HOURS)
    nominal_hours: Mapping[AttendanceStatus, float] = field(default_factory=_default_nominal_hours)
    break_minutes: int = constants.DEFAULT_BREAK_MINUTES
    on_time_cutoff: time = time(9, 30)
    weekly_off_days: frozenset[int] = frozenset(constants.DEFAULT_WEEKLY_OFF_DAYS)
    comp_off_expiry_days: int | None = constants.DEFAULT_COMP_OFF_EXPIRY_DAYS
    annual_leave_quota: int = constants.DEFAULT_ANNUAL_LEAVE_QUOTA

    def nominal_hours_for(self, status: AttendanceStatus) -> float:
        if status == AttendanceStatus.HALF_DAY and status not in self.nominal_hours:
            return self.standard_day_hours / 2
        return float(self.nominal_hours.get(status, 0.0))

    def is_weekly_off(self, weekday: int) -> bool:
        return weekday in self.weekly_off_days

    @classmethod
    def from_settings(cls, settings: Any) -> "WorkPolicy":
        """Build a policy from a settings module, falling back to defaults."""

        raw = dict(getattr(settings, "WORK_POLICY", {}) or {})

        standard = float(raw.get("standard_day_hours", constants.DEFAULT_STANDARD_DAY_HOURS))
        nominal_raw = raw.get("nominal_hours") or {}
        nominal = {
            AttendanceStatus.PRESENT: standard,
            AttendanceStatus.WFH: standard,
            AttendanceStatus.HALF_DAY: standard / 2,
        }
        for key, hours in nominal_raw.items():
            nominal[AttendanceStatus(key)] = float(hours)

        cutoff = raw.get("on_time_cutoff", constants.DEFAULT_ON_TIME_CUTOFF)
        if isinstance(cutoff, str):
            cutoff = datetime.strptime(cutoff, "%H:%M").time()

        expiry = raw.get("comp_off_expiry_days", constants.DEFAULT_COMP_OFF_EXPIRY_DAYS)

        return cls(
            standard_day_hours=standard,
            nominal_hours=MappingProxyType(nominal),
            break_minutes=int(raw.get("break_minutes", constants.DEFAULT_BREAK_MINUTES)),
            on_time_cutoff=cutoff,
            weekly_off_days=frozenset(int(d) for d in raw.get("weekly_off_days", constants.DEFAULT_WEEKLY_OFF_DAYS)),
            comp_off_expiry_days=int(expiry) if expiry is not None else None,
            annual_leave_quota=int(raw.get("annual_leave_quota", constants.DEFAULT_ANNUAL_LEAVE_QUOTA)),
        )
