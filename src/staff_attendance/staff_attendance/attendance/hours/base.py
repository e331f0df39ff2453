from __future__ import annotations

from abc import ABC, abstractmethod

from ..model import AttendanceRecord


class HoursCalculator(ABC):
    """Calculator interface (Strategy Pattern for worked time)."""

    @abstractmethod
    def worked_minutes(self, record: AttendanceRecord) -> int:
        raise NotImplementedError

    @abstractmethod
    def is_late(self, record: AttendanceRecord) -> bool:
        raise NotImplementedError
