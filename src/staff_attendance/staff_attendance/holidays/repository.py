from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import Holiday


class HolidayRepository(Protocol):
    def list_between(self, start_date: date, end_date: date) -> Sequence[Holiday]:
        """Holidays whose date (or yearly recurrence) falls inside the range."""

        raise NotImplementedError

    def list_for_year(self, year: Optional[int] = None) -> Sequence[Holiday]:
        """Declared holidays, optionally limited to one year (recurring ones always listed)."""

        raise NotImplementedError

    def get_by_id(self, holiday_id: int) -> Optional[Holiday]:
        raise NotImplementedError

    def add(
        self,
        *,
        holiday_date: date,
        name: str,
        description: Optional[str],
        is_recurring: bool,
        created_by: Optional[int],
    ) -> int:
        """Insert a holiday; a second holiday on the same date raises AlreadyMarked."""

        raise NotImplementedError

    def delete(self, holiday_id: int) -> bool:
        raise NotImplementedError
