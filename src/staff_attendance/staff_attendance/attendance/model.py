from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one attendance record per employee per calendar day."""

    attendance_id: int
    employee_id: int
    work_date: date
    status: AttendanceStatus
    entry_time: Optional[time] = None
    exit_time: Optional[time] = None
    notes: Optional[str] = None
    is_site_visit: bool = False
    site_location: Optional[str] = None
    site_visit_cost: Optional[Decimal] = None
    cost_approved: bool = False
    cost_approved_by: Optional[int] = None
    cost_approved_at: Optional[datetime] = None
    comp_off_earned: bool = False
    admin_edited: bool = False
    marked_at: Optional[datetime] = None


@dataclass(frozen=True)
class AttendanceMark:
    """Values written by a mark/upsert, before the store assigns an id."""

    employee_id: int
    work_date: date
    status: AttendanceStatus
    entry_time: Optional[time] = None
    exit_time: Optional[time] = None
    notes: Optional[str] = None
    comp_off_earned: bool = False
    admin_edited: bool = False
    marked_at: Optional[datetime] = None
