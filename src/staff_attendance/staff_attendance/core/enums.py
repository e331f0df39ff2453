from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Role of the resolved actor, used for authorization."""

    ADMIN = "admin"
    EMPLOYEE = "employee"


class AttendanceStatus(str, Enum):
    """Daily attendance status as stored in the ledger."""

    PRESENT = "present"
    ABSENT = "absent"
    WFH = "wfh"
    HALF_DAY = "half_day"
    ON_LEAVE = "on_leave"
    HOLIDAY = "holiday"
    WEEKEND = "weekend"

    @property
    def is_work(self) -> bool:
        return self in WORKED_STATUSES


WORKED_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.WFH, AttendanceStatus.HALF_DAY})


class CompOffStatus(str, Enum):
    AVAILABLE = "available"
    USED = "used"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class LeaveStatus(str, Enum):
    """Leave approval workflow states."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class LeaveType(str, Enum):
    CASUAL = "casual"
    SICK = "sick"
    VACATION = "vacation"
    PERSONAL = "personal"


class SiteVisitStatus(str, Enum):
    """Site-visit expense claim workflow states."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class NotificationType(str, Enum):
    LEAVE_REQUESTED = "leave_requested"
    LEAVE_APPROVED = "leave_approved"
    LEAVE_REJECTED = "leave_rejected"
    LEAVE_CANCELLED = "leave_cancelled"
    SITE_VISIT_SUBMITTED = "site_visit_submitted"
    SITE_VISIT_APPROVED = "site_visit_approved"
    SITE_VISIT_REJECTED = "site_visit_rejected"
