from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import LeaveStatus, LeaveType
from ..database.mysql_base import fetchall, fetchone, lock_clause
from .model import LeaveQuota, LeaveRequest
from .repository import LeaveQuotaRepository, LeaveRepository

_COLUMNS = """
    request_id, employee_id, start_date, end_date, leave_type, reason, status,
    created_at, approved_by, decided_at, rejection_reason
"""


def _row_to_request(r: dict) -> LeaveRequest:
    return LeaveRequest(
        request_id=int(r["request_id"]),
        employee_id=int(r["employee_id"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        leave_type=LeaveType(r["leave_type"]),
        reason=r.get("reason") or "",
        status=LeaveStatus(r["status"]),
        created_at=r.get("created_at"),
        approved_by=r.get("approved_by"),
        decided_at=r.get("decided_at"),
        rejection_reason=r.get("rejection_reason"),
    )


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, cur):
        self._cur = cur

    def create(
        self,
        *,
        employee_id: int,
        start_date: date,
        end_date: date,
        leave_type: LeaveType,
        reason: str,
        created_at: datetime,
    ) -> int:
        self._cur.execute(
            """
            INSERT INTO leave_requests(employee_id, start_date, end_date, leave_type, reason, status, created_at)
            VALUES(%s,%s,%s,%s,%s,%s,%s)
            """,
            (
                int(employee_id),
                start_date,
                end_date,
                leave_type.value,
                reason,
                LeaveStatus.PENDING.value,
                created_at,
            ),
        )
        return int(self._cur.lastrowid)

    def get(self, request_id: int, *, for_update: bool = False) -> Optional[LeaveRequest]:
        lock = lock_clause(for_update)
        self._cur.execute(f"SELECT {_COLUMNS} FROM leave_requests WHERE request_id=%s{lock}", (int(request_id),))
        r = fetchone(self._cur)
        return _row_to_request(r) if r else None

    def decide(
        self,
        *,
        request_id: int,
        status: LeaveStatus,
        decided_by: Optional[int],
        decided_at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        self._cur.execute(
            """
            UPDATE leave_requests
            SET status=%s, approved_by=%s, decided_at=%s, rejection_reason=%s
            WHERE request_id=%s AND status=%s
            """,
            (
                status.value,
                decided_by,
                decided_at,
                rejection_reason,
                int(request_id),
                LeaveStatus.PENDING.value,
            ),
        )
        return self._cur.rowcount > 0

    def list_requests(
        self,
        *,
        status: Optional[LeaveStatus] = None,
        employee_id: Optional[int] = None,
        limit: int = 200,
    ) -> Sequence[LeaveRequest]:
        clauses = ["1=1"]
        params: list[object] = []

        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        if employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(int(employee_id))

        where = " AND ".join(clauses)
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM leave_requests
            WHERE {where}
            ORDER BY created_at DESC, request_id DESC
            LIMIT %s
            """,
            tuple(params + [int(limit)]),
        )
        return [_row_to_request(r) for r in fetchall(self._cur)]

    def list_approved_overlapping(self, employee_id: int, start_date: date, end_date: date) -> Sequence[LeaveRequest]:
        self._cur.execute(
            f"""
            SELECT {_COLUMNS}
            FROM leave_requests
            WHERE employee_id=%s AND status=%s AND start_date <= %s AND end_date >= %s
            ORDER BY start_date
            """,
            (int(employee_id), LeaveStatus.APPROVED.value, end_date, start_date),
        )
        return [_row_to_request(r) for r in fetchall(self._cur)]


class MySQLLeaveQuotaRepository(LeaveQuotaRepository):
    def __init__(self, cur):
        self._cur = cur

    def get_for_update(self, employee_id: int) -> Optional[LeaveQuota]:
        self._cur.execute(
            """
            SELECT employee_id, annual_leave_quota, leaves_taken, leaves_pending
            FROM leave_quotas
            WHERE employee_id=%s
            FOR UPDATE
            """,
            (int(employee_id),),
        )
        r = fetchone(self._cur)
        if not r:
            return None
        return LeaveQuota(
            employee_id=int(r["employee_id"]),
            annual_leave_quota=int(r["annual_leave_quota"]),
            leaves_taken=int(r["leaves_taken"]),
            leaves_pending=int(r["leaves_pending"]),
        )

    def create(self, employee_id: int, *, annual_leave_quota: int) -> LeaveQuota:
        """Create the row if missing and return it locked.

        A concurrent first request blocks on the duplicate key and then reads
        the row the other transaction committed.
        """

        self._cur.execute(
            """
            INSERT IGNORE INTO leave_quotas(employee_id, annual_leave_quota, leaves_taken, leaves_pending)
            VALUES(%s,%s,0,0)
            """,
            (int(employee_id), int(annual_leave_quota)),
        )
        return self.get_for_update(employee_id)

    def save(self, quota: LeaveQuota) -> None:
        self._cur.execute(
            """
            UPDATE leave_quotas
            SET leaves_taken=%s, leaves_pending=%s
            WHERE employee_id=%s
            """,
            (int(quota.leaves_taken), int(quota.leaves_pending), int(quota.employee_id)),
        )
