from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from ..attendance.service import AttendanceService
from ..balances.service import BalanceService
from ..common.datetime_utils import now_local, parse_iso_date, parse_year_month
from ..core.exceptions import DomainError, ValidationError
from ..employees.model import Actor
from ..leaves.service import LeaveService

logger = logging.getLogger(__name__)

HELP_TEXT = "\n".join(
    [
        "Available commands:",
        "/checkin - mark today present with the current time",
        "/checkout - record your exit time for today",
        "/leave START END REASON - request leave (dates as YYYY-MM-DD)",
        "/myleaves - your recent leave requests",
        "/cancelleave ID - cancel a pending leave request",
        "/compoffs - your available comp-off credits",
        "/usecompoff ID YYYY-MM-DD - redeem a comp-off credit",
        "/balance [YYYY-MM] - your monthly hour balance",
    ]
)


class BotCommandHandler:
    """Maps chat commands onto the same service operations as the HTTP API.

    Replies are short plain strings; the chat collaborator owns formatting.
    """

    def __init__(
        self,
        attendance: AttendanceService,
        balances: BalanceService,
        leaves: LeaveService,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._balances = balances
        self._leaves = leaves
        self._clock = clock
        self._commands: dict[str, Callable[[Actor, list[str]], str]] = {
            "/start": self._help,
            "/help": self._help,
            "/checkin": self._check_in,
            "/checkout": self._check_out,
            "/leave": self._leave,
            "/myleaves": self._my_leaves,
            "/cancelleave": self._cancel_leave,
            "/compoffs": self._comp_offs,
            "/usecompoff": self._use_comp_off,
            "/balance": self._balance,
        }

    def handle(self, actor: Actor, text: str) -> str:
        parts = (text or "").strip().split()
        if not parts:
            return HELP_TEXT

        # "/checkin@SomeBot" in group chats
        command = parts[0].split("@", 1)[0].lower()
        handler = self._commands.get(command)
        if handler is None:
            return f"Unknown command {command}.\n{HELP_TEXT}"

        try:
            return handler(actor, parts[1:])
        except DomainError as e:
            logger.info("Bot command %s by %s failed: %s", command, actor.employee_id, e.kind)
            return f"Error: {e.message}"

    def _help(self, actor: Actor, args: list[str]) -> str:
        return HELP_TEXT

    def _check_in(self, actor: Actor, args: list[str]) -> str:
        record = self._attendance.check_in(actor)
        reply = f"Checked in at {record.entry_time:%H:%M} on {record.work_date.isoformat()}."
        if record.comp_off_earned:
            reply += " You earned a comp-off for working on a day off."
        return reply

    def _check_out(self, actor: Actor, args: list[str]) -> str:
        record = self._attendance.check_out(actor)
        return f"Checked out at {record.exit_time:%H:%M}."

    def _leave(self, actor: Actor, args: list[str]) -> str:
        if len(args) < 3:
            raise ValidationError("Usage: /leave START END REASON (dates as YYYY-MM-DD)")
        request = self._leaves.request_leave(
            actor,
            start_date=parse_iso_date(args[0]),
            end_date=parse_iso_date(args[1]),
            leave_type="casual",
            reason=" ".join(args[2:]),
        )
        return (
            f"Leave request #{request.request_id} submitted for {request.days} day(s) "
            f"({request.start_date.isoformat()} to {request.end_date.isoformat()}). Waiting for approval."
        )

    def _my_leaves(self, actor: Actor, args: list[str]) -> str:
        requests = list(self._leaves.list_for_employee(actor, actor.employee_id))[:10]
        if not requests:
            return "You have no leave requests."
        lines = [
            f"#{r.request_id} {r.start_date.isoformat()} to {r.end_date.isoformat()} ({r.days}d) - {r.status.value}"
            for r in requests
        ]
        return "Your leave requests:\n" + "\n".join(lines)

    def _cancel_leave(self, actor: Actor, args: list[str]) -> str:
        if len(args) != 1 or not args[0].lstrip("#").isdigit():
            raise ValidationError("Usage: /cancelleave ID")
        request = self._leaves.cancel(actor, int(args[0].lstrip("#")))
        return f"Leave request #{request.request_id} cancelled."

    def _comp_offs(self, actor: Actor, args: list[str]) -> str:
        credits = self._balances.list_available_comp_offs(actor, actor.employee_id)
        if not credits:
            return "You have no available comp-offs."
        lines = []
        for c in credits:
            expiry = f", expires {c.expires_at.isoformat()}" if c.expires_at else ""
            lines.append(f"#{c.comp_off_id} for {c.earned_for_date.isoformat()}{expiry}")
        return "Available comp-offs:\n" + "\n".join(lines)

    def _use_comp_off(self, actor: Actor, args: list[str]) -> str:
        if len(args) != 2 or not args[0].lstrip("#").isdigit():
            raise ValidationError("Usage: /usecompoff ID YYYY-MM-DD")
        credit = self._balances.use_comp_off(
            actor, actor.employee_id, int(args[0].lstrip("#")), parse_iso_date(args[1])
        )
        return f"Comp-off #{credit.comp_off_id} booked for {credit.used_on.isoformat()}."

    def _balance(self, actor: Actor, args: list[str]) -> str:
        if args:
            year, month = parse_year_month(args[0])
        else:
            today = self._clock().date()
            year, month = today.year, today.month

        b = self._balances.get_monthly_balance(actor, actor.employee_id, year, month)
        return (
            f"{year:04d}-{month:02d}: worked {b.total_hours_worked}h of {b.expected_hours}h "
            f"(balance {b.balance_hours}h). Present {b.days_present}, WFH {b.days_wfh}, "
            f"half days {b.days_half_day}, leave {b.days_on_leave}. "
            f"Comp-offs: {b.comp_off_balance} available."
        )
