from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Type

from mysql.connector import errorcode, errors

from .connection import DatabaseConnection

_CENTS = Decimal("0.01")


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """One connection, one transaction.

    Row locks taken with ``SELECT ... FOR UPDATE`` are held until the block
    exits: commit on a clean exit, rollback on any exception.
    """

    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            conn.start_transaction(isolation_level="READ COMMITTED")
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def duplicate_key_as(error: Type[Exception], message: str):
    """Re-raise a unique-key collision (errno 1062) as ``error(message)``.

    Under READ COMMITTED a ``FOR UPDATE`` read of a missing row takes no gap
    lock, so two first writes for the same key can both reach the INSERT.
    """

    try:
        yield
    except errors.IntegrityError as exc:
        if exc.errno == errorcode.ER_DUP_ENTRY:
            raise error(message) from exc
        raise


def fetchone(cur) -> Optional[Dict[str, Any]]:
    return cur.fetchone() or None


def fetchall(cur) -> List[Dict[str, Any]]:
    return list(cur.fetchall() or [])


def in_clause(values: Sequence[Any]) -> str:
    """``%s`` placeholders for an ``IN (...)`` filter of ``len(values)`` items."""

    if not values:
        raise ValueError("IN clause needs at least one value")
    return ",".join(["%s"] * len(values))


def lock_clause(for_update: bool) -> str:
    return " FOR UPDATE" if for_update else ""


def to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value)).quantize(_CENTS)


def to_bool(value: Any) -> bool:
    return bool(int(value or 0))


def normalize_mysql_time(value: Any) -> Optional[time]:
    """TIME columns come back as ``timedelta`` from the pure-Python connector
    and as ``time`` or ``'HH:MM:SS'`` from others."""

    if value is None or isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        seconds = int(value.total_seconds()) % 86400
        return time(seconds // 3600, (seconds % 3600) // 60, seconds % 60)
    if isinstance(value, str):
        for fmt in ("%H:%M:%S", "%H:%M"):
            try:
                return datetime.strptime(value.strip(), fmt).time()
            except ValueError:
                continue
        raise ValueError(f"Invalid time string: {value!r}")
    raise TypeError(f"Unsupported MySQL TIME value type: {type(value)!r}")
