"""Settings shared by every environment.

Environment modules start from these values and override what differs.
"""

import os


def _int_list(value: str) -> tuple[int, ...]:
    return tuple(int(v) for v in value.split(",") if v.strip())


SECRET_KEY = os.environ.get("SECRET_KEY", "change-me")

DB_CONFIG = {
    "host": os.environ.get("DB_HOST", "localhost"),
    "port": int(os.environ.get("DB_PORT", "3306")),
    "user": os.environ.get("DB_USER", "root"),
    "password": os.environ.get("DB_PASSWORD", ""),
    "database": os.environ.get("DB_NAME", "staff_attendance"),
}

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Business policy. These are company rules, not protocol; override per deployment.
WORK_POLICY = {
    "standard_day_hours": float(os.environ.get("STANDARD_DAY_HOURS", "8")),
    # Hours credited when entry/exit times are missing; half_day defaults to half the standard day.
    "nominal_hours": {},
    "break_minutes": int(os.environ.get("BREAK_MINUTES", "0")),
    "on_time_cutoff": os.environ.get("ON_TIME_CUTOFF", "09:30"),
    # Monday=0 ... Sunday=6
    "weekly_off_days": _int_list(os.environ.get("WEEKLY_OFF_DAYS", "6")),
    "comp_off_expiry_days": int(os.environ.get("COMP_OFF_EXPIRY_DAYS", "90")),
    "annual_leave_quota": int(os.environ.get("DEFAULT_ANNUAL_LEAVE_QUOTA", "12")),
}

AUTO_INIT_DB = bool(int(os.environ.get("AUTO_INIT_DB", "0")))
