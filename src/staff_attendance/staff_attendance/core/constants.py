"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
Business thresholds are only defaults; deployments override them in settings.
"""

DEFAULT_STANDARD_DAY_HOURS = 8
DEFAULT_BREAK_MINUTES = 0
DEFAULT_ON_TIME_CUTOFF = "09:30"
DEFAULT_WEEKLY_OFF_DAYS = (6,)  # Sunday
DEFAULT_COMP_OFF_EXPIRY_DAYS = 90
DEFAULT_ANNUAL_LEAVE_QUOTA = 12

DEFAULT_HISTORY_LIMIT = 100
DEFAULT_PENDING_LIMIT = 500
AUTOCOMPLETE_LIMIT = 20
