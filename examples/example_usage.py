"""Example: drive the service layer without Flask.

Recomputes last month's balances for every active employee, the same
result a month-end job has to produce.
"""

import importlib
import sys
from datetime import date, timedelta

from dotenv import load_dotenv

from config import get_settings_module

from src.staff_attendance.staff_attendance.container import build_container


def main():
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, settings=settings)

    if len(sys.argv) > 1:
        year, month = (int(part) for part in sys.argv[1].split("-"))
    else:
        last_month = date.today().replace(day=1) - timedelta(days=1)
        year, month = last_month.year, last_month.month

    for balance in container.balance_service.recompute_all(year, month):
        print(
            f"employee {balance.employee_id}: worked {balance.total_hours_worked}h "
            f"expected {balance.expected_hours}h balance {balance.balance_hours}h "
            f"comp-offs {balance.comp_off_balance}"
        )


if __name__ == "__main__":
    main()
