"""Example: drive the service layer directly, without Flask.

Controllers are a thin layer; the rules live in the services.
"""

import importlib
from datetime import date

from dotenv import load_dotenv

from config import get_settings_module

from src.attendance_core.attendance_core.container import build_container
from src.attendance_core.attendance_core.core.logging import setup_logging


def main():
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    setup_logging(settings.LOG_LEVEL)
    container = build_container(db_config=settings.DB_CONFIG, settings=settings)

    snapshot = container.attendance_service.get_live_attendance(date.today())
    print(snapshot["counts"])

    today = date.today()
    result = container.attendance_service.calculate_bulk_salary(today.year, today.month)
    print(result.summary)


if __name__ == "__main__":
    main()
