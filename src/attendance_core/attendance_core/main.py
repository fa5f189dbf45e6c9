from __future__ import annotations

import importlib
from pathlib import Path

import structlog
from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .attendance.controller import register as register_attendance
from .autoclose.scheduler import build_scheduler
from .container import build_container
from .core.logging import setup_logging
from .database.bootstrap import apply_schema, list_tables

logger = structlog.get_logger(__name__)


def create_app() -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))

    logger.info(
        "app_configuring",
        settings=settings_module,
        db=f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}",
    )

    container = build_container(db_config=db_config, settings=settings)

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(container.conn, schema_path=schema_path)
        logger.info("schema_ready", tables=len(list_tables(container.conn)))

    register_attendance(app, container)
    app.extensions["attendance_core"] = container

    if bool(getattr(settings, "AUTO_CLOSE_ENABLED", False)):
        scheduler = build_scheduler(
            container.auto_closer,
            interval_minutes=int(getattr(settings, "AUTO_CLOSE_INTERVAL_MINUTES", 30)),
        )
        scheduler.start()
        app.extensions["attendance_core_scheduler"] = scheduler

    return app
