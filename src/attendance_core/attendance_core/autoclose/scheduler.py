from __future__ import annotations

import structlog
from apscheduler.schedulers.background import BackgroundScheduler

from ..core.constants import DEFAULT_AUTO_CLOSE_INTERVAL_MINUTES
from .closer import AutoCloser

logger = structlog.get_logger(__name__)

AUTO_CLOSE_JOB_ID = "auto-close-sessions"


def build_scheduler(closer: AutoCloser, *, interval_minutes: int = DEFAULT_AUTO_CLOSE_INTERVAL_MINUTES) -> BackgroundScheduler:
    """Interval job for the auto-close sweep. Not started; call .start()."""
    scheduler = BackgroundScheduler(
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            # A sweep that fires late still runs once; missed runs are not replayed.
            "misfire_grace_time": int(interval_minutes) * 60,
        }
    )
    scheduler.add_job(
        closer.sweep,
        "interval",
        minutes=int(interval_minutes),
        id=AUTO_CLOSE_JOB_ID,
        replace_existing=True,
    )
    logger.info("auto_close_scheduled", interval_minutes=int(interval_minutes))
    return scheduler
