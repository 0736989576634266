"""Periodic background sync of offline attendance."""

from __future__ import annotations

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .service import SyncService

logger = logging.getLogger(__name__)

scheduler: Optional[BackgroundScheduler] = None


def _run_sync(sync_service: SyncService) -> None:
    report = sync_service.sync_offline_data()
    logger.debug("Scheduled sync finished: %s", report)


def start_scheduler(sync_service: SyncService, interval_seconds: int) -> Optional[BackgroundScheduler]:
    """Start the sync job. An interval of 0 disables it."""
    global scheduler

    if interval_seconds <= 0:
        logger.info("Background sync disabled")
        return None

    if scheduler is not None:
        logger.warning("Scheduler is already running")
        return scheduler

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        _run_sync,
        trigger=IntervalTrigger(seconds=interval_seconds),
        args=[sync_service],
        id="attendance_sync",
        name="Sync offline attendance",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info("Background scheduler started. Attendance sync every %d seconds.", interval_seconds)
    return scheduler


def shutdown_scheduler() -> None:
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("Background scheduler stopped.")
