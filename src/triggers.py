"""Ways of invoking the pipeline: once, or on a recurring timer.

The pipeline itself has no timer; a trigger owns the schedule and the
error boundary around each cycle.
"""

import time
from collections.abc import Callable

import schedule
import structlog

from src.config import Settings, get_settings

logger = structlog.get_logger()

Job = Callable[[], object]


def run_once(job: Job) -> object:
    logger.info("trigger_once")
    return job()


def _guarded(job: Job) -> Callable[[], None]:
    def _run_cycle() -> None:
        logger.info("scheduled_cycle_start")
        try:
            job()
        except Exception:
            logger.exception("scheduled_cycle_failed")
            return
        logger.info("scheduled_cycle_complete")

    return _run_cycle


def schedule_job(
    job: Job, settings: Settings | None = None, scheduler: schedule.Scheduler | None = None
) -> schedule.Job:
    settings = settings or get_settings()
    scheduler = scheduler or schedule.default_scheduler
    if settings.schedule_at:
        entry = scheduler.every().day.at(settings.schedule_at).do(_guarded(job))
    else:
        entry = scheduler.every(settings.schedule_interval_hours).hours.do(_guarded(job))
    logger.info("job_scheduled", next_run=str(entry.next_run))
    return entry


def run_scheduled(
    job: Job, settings: Settings | None = None, poll_seconds: float = 30.0
) -> None:
    """Block forever, running ``job`` on the configured schedule."""
    schedule_job(job, settings)
    while True:
        schedule.run_pending()
        time.sleep(poll_seconds)
