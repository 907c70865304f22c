import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from batch_audit.services.tasks import TaskRegistry
from batch_audit.settings import Settings

logger = logging.getLogger(__name__)


def job_purge_tasks(registry: TaskRegistry, ttl_seconds: int) -> None:
    registry.purge_finished(ttl_seconds)


def start_task_sweeper(registry: TaskRegistry, settings: Settings) -> Optional[BackgroundScheduler]:
    """Evict finished tasks older than TASK_TTL_SECONDS. Disabled (None) when the TTL is 0."""
    if settings.TASK_TTL_SECONDS <= 0:
        return None

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        job_purge_tasks,
        'interval',
        seconds=settings.TASK_SWEEP_INTERVAL_SECONDS,
        args=[registry, settings.TASK_TTL_SECONDS],
        id='purge_finished_tasks',
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Task sweeper started: ttl=%ss every %ss", settings.TASK_TTL_SECONDS, settings.TASK_SWEEP_INTERVAL_SECONDS)
    return scheduler
