"""Background scheduler for worker jobs.

Wraps an APScheduler ``BackgroundScheduler``. Every job is registered with
``max_instances=1`` and ``coalesce=True`` so a slow run is never stacked
inside one process; the database lock covers other processes.
"""

# flake8: noqa: E501


from typing import Any, Callable, Dict, List, Optional

import pytz
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from apps.worker.jobs.base import ScheduledJob
from apps.worker.utils.logger import get_logger

logger = get_logger(__name__)


class JobScheduler:
    """Registers ScheduledJob instances on cron or interval triggers."""

    def __init__(self, timezone: str = "UTC", scheduler: Optional[BackgroundScheduler] = None):
        self.timezone = pytz.timezone(timezone)
        self.scheduler = scheduler or BackgroundScheduler(timezone=self.timezone)
        self.jobs: Dict[str, ScheduledJob] = {}

    def _add(self, job: ScheduledJob, trigger, func: Optional[Callable[[], Any]] = None) -> None:
        self.jobs[job.name] = job
        self.scheduler.add_job(
            func or job.run,
            trigger=trigger,
            id=job.name,
            name=job.name,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )

    def schedule_cron(self, job: ScheduledJob, crontab: str, func: Optional[Callable[[], Any]] = None) -> None:
        """Run ``job`` on a five-field crontab in the scheduler timezone."""
        self._add(job, CronTrigger.from_crontab(crontab, timezone=self.timezone), func)
        logger.info("Scheduled job", job=job.name, cron=crontab, timezone=str(self.timezone))

    def schedule_interval(self, job: ScheduledJob, seconds: int, func: Optional[Callable[[], Any]] = None) -> None:
        self._add(job, IntervalTrigger(seconds=seconds, timezone=self.timezone), func)
        logger.info("Scheduled job", job=job.name, interval=seconds)

    def start(self) -> None:
        logger.info(f"Starting job scheduler with {len(self.jobs)} jobs")
        self.scheduler.start()

    def shutdown(self, wait: bool = True) -> None:
        if self.scheduler.running:
            logger.info("Stopping job scheduler")
            self.scheduler.shutdown(wait=wait)

    def get_jobs(self) -> List[Dict[str, Any]]:
        jobs = []
        for scheduled in self.scheduler.get_jobs():
            next_run = getattr(scheduled, "next_run_time", None)
            jobs.append(
                {
                    "id": scheduled.id,
                    "trigger": str(scheduled.trigger),
                    "next_run_time": next_run.isoformat() if next_run else None,
                }
            )
        return jobs
