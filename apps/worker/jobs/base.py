"""Base class for scheduled worker jobs.

Each run takes the job's single-flight lock, calls ``execute`` and records
the outcome. A run whose lock is held elsewhere is skipped. Exceptions raised
while locking, executing or releasing are logged and turned into a failed
result; they never reach the scheduler.
"""

# flake8: noqa: E501


import abc
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from apps.worker.jobs.lock import JobLock
from apps.worker.utils.logger import create_correlation_id, get_logger


@dataclass(slots=True)
class JobRunResult:
    """Outcome of one job run.

    Attributes:
        job_name: Job identifier
        status: success, partial, failed or skipped
        skipped: True when another run held the lock
        details: Counters reported by the job
        error: Error message for failed runs
        duration: Wall-clock seconds spent in the run
    """

    job_name: str
    status: str
    skipped: bool = False
    details: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    duration: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job_name": self.job_name,
            "status": self.status,
            "skipped": self.skipped,
            "details": self.details,
            "error": self.error,
            "duration": round(self.duration, 3),
        }


class ScheduledJob(abc.ABC):
    """Abstract base class for lock-guarded background jobs."""

    name: str = ""

    STATUS_SUCCESS = "success"
    STATUS_PARTIAL = "partial"
    STATUS_FAILED = "failed"
    STATUS_SKIPPED = "skipped"

    def __init__(self, db, lock: JobLock, lock_timeout: int = 3600):
        self.db = db
        self.lock = lock
        self.lock_timeout = lock_timeout
        self.logger = get_logger(f"worker.jobs.{self.name}")

    @abc.abstractmethod
    def execute(self) -> Dict[str, Any]:
        """Do the job's work and return its counters.

        A non-empty ``errors`` entry marks the run as partial.
        """

    def run(self) -> JobRunResult:
        log = self.logger.bind(correlation_id=create_correlation_id(), job=self.name)
        started = time.monotonic()

        try:
            token = self.lock.acquire(self.name, self.lock_timeout)
        except Exception as e:
            self.db.rollback()
            log.error("Job lock unavailable", error=str(e), exc_info=True)
            return JobRunResult(job_name=self.name, status=self.STATUS_FAILED, error=str(e))

        if token is None:
            log.info("Job skipped, previous run still holds the lock")
            return JobRunResult(job_name=self.name, status=self.STATUS_SKIPPED, skipped=True)

        status = self.STATUS_FAILED
        details: Dict[str, Any] = {}
        error: Optional[str] = None
        try:
            log.info("Job started")
            details = self.execute() or {}
            status = self.STATUS_PARTIAL if details.get("errors") else self.STATUS_SUCCESS
        except Exception as e:
            self.db.rollback()
            error = str(e)
            log.error("Job failed", error=error, exc_info=True)

        try:
            self.lock.release(self.name, token, status, error)
        except Exception as e:
            self.db.rollback()
            log.error("Job lock release failed", error=str(e), exc_info=True)

        duration = time.monotonic() - started
        log.info("Job finished", status=status, duration=round(duration, 3))
        return JobRunResult(
            job_name=self.name,
            status=status,
            details=details,
            error=error,
            duration=duration,
        )
