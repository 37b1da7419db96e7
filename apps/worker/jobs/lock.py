"""Single-flight guard for scheduled jobs.

A row per job name in ``ns_job_locks`` holds ``locked_until``. Acquiring is a
conditional UPDATE that only matches when the lock is free or stale, so two
workers sharing the database cannot run the same job at once. The timeout
frees locks left behind by a crashed worker. Each acquire stamps a holder token
and release only matches that token, so a run that outlived its lock cannot
free the lock of the run that took it over.
"""

import datetime
import logging
import uuid
from typing import Any, Callable, Dict, Optional

from shared.utils.dates import isoformat, utcnow

logger = logging.getLogger(__name__)


class JobLock:
    """Database lock keyed by job name."""

    STATUS_RUNNING = "running"

    def __init__(self, db, clock: Callable[[], datetime.datetime] = utcnow):
        self.db = db
        self.clock = clock

    def _ensure_row(self, name: str) -> None:
        locks = self.db.ns_job_locks
        if self.db(locks.job_name == name).count():
            return
        try:
            locks.insert(job_name=name, run_count=0)
            self.db.commit()
        except Exception as e:
            # Another worker inserted the row first
            self.db.rollback()
            logger.debug(f"Lock row for {name} already created: {e}")

    def acquire(self, name: str, timeout: int = 3600) -> Optional[str]:
        """Take the lock unless an unexpired holder exists.

        Args:
            name: Job name
            timeout: Seconds until the lock counts as stale

        Returns:
            Holder token to pass to ``release``, or None if the lock is held
        """
        self._ensure_row(name)

        locks = self.db.ns_job_locks
        now = self.clock()
        token = uuid.uuid4().hex
        free = (locks.locked_until == None) | (locks.locked_until <= now)  # noqa: E711
        updated = self.db((locks.job_name == name) & free).update(
            locked_until=now + datetime.timedelta(seconds=timeout),
            holder=token,
            started_at=now,
            last_status=self.STATUS_RUNNING,
            run_count=locks.run_count + 1,
        )
        self.db.commit()

        if not updated:
            logger.info(f"Job {name} is already running, lock held")
            return None
        return token

    def release(self, name: str, token: str, status: str, error: Optional[str] = None) -> bool:
        """Free the lock if ``token`` still holds it.

        A holder whose lock went stale and was taken over leaves the new
        holder's lock and run record untouched.
        """
        locks = self.db.ns_job_locks
        updated = self.db((locks.job_name == name) & (locks.holder == token)).update(
            locked_until=None,
            holder=None,
            finished_at=self.clock(),
            last_status=status,
            last_error=error,
        )
        self.db.commit()

        if not updated:
            logger.warning(f"Lock for {name} was taken over before this run finished")
        return bool(updated)

    def is_locked(self, name: str) -> bool:
        locks = self.db.ns_job_locks
        return bool(
            self.db((locks.job_name == name) & (locks.locked_until > self.clock())).count()
        )

    def get_status(self, name: str) -> Optional[Dict[str, Any]]:
        row = self.db(self.db.ns_job_locks.job_name == name).select().first()
        if row is None:
            return None
        return {
            "job_name": row.job_name,
            "locked_until": isoformat(row.locked_until),
            "started_at": isoformat(row.started_at),
            "finished_at": isoformat(row.finished_at),
            "last_status": row.last_status,
            "last_error": row.last_error,
            "run_count": row.run_count or 0,
        }
