"""Reminder dispatch job: sends every due reminder once."""

from typing import Any, Dict

from apps.services.reminders.service import ReminderService
from apps.worker.jobs.base import ScheduledJob
from apps.worker.jobs.lock import JobLock


class ReminderDispatchJob(ScheduledJob):
    name = "reminder_dispatch"

    def __init__(self, db, lock: JobLock, service: ReminderService, lock_timeout: int = 600):
        super().__init__(db, lock, lock_timeout)
        self.service = service

    def execute(self) -> Dict[str, Any]:
        result = self.service.process_due_reminders()
        if result["sent_count"] or result["failed_count"]:
            self.logger.info(
                "Reminders processed",
                sent=result["sent_count"],
                failed=result["failed_count"],
            )
        return result
