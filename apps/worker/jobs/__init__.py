"""Scheduled worker jobs."""

from apps.worker.jobs.base import JobRunResult, ScheduledJob
from apps.worker.jobs.calendar_sync import CalendarSyncJob
from apps.worker.jobs.lock import JobLock
from apps.worker.jobs.reminders import ReminderDispatchJob
from apps.worker.jobs.retention import RetentionJob
from apps.worker.jobs.scheduler import JobScheduler

__all__ = [
    "CalendarSyncJob",
    "JobLock",
    "JobRunResult",
    "JobScheduler",
    "ReminderDispatchJob",
    "RetentionJob",
    "ScheduledJob",
]
