"""Daily document retention job: auto-archival followed by expiration."""

from typing import Any, Dict

from apps.services.retention.service import RetentionService
from apps.worker.jobs.base import ScheduledJob
from apps.worker.jobs.lock import JobLock


class RetentionJob(ScheduledJob):
    name = "document_retention"

    def __init__(self, db, lock: JobLock, service: RetentionService, lock_timeout: int = 3600):
        super().__init__(db, lock, lock_timeout)
        self.service = service

    def execute(self) -> Dict[str, Any]:
        archival = self.service.process_auto_archival()
        expiration = self.service.process_expiration()

        archived = archival["archived_count"]
        expired = expiration["expired_count"]
        self.logger.info(f"{archived} documents archived, {expired} documents expired")

        return {
            "archived_count": archived,
            "expired_count": expired,
            "errors": archival["errors"] + expiration["errors"],
        }
