"""Calendar sync job: pulls events from the configured external provider."""

# flake8: noqa: E501


from typing import Any, Callable, Dict, Optional

from apps.services.calendar.registry import create_adapter, get_calendar_settings
from apps.worker.jobs.base import ScheduledJob
from apps.worker.jobs.lock import JobLock


class CalendarSyncJob(ScheduledJob):
    """Sync the configured provider into the local calendar.

    Nothing happens when auto sync is off, the provider is the built-in
    calendar, or the provider has not been connected.
    """

    name = "calendar_sync"

    def __init__(
        self,
        db,
        lock: JobLock,
        options,
        adapter_factory: Callable = create_adapter,
        adapter_kwargs: Optional[Dict[str, Any]] = None,
        lock_timeout: int = 3600,
    ):
        super().__init__(db, lock, lock_timeout)
        self.options = options
        self.adapter_factory = adapter_factory
        self.adapter_kwargs = adapter_kwargs or {}

    def _skip(self, reason: str) -> Dict[str, Any]:
        self.logger.info("Calendar sync skipped", reason=reason)
        return {"skipped_reason": reason}

    def execute(self) -> Dict[str, Any]:
        calendar_settings = get_calendar_settings(self.options)
        provider = calendar_settings.get("provider") or "builtin"

        if not calendar_settings.get("auto_sync", True):
            return self._skip("auto_sync_disabled")
        if provider == "builtin":
            return self._skip("builtin_provider")

        adapter, error = self.adapter_factory(provider, self.db, self.options, **self.adapter_kwargs)
        if error:
            raise RuntimeError(error.message)

        try:
            if not adapter.is_connected():
                return self._skip("not_connected")

            result, error = adapter.sync_events(calendar_settings.get("sync_args") or {})
            if error:
                raise RuntimeError(f"{adapter.provider_name} sync failed: {error.message}")
        finally:
            close = getattr(adapter, "close", None)
            if close:
                close()

        self.logger.info(
            "Calendar sync completed",
            provider=provider,
            synced=result.synced_count,
            skipped=result.skipped_count,
            pushed=result.pushed_count,
            errors=len(result.errors),
        )
        return result.to_dict()
