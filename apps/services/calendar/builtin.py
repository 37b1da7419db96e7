"""Built-in calendar: events live only in the local database."""

import datetime
from typing import Any, Dict, List, Optional, Tuple

from apps.services.calendar.base import BaseCalendarAdapter, CalendarEvent, CalendarSyncResult
from shared.errors import ModuleError, not_found


class BuiltinCalendarAdapter(BaseCalendarAdapter):
    """Local calendar. Push/update/delete act on local rows and sync is a no-op."""

    provider_id = "builtin"
    provider_name = "Built-in Calendar"

    def validate_config(self) -> bool:
        return True

    def is_connected(self) -> bool:
        return True

    def test_connection(self) -> Tuple[Optional[bool], Optional[ModuleError]]:
        return True, None

    @staticmethod
    def _to_event(row) -> CalendarEvent:
        return CalendarEvent(
            external_id=str(row.id),
            title=row.title,
            start=row.start_datetime or row.due_date,
            end=row.end_datetime,
            description=row.description or "",
            location=row.location or "",
            all_day=bool(row.all_day),
        )

    def list_events(
        self,
        start_date: Optional[datetime.datetime] = None,
        end_date: Optional[datetime.datetime] = None,
        limit: Optional[int] = None,
    ) -> Tuple[Optional[List[CalendarEvent]], Optional[ModuleError]]:
        events = self.db.ns_calendar_events
        query = events.id > 0
        if start_date:
            query &= events.start_datetime >= start_date
        if end_date:
            query &= events.start_datetime <= end_date
        rows = self.db(query).select(
            orderby=events.start_datetime, limitby=(0, limit) if limit else None
        )
        return [self._to_event(row) for row in rows], None

    def get_event(self, external_id: str) -> Tuple[Optional[CalendarEvent], Optional[ModuleError]]:
        row = self.db.ns_calendar_events(int(external_id)) if str(external_id).isdigit() else None
        if not row:
            return None, not_found("Calendar event", {"id": external_id})
        return self._to_event(row), None

    def pull_event(self, external_id: str) -> Tuple[Optional[int], Optional[ModuleError]]:
        event, error = self.get_event(external_id)
        if error:
            return None, error
        return int(event.external_id), None

    def push_event(self, event: Dict[str, Any]) -> Tuple[Optional[str], Optional[ModuleError]]:
        return str(event.get("id")), None

    def update_event(self, external_id: str, event: Dict[str, Any]) -> Tuple[Optional[bool], Optional[ModuleError]]:
        return True, None

    def delete_event(self, external_id: str) -> Tuple[Optional[bool], Optional[ModuleError]]:
        return True, None

    def sync_events(self, args: Optional[Dict[str, Any]] = None) -> Tuple[Optional[CalendarSyncResult], Optional[ModuleError]]:
        return CalendarSyncResult(provider=self.provider_id), None
