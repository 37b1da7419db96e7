"""Calendar provider adapters."""

from apps.services.calendar.base import (
    BaseCalendarAdapter,
    CalendarEvent,
    CalendarSyncResult,
    HttpCalendarAdapter,
)
from apps.services.calendar.builtin import BuiltinCalendarAdapter
from apps.services.calendar.google import GoogleCalendarAdapter
from apps.services.calendar.outlook import OutlookCalendarAdapter
from apps.services.calendar.registry import (
    CALENDAR_PROVIDERS,
    create_adapter,
    get_calendar_settings,
    get_provider_config,
)

__all__ = [
    "BaseCalendarAdapter",
    "BuiltinCalendarAdapter",
    "CALENDAR_PROVIDERS",
    "CalendarEvent",
    "CalendarSyncResult",
    "GoogleCalendarAdapter",
    "HttpCalendarAdapter",
    "OutlookCalendarAdapter",
    "create_adapter",
    "get_calendar_settings",
    "get_provider_config",
]
