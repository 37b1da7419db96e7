"""Google Calendar adapter (Calendar API v3)."""

# flake8: noqa: E501


import datetime
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from apps.services.calendar.base import CalendarEvent, HttpCalendarAdapter
from shared.errors import ModuleError
from shared.utils.dates import parse_datetime, utcnow

GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"
GOOGLE_ICAL_URL = "https://calendar.google.com/calendar/ical/{calendar_id}/public/basic.ics"


def _rfc3339(value: datetime.datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


class GoogleCalendarAdapter(HttpCalendarAdapter):
    """Google Calendar sync over the v3 REST API."""

    provider_id = "google"
    provider_name = "Google Calendar"
    base_url = GOOGLE_CALENDAR_API

    def __init__(self, db, config: Optional[Dict[str, Any]] = None, client: Optional[httpx.Client] = None, clock=utcnow):
        super().__init__(db, config, client, clock)
        self.calendar_id = self.config.get("calendar_id") or "primary"

    @property
    def _events_path(self) -> str:
        return f"/calendars/{quote(self.calendar_id, safe='')}/events"

    def test_connection(self) -> Tuple[Optional[bool], Optional[ModuleError]]:
        data, error = self._request("GET", f"/calendars/{quote(self.calendar_id, safe='')}")
        if error:
            return None, error
        return True, None

    @staticmethod
    def _parse_time(value: Optional[Dict[str, Any]]) -> Tuple[Optional[datetime.datetime], bool]:
        if not value:
            return None, False
        if value.get("dateTime"):
            return parse_datetime(value["dateTime"]), False
        return parse_datetime(value.get("date")), True

    def _to_event(self, item: Dict[str, Any]) -> CalendarEvent:
        start, all_day = self._parse_time(item.get("start"))
        end, _ = self._parse_time(item.get("end"))
        return CalendarEvent(
            external_id=item["id"],
            title=item.get("summary", ""),
            start=start,
            end=end,
            description=item.get("description", ""),
            location=item.get("location", ""),
            all_day=all_day,
            html_link=item.get("htmlLink"),
            attendees=[a["email"] for a in item.get("attendees", []) if a.get("email")],
        )

    def _to_payload(self, event: Dict[str, Any]) -> Dict[str, Any]:
        start = parse_datetime(event.get("start_datetime") or event.get("due_date"))
        end = parse_datetime(event.get("end_datetime")) or start
        payload: Dict[str, Any] = {
            "summary": event.get("title", ""),
            "description": event.get("description") or "",
            "location": event.get("location") or "",
        }
        if event.get("all_day") and start:
            payload["start"] = {"date": start.date().isoformat()}
            payload["end"] = {"date": (end or start).date().isoformat()}
        elif start:
            payload["start"] = {"dateTime": _rfc3339(start), "timeZone": "UTC"}
            payload["end"] = {"dateTime": _rfc3339(end), "timeZone": "UTC"}
        return payload

    def list_events(
        self,
        start_date: Optional[datetime.datetime] = None,
        end_date: Optional[datetime.datetime] = None,
        limit: Optional[int] = None,
    ) -> Tuple[Optional[List[CalendarEvent]], Optional[ModuleError]]:
        start_date = start_date or self.clock()
        params = {
            "timeMin": _rfc3339(start_date),
            "timeMax": _rfc3339(end_date or start_date + datetime.timedelta(days=30)),
            "maxResults": limit or 250,
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        data, error = self._request("GET", self._events_path, params=params)
        if error:
            return None, error
        return [self._to_event(item) for item in data.get("items", [])], None

    def get_event(self, external_id: str) -> Tuple[Optional[CalendarEvent], Optional[ModuleError]]:
        data, error = self._request("GET", f"{self._events_path}/{quote(external_id, safe='')}")
        if error:
            return None, error
        return self._to_event(data), None

    def push_event(self, event: Dict[str, Any]) -> Tuple[Optional[str], Optional[ModuleError]]:
        data, error = self._request("POST", self._events_path, json=self._to_payload(event))
        if error:
            return None, error
        return data.get("id"), None

    def update_event(self, external_id: str, event: Dict[str, Any]) -> Tuple[Optional[bool], Optional[ModuleError]]:
        _, error = self._request(
            "PATCH",
            f"{self._events_path}/{quote(external_id, safe='')}",
            json=self._to_payload(event),
        )
        if error:
            return None, error
        return True, None

    def delete_event(self, external_id: str) -> Tuple[Optional[bool], Optional[ModuleError]]:
        _, error = self._request("DELETE", f"{self._events_path}/{quote(external_id, safe='')}")
        if error and error.data.get("status_code") != 410:
            return None, error
        return True, None

    def get_ical_feed(self) -> Tuple[Optional[str], Optional[ModuleError]]:
        return GOOGLE_ICAL_URL.format(calendar_id=quote(self.calendar_id, safe="")), None
