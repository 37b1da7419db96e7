"""Outlook calendar adapter (Microsoft Graph v1.0)."""

# flake8: noqa: E501


import datetime
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from apps.services.calendar.base import CalendarEvent, HttpCalendarAdapter
from shared.errors import ModuleError
from shared.utils.dates import parse_datetime, utcnow

GRAPH_API = "https://graph.microsoft.com/v1.0"


def _graph_time(value: datetime.datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%S")


class OutlookCalendarAdapter(HttpCalendarAdapter):
    """Outlook / Microsoft 365 calendar sync through Microsoft Graph."""

    provider_id = "outlook"
    provider_name = "Outlook Calendar"
    base_url = GRAPH_API

    def __init__(self, db, config: Optional[Dict[str, Any]] = None, client: Optional[httpx.Client] = None, clock=utcnow):
        super().__init__(db, config, client, clock)
        self.calendar_id = self.config.get("calendar_id")

    @property
    def _events_path(self) -> str:
        if self.calendar_id:
            return f"/me/calendars/{quote(self.calendar_id, safe='')}/events"
        return "/me/events"

    def test_connection(self) -> Tuple[Optional[bool], Optional[ModuleError]]:
        _, error = self._request("GET", "/me")
        if error:
            return None, error
        return True, None

    def _to_event(self, item: Dict[str, Any]) -> CalendarEvent:
        body = item.get("body") or {}
        return CalendarEvent(
            external_id=item["id"],
            title=item.get("subject", ""),
            start=parse_datetime((item.get("start") or {}).get("dateTime")),
            end=parse_datetime((item.get("end") or {}).get("dateTime")),
            description=body.get("content", "") or item.get("bodyPreview", ""),
            location=(item.get("location") or {}).get("displayName", ""),
            all_day=bool(item.get("isAllDay")),
            html_link=item.get("webLink"),
            attendees=[
                a["emailAddress"]["address"]
                for a in item.get("attendees", [])
                if (a.get("emailAddress") or {}).get("address")
            ],
        )

    def _to_payload(self, event: Dict[str, Any]) -> Dict[str, Any]:
        start = parse_datetime(event.get("start_datetime") or event.get("due_date"))
        end = parse_datetime(event.get("end_datetime")) or start
        payload: Dict[str, Any] = {
            "subject": event.get("title", ""),
            "body": {"contentType": "text", "content": event.get("description") or ""},
            "location": {"displayName": event.get("location") or ""},
            "isAllDay": bool(event.get("all_day")),
        }
        if start:
            payload["start"] = {"dateTime": _graph_time(start), "timeZone": "UTC"}
            payload["end"] = {"dateTime": _graph_time(end), "timeZone": "UTC"}
        return payload

    def list_events(
        self,
        start_date: Optional[datetime.datetime] = None,
        end_date: Optional[datetime.datetime] = None,
        limit: Optional[int] = None,
    ) -> Tuple[Optional[List[CalendarEvent]], Optional[ModuleError]]:
        start_date = start_date or self.clock()
        end_date = end_date or start_date + datetime.timedelta(days=30)
        params = {
            "$filter": (
                f"start/dateTime ge '{_graph_time(start_date)}' "
                f"and end/dateTime le '{_graph_time(end_date)}'"
            ),
            "$orderby": "start/dateTime",
            "$top": limit or 250,
        }
        data, error = self._request(
            "GET",
            self._events_path,
            params=params,
            headers={"Prefer": 'outlook.timezone="UTC", outlook.body-content-type="text"'},
        )
        if error:
            return None, error
        return [self._to_event(item) for item in data.get("value", [])], None

    def get_event(self, external_id: str) -> Tuple[Optional[CalendarEvent], Optional[ModuleError]]:
        data, error = self._request("GET", f"/me/events/{quote(external_id, safe='')}")
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
            "PATCH", f"/me/events/{quote(external_id, safe='')}", json=self._to_payload(event)
        )
        if error:
            return None, error
        return True, None

    def delete_event(self, external_id: str) -> Tuple[Optional[bool], Optional[ModuleError]]:
        _, error = self._request("DELETE", f"/me/events/{quote(external_id, safe='')}")
        if error:
            return None, error
        return True, None
