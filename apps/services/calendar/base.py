"""Base calendar adapter framework.

This module provides the abstract capability interface for external calendar
providers plus the pull/push sync logic they share. Provider adapters
(Google, Outlook, built-in) inherit from BaseCalendarAdapter and implement the
provider specific calls; ``sync_events`` is implemented once here.
"""

# flake8: noqa: E501


import abc
import datetime
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx

from shared.errors import API_ERROR, NOT_CONNECTED, NOT_SUPPORTED, ModuleError
from shared.utils.dates import isoformat, parse_datetime, utcnow
from shared.utils.sanitize import sanitize_text, sanitize_textarea

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 15.0


@dataclass(slots=True)
class CalendarEvent:
    """Provider-neutral view of a remote calendar event.

    Attributes:
        external_id: Provider event identifier
        title: Event title
        start: Start time (naive UTC)
        end: End time (naive UTC)
        description: Plain-text description
        location: Free-form location
        all_day: Whether the event spans whole days
        html_link: Link to the event in the provider UI
        attendees: Attendee email addresses
    """

    external_id: str
    title: str
    start: Optional[datetime.datetime] = None
    end: Optional[datetime.datetime] = None
    description: str = ""
    location: str = ""
    all_day: bool = False
    html_link: Optional[str] = None
    attendees: List[str] = field(default_factory=list)


@dataclass(slots=True)
class CalendarSyncResult:
    """Outcome of one sync run against a provider."""

    provider: str
    synced_count: int = 0
    skipped_count: int = 0
    pushed_count: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "synced_count": self.synced_count,
            "skipped_count": self.skipped_count,
            "pushed_count": self.pushed_count,
            "errors": list(self.errors),
        }


class BaseCalendarAdapter(abc.ABC):
    """Abstract base class for calendar providers.

    Attributes:
        provider_id: Registry identifier (google, outlook, builtin)
        provider_name: Human readable provider name
        config: Provider configuration (tokens, calendar id, connected flag)
        db: PyDAL database instance
    """

    provider_id: str = ""
    provider_name: str = ""

    def __init__(self, db, config: Optional[Dict[str, Any]] = None, clock=utcnow):
        self.db = db
        self.config = dict(config or {})
        self.clock = clock

    def is_connected(self) -> bool:
        return bool(self.config.get("connected")) and self.validate_config()

    @abc.abstractmethod
    def validate_config(self) -> bool:
        """Validate provider configuration.

        Returns:
            True if configuration holds everything the provider needs
        """

    @abc.abstractmethod
    def test_connection(self) -> Tuple[Optional[bool], Optional[ModuleError]]:
        """Check that the provider accepts the configured credentials."""

    def authenticate(self) -> Tuple[Optional[bool], Optional[ModuleError]]:
        if not self.validate_config():
            return None, ModuleError(NOT_CONNECTED, f"{self.provider_name} is not connected.")
        return self.test_connection()

    @abc.abstractmethod
    def list_events(
        self,
        start_date: Optional[datetime.datetime] = None,
        end_date: Optional[datetime.datetime] = None,
        limit: Optional[int] = None,
    ) -> Tuple[Optional[List[CalendarEvent]], Optional[ModuleError]]:
        """List remote events in a time window."""

    @abc.abstractmethod
    def get_event(self, external_id: str) -> Tuple[Optional[CalendarEvent], Optional[ModuleError]]:
        pass

    @abc.abstractmethod
    def push_event(self, event: Dict[str, Any]) -> Tuple[Optional[str], Optional[ModuleError]]:
        """Create a remote event from a local event record; return its external id."""

    @abc.abstractmethod
    def update_event(self, external_id: str, event: Dict[str, Any]) -> Tuple[Optional[bool], Optional[ModuleError]]:
        pass

    @abc.abstractmethod
    def delete_event(self, external_id: str) -> Tuple[Optional[bool], Optional[ModuleError]]:
        pass

    def get_ical_feed(self) -> Tuple[Optional[str], Optional[ModuleError]]:
        return None, ModuleError(
            NOT_SUPPORTED, f"{self.provider_name} does not provide an iCal feed URL."
        )

    # ==================== Sync ====================

    def _local_exists(self, external_id: str) -> bool:
        events = self.db.ns_calendar_events
        return (
            self.db(
                (events.external_id == external_id)
                & (events.external_provider == self.provider_id)
            ).count()
            > 0
        )

    def _insert_local(self, remote: CalendarEvent) -> int:
        return self.db.ns_calendar_events.insert(
            title=sanitize_text(remote.title) or "(untitled)",
            description=sanitize_textarea(remote.description),
            location=sanitize_text(remote.location),
            start_datetime=remote.start,
            end_datetime=remote.end,
            all_day=remote.all_day,
            external_id=remote.external_id,
            external_provider=self.provider_id,
            external_url=remote.html_link,
        )

    def pull_event(self, external_id: str) -> Tuple[Optional[int], Optional[ModuleError]]:
        """Import one remote event; returns the local event id.

        An event that was already imported returns its existing local id.
        """
        events = self.db.ns_calendar_events
        existing = self.db(
            (events.external_id == external_id) & (events.external_provider == self.provider_id)
        ).select(events.id).first()
        if existing:
            return existing.id, None

        remote, error = self.get_event(external_id)
        if error:
            return None, error
        event_id = self._insert_local(remote)
        self.db.commit()
        return int(event_id), None

    def pull_events(self, result: CalendarSyncResult, args: Dict[str, Any]) -> Optional[ModuleError]:
        """Insert remote events that have no local copy yet."""
        remote_events, error = self.list_events(
            start_date=parse_datetime(args.get("start_date")),
            end_date=parse_datetime(args.get("end_date")),
            limit=args.get("limit"),
        )
        if error:
            return error

        for remote in remote_events:
            if self._local_exists(remote.external_id):
                result.skipped_count += 1
                continue
            try:
                self._insert_local(remote)
                self.db.commit()
                result.synced_count += 1
            except Exception as e:
                self.db.rollback()
                logger.error(f"Failed to store {self.provider_id} event {remote.external_id}: {e}")
                result.errors.append(f"Failed to sync event: {remote.title}")
        return None

    def push_local_events(self, result: CalendarSyncResult) -> None:
        """Create remote copies of upcoming local events that were never pushed."""
        events = self.db.ns_calendar_events
        pending = self.db(
            (events.external_id == None)  # noqa: E711
            & (events.start_datetime >= self.clock())
        ).select(orderby=events.start_datetime)

        for event in pending:
            external_id, error = self.push_event(
                {name: isoformat(event[name]) for name in events.fields}
            )
            if error:
                result.errors.append(f"Failed to push event {event.id}: {error.message}")
                continue
            event.update_record(external_id=external_id, external_provider=self.provider_id)
            self.db.commit()
            result.pushed_count += 1

    def sync_events(self, args: Optional[Dict[str, Any]] = None) -> Tuple[Optional[CalendarSyncResult], Optional[ModuleError]]:
        """Pull remote events into the local calendar, optionally pushing local ones.

        Args:
            args: start_date, end_date, limit, push_local

        Returns:
            (CalendarSyncResult, None) or (None, ModuleError) when listing fails
        """
        args = args or {}
        result = CalendarSyncResult(provider=self.provider_id)

        error = self.pull_events(result, args)
        if error:
            return None, error

        if args.get("push_local"):
            self.push_local_events(result)

        return result, None


class HttpCalendarAdapter(BaseCalendarAdapter):
    """Calendar adapter talking JSON over HTTPS with a bearer token."""

    base_url: str = ""

    def __init__(self, db, config: Optional[Dict[str, Any]] = None, client: Optional[httpx.Client] = None, clock=utcnow):
        super().__init__(db, config, clock)
        self.access_token = self.config.get("access_token")
        self.client = client or httpx.Client(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Content-Type": "application/json",
            },
            timeout=HTTP_TIMEOUT,
        )

    def validate_config(self) -> bool:
        return bool(self.access_token)

    def _request(self, method: str, path: str, **kwargs) -> Tuple[Optional[Dict[str, Any]], Optional[ModuleError]]:
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{self.provider_name} request {method} {path} failed: {e}")
            return None, ModuleError(API_ERROR, f"{self.provider_name} request failed: {e}")

        if response.status_code >= 400:
            return None, ModuleError(
                API_ERROR,
                f"{self.provider_name} returned HTTP {response.status_code}",
                {"status_code": response.status_code, "body": response.text[:500]},
            )
        if response.status_code == 204 or not response.content:
            return {}, None
        return response.json(), None

    def close(self) -> None:
        self.client.close()
