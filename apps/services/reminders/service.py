"""Calendar Reminder Service.

Schedules reminders relative to calendar events and dispatches the ones that
are due:
- Reminder creation (single, or default offsets of 1 week / 1 day / 1 hour)
- Rescheduling and cancellation when an event moves or is removed
- Dispatch through per-type delivery channels with sent/failed bookkeeping
"""

import datetime
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from apps.services.reminders.channels import ReminderChannel, ReminderMessage
from shared.errors import (
    EVENT_NOT_FOUND,
    INVALID_TYPE,
    NO_DATE,
    NO_RECIPIENT,
    SEND_FAILED,
    ModuleError,
)
from shared.utils.dates import format_time_until, isoformat, utcnow
from shared.utils.sanitize import absint, sanitize_email, sanitize_text, sanitize_textarea

logger = logging.getLogger(__name__)


class ReminderService:
    """Service for scheduling and dispatching event reminders."""

    # Reminder statuses
    STATUS_PENDING = "pending"
    STATUS_SENT = "sent"
    STATUS_FAILED = "failed"
    STATUS_CANCELLED = "cancelled"

    REMINDER_TYPES = ("email", "sms", "push", "in_app")
    DEFAULT_OFFSETS = (10080, 1440, 60)  # 1 week, 1 day, 1 hour
    DEFAULT_BATCH_SIZE = 100

    def __init__(
        self,
        db,
        channels: Optional[Iterable[ReminderChannel]] = None,
        clock: Callable[[], datetime.datetime] = utcnow,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        """Initialize service with database connection and delivery channels."""
        self.db = db
        self.clock = clock
        self.batch_size = batch_size
        self.channels: Dict[str, ReminderChannel] = {}
        for channel in channels or []:
            self.register_channel(channel)

    def register_channel(self, channel: ReminderChannel) -> None:
        self.channels[channel.reminder_type] = channel

    def _reminder_to_dict(self, reminder) -> Dict[str, Any]:
        """Convert reminder record to dictionary."""
        return {
            "id": reminder.id,
            "event_id": reminder.event_id,
            "reminder_offset": reminder.reminder_offset,
            "reminder_type": reminder.reminder_type,
            "recipient_user_id": reminder.recipient_user_id,
            "recipient_email": reminder.recipient_email,
            "recipient_phone": reminder.recipient_phone,
            "reminder_status": reminder.reminder_status,
            "scheduled_for": isoformat(reminder.scheduled_for),
            "sent_at": isoformat(reminder.sent_at),
            "error_message": reminder.error_message,
            "retry_count": reminder.retry_count,
            "custom_message": reminder.custom_message,
        }

    @staticmethod
    def _event_start(event) -> Optional[datetime.datetime]:
        return event.start_datetime or event.due_date

    # ==================== Scheduling ====================

    def create_reminder(
        self, event_id: int, data: Dict[str, Any]
    ) -> Tuple[Optional[int], Optional[ModuleError]]:
        """Schedule one reminder ``reminder_offset`` minutes before the event."""
        event = self.db.ns_calendar_events[event_id]
        if not event:
            return None, ModuleError(EVENT_NOT_FOUND, "Event not found.", {"event_id": event_id})

        reminder_type = data.get("reminder_type", "email")
        if reminder_type not in self.REMINDER_TYPES:
            return None, ModuleError(INVALID_TYPE, f"Invalid reminder type: {reminder_type}")

        start = self._event_start(event)
        if start is None:
            return None, ModuleError(NO_DATE, "Event has no date to schedule a reminder against.")

        offset = absint(data.get("reminder_offset", 60))
        user_id = absint(data.get("recipient_user_id")) or None

        reminder_id = self.db.ns_calendar_reminders.insert(
            event_id=event_id,
            reminder_offset=offset,
            reminder_type=reminder_type,
            recipient_user_id=user_id,
            recipient_email=sanitize_email(data.get("recipient_email")) or None,
            recipient_phone=sanitize_text(data.get("recipient_phone")) or None,
            reminder_status=self.STATUS_PENDING,
            scheduled_for=start - datetime.timedelta(minutes=offset),
            custom_message=sanitize_textarea(data.get("custom_message")) or None,
        )
        self.db.commit()
        return int(reminder_id), None

    def create_default_reminders(
        self,
        event_id: int,
        recipients: List[Dict[str, Any]],
        offsets: Optional[Iterable[int]] = None,
    ) -> Tuple[List[int], List[ModuleError]]:
        """Schedule one reminder per recipient per offset."""
        created: List[int] = []
        errors: List[ModuleError] = []
        for offset in offsets or self.DEFAULT_OFFSETS:
            for recipient in recipients:
                reminder_id, error = self.create_reminder(
                    event_id, {**recipient, "reminder_offset": offset}
                )
                if error:
                    errors.append(error)
                else:
                    created.append(reminder_id)
        return created, errors

    def get_event_reminders(self, event_id: int) -> List[Dict[str, Any]]:
        reminders = self.db.ns_calendar_reminders
        rows = self.db(reminders.event_id == event_id).select(orderby=reminders.scheduled_for)
        return [self._reminder_to_dict(row) for row in rows]

    def cancel_event_reminders(self, event_id: int) -> int:
        """Cancel every pending reminder for an event."""
        reminders = self.db.ns_calendar_reminders
        cancelled = self.db(
            (reminders.event_id == event_id)
            & (reminders.reminder_status == self.STATUS_PENDING)
        ).update(reminder_status=self.STATUS_CANCELLED)
        self.db.commit()
        return cancelled or 0

    def reschedule_event_reminders(self, event_id: int) -> Tuple[Optional[int], Optional[ModuleError]]:
        """Recompute ``scheduled_for`` of pending reminders after an event moved."""
        event = self.db.ns_calendar_events[event_id]
        if not event:
            return None, ModuleError(EVENT_NOT_FOUND, "Event not found.", {"event_id": event_id})
        start = self._event_start(event)
        if start is None:
            return None, ModuleError(NO_DATE, "Event has no date to schedule a reminder against.")

        reminders = self.db.ns_calendar_reminders
        pending = self.db(
            (reminders.event_id == event_id)
            & (reminders.reminder_status == self.STATUS_PENDING)
        ).select()
        for reminder in pending:
            reminder.update_record(
                scheduled_for=start - datetime.timedelta(minutes=reminder.reminder_offset or 0)
            )
        self.db.commit()
        return len(pending), None

    # ==================== Dispatch ====================

    def get_due_reminders(self, limit: Optional[int] = None):
        """Pending reminders whose time has come, oldest first."""
        reminders = self.db.ns_calendar_reminders
        return self.db(
            (reminders.reminder_status == self.STATUS_PENDING)
            & (reminders.scheduled_for <= self.clock())
        ).select(
            orderby=reminders.scheduled_for | reminders.id,
            limitby=(0, limit or self.batch_size),
        )

    def build_message(self, reminder, event) -> ReminderMessage:
        start = self._event_start(event)
        lines = [
            f"{event.title} starts in {format_time_until(reminder.reminder_offset or 0)}.",
            "",
            f"When: {start:%A, %B %d, %Y at %H:%M} UTC",
        ]
        if event.location:
            lines.append(f"Where: {event.location}")
        if event.description:
            lines.extend(["", event.description])
        if reminder.custom_message:
            lines.extend(["", reminder.custom_message])

        return ReminderMessage(
            subject=f"Reminder: {event.title}",
            body="\n".join(lines),
            recipient_user_id=reminder.recipient_user_id,
            recipient_email=reminder.recipient_email,
            recipient_phone=reminder.recipient_phone,
            link=event.external_url,
            metadata={"event_id": event.id, "reminder_id": reminder.id},
        )

    def send_reminder(self, reminder) -> Tuple[Optional[bool], Optional[ModuleError]]:
        """Deliver one reminder through the channel for its type."""
        event = self.db.ns_calendar_events[reminder.event_id]
        if not event:
            return None, ModuleError(EVENT_NOT_FOUND, "Event not found.", {"event_id": reminder.event_id})

        if not (reminder.recipient_user_id or reminder.recipient_email or reminder.recipient_phone):
            return None, ModuleError(NO_RECIPIENT, "No recipient specified.")

        if reminder.reminder_type not in self.REMINDER_TYPES:
            return None, ModuleError(INVALID_TYPE, f"Invalid reminder type: {reminder.reminder_type}")

        channel = self.channels.get(reminder.reminder_type)
        if channel is None:
            return None, ModuleError(
                f"{reminder.reminder_type}_not_configured",
                f"{reminder.reminder_type} reminders are not configured.",
            )

        return channel.send(self.build_message(reminder, event))

    def _pending(self, reminder_id: int):
        reminders = self.db.ns_calendar_reminders
        return self.db(
            (reminders.id == reminder_id)
            & (reminders.reminder_status == self.STATUS_PENDING)
        )

    def mark_sent(self, reminder_id: int) -> bool:
        updated = self._pending(reminder_id).update(
            reminder_status=self.STATUS_SENT,
            sent_at=self.clock(),
            error_message=None,
        )
        self.db.commit()
        return bool(updated)

    def mark_failed(self, reminder_id: int, error_message: str) -> bool:
        """Record a failed attempt. Failure is terminal; retry_count keeps the tally."""
        reminders = self.db.ns_calendar_reminders
        updated = self._pending(reminder_id).update(
            reminder_status=self.STATUS_FAILED,
            error_message=error_message,
            retry_count=reminders.retry_count + 1,
        )
        self.db.commit()
        return bool(updated)

    def process_due_reminders(self) -> Dict[str, Any]:
        """Send every due reminder once and record the outcome."""
        result: Dict[str, Any] = {"sent_count": 0, "failed_count": 0, "errors": []}

        for reminder in self.get_due_reminders():
            try:
                _, error = self.send_reminder(reminder)
            except Exception as e:
                logger.error(f"Unexpected error sending reminder {reminder.id}: {e}", exc_info=True)
                self.db.rollback()
                error = ModuleError(SEND_FAILED, str(e))

            if error:
                self.mark_failed(reminder.id, error.message)
                result["failed_count"] += 1
                result["errors"].append({"reminder_id": reminder.id, "error": error.message})
            else:
                self.mark_sent(reminder.id)
                result["sent_count"] += 1

        return result
