"""Calendar event reminders."""

from apps.services.reminders.channels import (
    EmailChannel,
    InAppChannel,
    ReminderChannel,
    ReminderMessage,
    SmsChannel,
)
from apps.services.reminders.service import ReminderService

__all__ = [
    "EmailChannel",
    "InAppChannel",
    "ReminderChannel",
    "ReminderMessage",
    "ReminderService",
    "SmsChannel",
]
