"""Reminder delivery channels.

Each channel delivers one rendered reminder message and returns
``(True, None)`` or ``(None, ModuleError)``. Channels are registered by
reminder type (``email``, ``sms``, ``push``, ``in_app``); a type without a
registered channel is reported as not configured.
"""

# flake8: noqa: E501


import abc
import logging
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import Any, Dict, Optional, Tuple

import httpx

from shared.errors import EMAIL_FAILED, NO_RECIPIENT, SEND_FAILED, ModuleError

logger = logging.getLogger(__name__)

TWILIO_API_URL = "https://api.twilio.com/2010-04-01"
SMS_TIMEOUT = 15.0


@dataclass(slots=True)
class ReminderMessage:
    """Rendered reminder ready for delivery."""

    subject: str
    body: str
    recipient_user_id: Optional[int] = None
    recipient_email: Optional[str] = None
    recipient_phone: Optional[str] = None
    link: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


DeliveryResult = Tuple[Optional[bool], Optional[ModuleError]]


class ReminderChannel(abc.ABC):
    """Abstract delivery channel."""

    reminder_type: str = ""

    @abc.abstractmethod
    def send(self, message: ReminderMessage) -> DeliveryResult:
        """Deliver a message."""


class EmailChannel(ReminderChannel):
    """Plain-text email via SMTP, or the log when the backend is ``console``."""

    reminder_type = "email"

    def __init__(
        self,
        backend: str = "console",
        from_address: str = "noreply@localhost",
        from_name: str = "NonprofitSuite",
        smtp_host: Optional[str] = None,
        smtp_port: int = 587,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        smtp_use_tls: bool = True,
        timeout: float = 15.0,
    ):
        self.backend = backend
        self.from_address = from_address
        self.from_name = from_name
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_username = smtp_username
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.timeout = timeout

    def _build(self, message: ReminderMessage) -> EmailMessage:
        email = EmailMessage()
        email["Subject"] = message.subject
        email["From"] = f"{self.from_name} <{self.from_address}>"
        email["To"] = message.recipient_email
        email.set_content(message.body)
        return email

    def send(self, message: ReminderMessage) -> DeliveryResult:
        if not message.recipient_email:
            return None, ModuleError(NO_RECIPIENT, "No email address for reminder.")

        email = self._build(message)

        if self.backend == "console":
            logger.info(f"[console email] To: {message.recipient_email} Subject: {message.subject}")
            logger.debug(message.body)
            return True, None

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as smtp:
                if self.smtp_use_tls:
                    smtp.starttls()
                if self.smtp_username and self.smtp_password:
                    smtp.login(self.smtp_username, self.smtp_password)
                smtp.send_message(email)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"Email delivery to {message.recipient_email} failed: {e}")
            return None, ModuleError(EMAIL_FAILED, f"Failed to send email: {e}")

        return True, None


class SmsChannel(ReminderChannel):
    """SMS through the Twilio REST API."""

    reminder_type = "sms"

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        client: Optional[httpx.Client] = None,
    ):
        self.account_sid = account_sid
        self.from_number = from_number
        self.client = client or httpx.Client(
            base_url=TWILIO_API_URL,
            auth=(account_sid, auth_token),
            timeout=SMS_TIMEOUT,
        )

    def send(self, message: ReminderMessage) -> DeliveryResult:
        if not message.recipient_phone:
            return None, ModuleError(NO_RECIPIENT, "No phone number for reminder.")

        try:
            response = self.client.post(
                f"/Accounts/{self.account_sid}/Messages.json",
                data={
                    "To": message.recipient_phone,
                    "From": self.from_number,
                    "Body": f"{message.subject}\n{message.body}"[:1600],
                },
            )
        except httpx.HTTPError as e:
            logger.warning(f"SMS delivery to {message.recipient_phone} failed: {e}")
            return None, ModuleError(SEND_FAILED, f"SMS request failed: {e}")

        if response.status_code >= 400:
            return None, ModuleError(
                SEND_FAILED,
                f"SMS provider returned {response.status_code}",
                {"body": response.text[:500]},
            )
        return True, None


class InAppChannel(ReminderChannel):
    """Stores the reminder as an in-app notification."""

    reminder_type = "in_app"

    def __init__(self, db):
        self.db = db

    def send(self, message: ReminderMessage) -> DeliveryResult:
        if not message.recipient_user_id:
            return None, ModuleError(NO_RECIPIENT, "In-app reminders require a user.")

        self.db.ns_notifications.insert(
            user_id=message.recipient_user_id,
            title=message.subject,
            message=message.body,
            link=message.link,
        )
        self.db.commit()
        return True, None
