"""PyDAL table definitions for NonprofitSuite.

This module defines all PyDAL database tables. Long lines are unavoidable
due to Field() definition syntax and are suppressed from linting.
"""

# flake8: noqa: E501

from pydal import Field
from pydal.validators import *  # noqa: F401, F403

from shared.utils.dates import utcnow

REMINDER_TYPES = ["email", "sms", "push", "in_app"]
REMINDER_STATUSES = ["pending", "sent", "failed", "cancelled"]
BETA_STATUSES = ["approved", "waitlist", "pending", "rejected"]
BETA_SLOT_TYPES = ["501c3", "pre_nonprofit"]


def _timestamps():
    return [
        Field("created_at", "datetime", default=utcnow, writable=False),
        Field("updated_at", "datetime", default=utcnow, update=utcnow, writable=False),
    ]


def define_all_tables(db, migrate=False):
    """Define all database tables using PyDAL.

    Args:
        db: PyDAL DAL instance
        migrate: Let PyDAL create/alter tables (tests and first boot)
    """

    # ==========================================
    # Runtime options and job bookkeeping
    # ==========================================

    db.define_table(
        "ns_options",
        Field("option_key", "string", length=191, notnull=True, unique=True),
        Field("option_value", "json"),
        *_timestamps(),
        migrate=migrate,
    )

    db.define_table(
        "ns_job_locks",
        Field("job_name", "string", length=100, notnull=True, unique=True),
        Field("locked_until", "datetime"),
        Field("holder", "string", length=64),
        Field("started_at", "datetime"),
        Field("finished_at", "datetime"),
        Field("last_status", "string", length=20),
        Field("last_error", "text"),
        Field("run_count", "integer", default=0),
        migrate=migrate,
    )

    # ==========================================
    # Documents and retention
    # ==========================================

    db.define_table(
        "ns_retention_policies",
        Field("policy_name", "string", length=255, notnull=True, requires=IS_NOT_EMPTY()),
        Field("policy_key", "string", length=100, notnull=True, unique=True),
        Field("document_categories", "json"),
        Field("retention_years", "integer", default=0),  # 0 = keep forever
        Field("auto_archive_after_days", "integer", default=365),
        Field("description", "text"),
        Field("is_active", "boolean", default=True),
        *_timestamps(),
        migrate=migrate,
    )

    db.define_table(
        "ns_documents",
        Field("title", "string", length=255, notnull=True),
        Field("description", "text"),
        Field("category", "string", length=100, default="other"),
        Field("file_url", "string", length=512),
        Field("file_type", "string", length=100),
        Field("file_size", "integer", default=0),
        Field("uploaded_by", "integer", default=0),
        Field("retention_policy", "string", length=100, default="standard"),
        Field("is_archived", "boolean", default=False),
        Field("archived_at", "datetime"),
        Field("expiration_date", "datetime"),
        Field("is_expired", "boolean", default=False),
        *_timestamps(),
        migrate=migrate,
    )

    # ==========================================
    # Calendar
    # ==========================================

    db.define_table(
        "ns_calendar_events",
        Field("title", "string", length=255, notnull=True),
        Field("description", "text"),
        Field("location", "string", length=255),
        Field("start_datetime", "datetime"),
        Field("end_datetime", "datetime"),
        Field("due_date", "datetime"),
        Field("all_day", "boolean", default=False),
        Field("event_type", "string", length=50, default="event"),
        Field("created_by", "integer", default=0),
        Field("external_id", "string", length=255),
        Field("external_provider", "string", length=50),
        Field("external_url", "string", length=512),
        *_timestamps(),
        migrate=migrate,
    )

    db.define_table(
        "ns_calendar_reminders",
        Field("event_id", "reference ns_calendar_events", ondelete="CASCADE", notnull=True),
        Field("reminder_offset", "integer", default=60),  # minutes before the event
        Field("reminder_type", "string", length=20, default="email", requires=IS_IN_SET(REMINDER_TYPES)),
        Field("recipient_user_id", "integer"),
        Field("recipient_email", "string", length=255),
        Field("recipient_phone", "string", length=50),
        Field("reminder_status", "string", length=20, default="pending", requires=IS_IN_SET(REMINDER_STATUSES)),
        Field("scheduled_for", "datetime", notnull=True),
        Field("sent_at", "datetime"),
        Field("error_message", "text"),
        Field("retry_count", "integer", default=0),
        Field("custom_message", "text"),
        Field("created_at", "datetime", default=utcnow, writable=False),
        migrate=migrate,
    )

    db.define_table(
        "ns_notifications",
        Field("user_id", "integer", notnull=True),
        Field("title", "string", length=255),
        Field("message", "text"),
        Field("link", "string", length=512),
        Field("is_read", "boolean", default=False),
        Field("created_at", "datetime", default=utcnow, writable=False),
        migrate=migrate,
    )

    # ==========================================
    # Beta program
    # ==========================================

    db.define_table(
        "ns_beta_applications",
        Field("organization_name", "string", length=255, notnull=True),
        Field("ein", "string", length=20),
        Field("contact_name", "string", length=255, notnull=True),
        Field("contact_email", "string", length=255, notnull=True),
        Field("contact_phone", "string", length=50),
        Field("state", "string", length=2, notnull=True),
        Field("city", "string", length=100),
        Field("is_501c3", "boolean", default=False),
        Field("has_determination_letter", "boolean", default=False),
        Field("slot_type", "string", length=20, requires=IS_IN_SET(BETA_SLOT_TYPES)),
        Field("status", "string", length=20, default="pending", requires=IS_IN_SET(BETA_STATUSES)),
        Field("license_key", "string", length=64, unique=True),
        Field("application_date", "datetime", default=utcnow),
        Field("approved_date", "datetime"),
        Field("approved_by", "string", length=100),
        Field("license_activated", "boolean", default=False),
        Field("license_activated_date", "datetime"),
        Field("forming_module_completed", "boolean", default=False),
        Field("forming_module_completed_date", "datetime"),
        Field("notes", "text"),
        migrate=migrate,
    )

    db.define_table(
        "ns_beta_activity",
        Field("application_id", "reference ns_beta_applications", ondelete="CASCADE"),
        Field("activity_type", "string", length=50, notnull=True),
        Field("activity_data", "json"),
        Field("occurred_at", "datetime", default=utcnow),
        migrate=migrate,
    )
