"""Configuration settings for the NonprofitSuite worker."""

# flake8: noqa: E501


import datetime
from typing import Optional

import pytz
from croniter import croniter
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

SYNC_FREQUENCIES = {
    "hourly": 3600,
    "twicedaily": 43200,
    "daily": 86400,
}


class Settings(BaseSettings):
    """Main configuration for the worker service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
    )

    # Database
    database_url: Optional[str] = Field(
        default=None,
        description="Primary database URL (falls back to DB_* variables)",
    )
    database_read_url: Optional[str] = Field(
        default=None,
        description="Read replica URL (optional)",
    )
    db_pool_size: int = Field(default=10, description="PyDAL connection pool size")
    db_migrate: bool = Field(
        default=False,
        description="Let PyDAL create/alter tables on startup",
    )

    # Cache
    cache_backend: str = Field(
        default="memory",
        description="Cache backend (memory or redis)",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis URL used when cache_backend is redis",
    )
    cache_prefix: str = Field(default="ns_", description="Cache key prefix")
    cache_default_ttl: int = Field(
        default=3600,
        description="Default cache TTL in seconds",
    )

    # Query limits
    max_query_records: int = Field(
        default=1000,
        description="Default cap on records returned by one query",
    )
    max_per_page: int = Field(default=200, description="Largest accepted page size")
    slow_query_threshold: float = Field(
        default=1.0,
        description="Seconds after which a query is logged as slow",
    )

    # Jobs
    timezone: str = Field(default="UTC", description="Timezone for cron schedules")
    retention_enabled: bool = Field(default=True, description="Enable document retention job")
    retention_cron: str = Field(
        default="0 2 * * *",
        description="Crontab for the document retention job (default: 02:00 daily)",
    )
    calendar_sync_enabled: bool = Field(default=True, description="Enable calendar sync job")
    calendar_sync_frequency: str = Field(
        default="hourly",
        description="Calendar sync cadence (hourly, twicedaily, daily)",
    )
    reminders_enabled: bool = Field(default=True, description="Enable reminder dispatch job")
    reminder_interval: int = Field(
        default=300,
        description="Reminder dispatch interval in seconds (default: 5 minutes)",
    )
    reminder_batch_size: int = Field(
        default=100,
        description="Maximum reminders sent per dispatch run",
    )
    job_lock_timeout: int = Field(
        default=3600,
        description="Seconds after which a job lock is considered stale",
    )
    reminder_lock_timeout: int = Field(
        default=600,
        description="Stale-lock timeout for reminder dispatch, which runs every few minutes",
    )
    run_jobs_on_startup: bool = Field(
        default=False,
        description="Run every enabled job once when the worker starts",
    )

    # Email
    email_backend: str = Field(default="console", description="Email backend (console or smtp)")
    email_from_address: str = Field(default="noreply@localhost", description="Sender address")
    email_from_name: str = Field(default="NonprofitSuite", description="Sender name")
    smtp_host: Optional[str] = Field(default=None, description="SMTP server hostname")
    smtp_port: int = Field(default=587, description="SMTP server port")
    smtp_username: Optional[str] = Field(default=None, description="SMTP username")
    smtp_password: Optional[str] = Field(default=None, description="SMTP password")
    smtp_use_tls: bool = Field(default=True, description="Use STARTTLS")

    # SMS (Twilio)
    sms_enabled: bool = Field(default=False, description="Enable SMS reminders")
    twilio_account_sid: Optional[str] = Field(default=None, description="Twilio account SID")
    twilio_auth_token: Optional[str] = Field(default=None, description="Twilio auth token")
    twilio_from_number: Optional[str] = Field(default=None, description="Twilio sender number")

    # Licensing
    dev_mode: bool = Field(
        default=False,
        description="Treat every Pro feature as licensed (development only)",
    )

    # Syslog Configuration
    syslog_enabled: bool = Field(
        default=False,
        description="Enable UDP syslog logging",
    )
    syslog_host: str = Field(
        default="localhost",
        description="Syslog server hostname or IP",
    )
    syslog_port: int = Field(
        default=514,
        description="Syslog server UDP port",
    )

    # Health Check & Monitoring
    health_check_port: int = Field(
        default=8000,
        description="Port for health check HTTP server",
    )
    metrics_enabled: bool = Field(
        default=True,
        description="Enable Prometheus metrics",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    log_format: str = Field(
        default="json",
        description="Log format (json or text)",
    )

    @field_validator("retention_cron")
    @classmethod
    def validate_cron(cls, v):
        """Reject crontab expressions croniter cannot schedule."""
        try:
            croniter(v, datetime.datetime.now(datetime.timezone.utc)).get_next(datetime.datetime)
        except Exception as e:
            raise ValueError(f"Invalid cron expression: {e}") from e
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        try:
            pytz.timezone(v)
        except pytz.exceptions.UnknownTimeZoneError as e:
            raise ValueError(
                f"Invalid timezone: {v}. Use standard timezone names (e.g., US/Eastern, Europe/London)"
            ) from e
        return v

    @field_validator("calendar_sync_frequency")
    @classmethod
    def validate_sync_frequency(cls, v):
        v = v.lower()
        if v not in SYNC_FREQUENCIES:
            raise ValueError(f"calendar_sync_frequency must be one of {', '.join(SYNC_FREQUENCIES)}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        v = v.lower()
        if v not in ("json", "text"):
            raise ValueError("log_format must be json or text")
        return v

    @property
    def calendar_sync_interval(self) -> int:
        """Calendar sync cadence in seconds."""
        return SYNC_FREQUENCIES[self.calendar_sync_frequency]


# Global settings instance
settings = Settings()
