"""
Unit tests for worker settings validation.
"""

import pytest
from pydantic import ValidationError

from apps.worker.config.settings import Settings


@pytest.mark.unit
class TestSettings:
    """Test defaults and field validators."""

    def test_defaults(self, monkeypatch):
        for name in ("RETENTION_CRON", "TIMEZONE", "CALENDAR_SYNC_FREQUENCY", "REMINDER_INTERVAL"):
            monkeypatch.delenv(name, raising=False)

        config = Settings(_env_file=None)

        assert config.retention_cron == "0 2 * * *"
        assert config.timezone == "UTC"
        assert config.calendar_sync_interval == 3600
        assert config.reminder_interval == 300
        assert config.health_check_port == 8000

    @pytest.mark.parametrize("frequency,seconds", [("hourly", 3600), ("TwiceDaily", 43200), ("daily", 86400)])
    def test_sync_frequency(self, frequency, seconds):
        config = Settings(_env_file=None, calendar_sync_frequency=frequency)
        assert config.calendar_sync_interval == seconds

    def test_invalid_sync_frequency(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, calendar_sync_frequency="weekly")

    def test_invalid_cron(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, retention_cron="every night")

    def test_invalid_timezone(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, timezone="Mars/Olympus")

    def test_valid_timezone(self):
        assert Settings(_env_file=None, timezone="US/Eastern").timezone == "US/Eastern"

    def test_log_format(self):
        assert Settings(_env_file=None, log_format="TEXT").log_format == "text"
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_format="xml")

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("RETENTION_CRON", "30 3 * * 0")
        monkeypatch.setenv("REMINDER_INTERVAL", "60")

        config = Settings(_env_file=None)

        assert config.retention_cron == "30 3 * * 0"
        assert config.reminder_interval == 60
