"""
Unit tests for the options store and the local license gate.
"""

import datetime

import pytest

from shared.licensing import LicenseGate


@pytest.mark.unit
class TestOptionStore:
    def test_missing_option_returns_default(self, options):
        assert options.get("nope") is None
        assert options.get("nope", 5) == 5

    def test_set_overwrites(self, options):
        options.set("calendar_settings", {"provider": "google"})
        options.set("calendar_settings", {"provider": "outlook"})

        assert options.get("calendar_settings") == {"provider": "outlook"}

    def test_get_dict_merges_defaults(self, options):
        options.set("beta_program_settings", {"max_501c3_slots": 5})

        merged = options.get_dict("beta_program_settings", {"max_501c3_slots": 500, "max_prenp_per_state": 10})

        assert merged == {"max_501c3_slots": 5, "max_prenp_per_state": 10}

    def test_get_dict_ignores_non_dict_values(self, options):
        options.set("calendar_settings", "garbage")
        assert options.get_dict("calendar_settings", {"provider": "builtin"}) == {"provider": "builtin"}

    def test_delete(self, options):
        options.set("temp", 1)
        assert options.delete("temp") is True
        assert options.delete("temp") is False


@pytest.mark.unit
class TestLicenseGate:
    """Test Pro tier checks."""

    def test_inactive_by_default(self, options, clock):
        gate = LicenseGate(options, clock=clock)
        assert gate.get_status()["status"] == "inactive"
        assert gate.is_pro_active() is False

    def test_dev_mode_unlocks_pro(self, options, clock):
        assert LicenseGate(options, dev_mode=True, clock=clock).is_pro_active() is True

    def test_active_license(self, options, clock, now):
        gate = LicenseGate(options, clock=clock)

        gate.record_status("active", expires_at=now + datetime.timedelta(days=365))

        assert gate.is_pro_active() is True
        assert gate.get_status()["checked_at"] == now.isoformat()

    def test_expired_license_has_grace_period(self, options, clock, now):
        gate = LicenseGate(options, clock=clock)
        gate.record_status("expired", expires_at=now - datetime.timedelta(days=10))

        assert gate.is_in_grace_period() is True
        assert gate.is_pro_active() is True

        clock.advance(days=21)

        assert gate.is_in_grace_period() is False
        assert gate.is_pro_active() is False

    def test_expired_without_date_has_no_grace(self, options, clock):
        gate = LicenseGate(options, clock=clock)
        gate.record_status("expired")
        assert gate.is_pro_active() is False

    def test_invalid_license(self, options, clock):
        gate = LicenseGate(options, clock=clock)
        gate.record_status("invalid")
        assert gate.is_pro_active() is False
