"""
Unit tests for beta program admission control.
"""

import re

import pytest

from apps.services.beta.service import BetaApplicationService, STATES_TERRITORIES
from shared.errors import (
    DUPLICATE_EMAIL,
    INVALID_EMAIL,
    INVALID_LICENSE,
    INVALID_STATE,
    INVALID_TYPE,
    MISSING_FIELD,
    NOT_APPROVED,
    NOT_FOUND,
)

LICENSE_PATTERN = re.compile(r"^BETA-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}$")


def application(index=1, **overrides):
    data = {
        "organization_name": f"Helping Hands {index}",
        "contact_name": "Pat Lee",
        "contact_email": f"contact{index}@example.org",
        "state": "or",
        "is_501c3": True,
    }
    data.update(overrides)
    return data


@pytest.mark.unit
class TestBetaSubmission:
    """Test validation and slot allocation."""

    @pytest.fixture
    def service(self, db, options, clock):
        options.set("beta_program_settings", {"max_501c3_slots": 3, "max_prenp_per_state": 2})
        return BetaApplicationService(db, options, clock=clock)

    @pytest.mark.parametrize("field", ["organization_name", "contact_name", "contact_email", "state"])
    def test_missing_required_field(self, service, field):
        _, error = service.submit_application(application(**{field: ""}))
        assert error.code == MISSING_FIELD
        assert error.data == {"field": field}

    def test_invalid_state(self, service):
        _, error = service.submit_application(application(state="ZZ"))
        assert error.code == INVALID_STATE

    def test_territories_and_dc_are_accepted(self):
        assert {"DC", "PR", "VI", "GU", "AS", "MP"} <= STATES_TERRITORIES
        assert len(STATES_TERRITORIES) == 56

    def test_invalid_email(self, service):
        _, error = service.submit_application(application(contact_email="nope"))
        assert error.code == INVALID_EMAIL

    def test_padded_email_is_accepted(self, db, service):
        result, error = service.submit_application(application(contact_email="  Contact1@Example.org \n"))

        assert error is None
        assert db.ns_beta_applications[result.application_id].contact_email == "contact1@example.org"

    def test_duplicate_email(self, service):
        service.submit_application(application(1))
        _, error = service.submit_application(application(2, contact_email="Contact1@example.org"))
        assert error.code == DUPLICATE_EMAIL

    def test_approved_application_gets_license(self, db, service, now):
        result, error = service.submit_application(application())

        assert error is None
        assert result.success is True
        assert result.status == "approved"
        assert LICENSE_PATTERN.match(result.license_key)
        row = db.ns_beta_applications[result.application_id]
        assert row.state == "OR"
        assert row.slot_type == "501c3"
        assert row.approved_by == "auto"
        assert row.approved_date == now

    def test_nth_plus_one_501c3_is_waitlisted(self, service):
        statuses = [service.submit_application(application(i))[0].status for i in range(4)]
        assert statuses == ["approved", "approved", "approved", "waitlist"]

    def test_waitlisted_application_has_no_license(self, service):
        for i in range(3):
            service.submit_application(application(i))
        result, _ = service.submit_application(application(9))
        assert result.license_key is None
        assert "waitlist" in result.message

    def test_pre_nonprofit_slots_are_per_state(self, service):
        results = [
            service.submit_application(application(i, is_501c3=False, state="OR"))[0].status
            for i in range(3)
        ]
        other_state, _ = service.submit_application(application(10, is_501c3=False, state="WA"))

        assert results == ["approved", "approved", "waitlist"]
        assert other_state.status == "approved"

    def test_default_program_limits(self, db, options, clock):
        service = BetaApplicationService(db, options, clock=clock)
        options.delete("beta_program_settings")
        assert service.settings == {"max_501c3_slots": 500, "max_prenp_per_state": 10}

    def test_submission_is_logged(self, db, service):
        result, _ = service.submit_application(application())
        activity = db(db.ns_beta_activity.application_id == result.application_id).select().first()
        assert activity.activity_type == "application_submitted"
        assert activity.activity_data == {"status": "approved", "slot_type": "501c3"}


@pytest.mark.unit
class TestBetaLicenses:
    """Test license activation, lookups and waitlist promotion."""

    @pytest.fixture
    def service(self, db, options, clock):
        options.set("beta_program_settings", {"max_501c3_slots": 1, "max_prenp_per_state": 1})
        return BetaApplicationService(db, options, clock=clock)

    def test_activate_license(self, db, service):
        result, _ = service.submit_application(application())

        ok, error = service.activate_license(result.license_key.lower(), {"site_url": "https://hh.example.org"})

        assert ok is True and error is None
        assert db.ns_beta_applications[result.application_id].license_activated is True

    def test_activate_unknown_license(self, service):
        _, error = service.activate_license("BETA-0000-0000-0000-0000")
        assert error.code == INVALID_LICENSE

    def test_activate_requires_approval(self, db, service):
        result, _ = service.submit_application(application())
        db(db.ns_beta_applications.id == result.application_id).update(status="rejected")

        _, error = service.activate_license(result.license_key)

        assert error.code == NOT_APPROVED

    def test_get_application_by_license(self, service):
        result, _ = service.submit_application(application())

        record, error = service.get_application_by_license(result.license_key)

        assert error is None
        assert record["id"] == result.application_id
        assert record["organization_name"] == "Helping Hands 1"

    def test_get_missing_application(self, service):
        _, error = service.get_application(404)
        assert error.code == NOT_FOUND

    def test_mark_forming_module_completed(self, db, service):
        result, _ = service.submit_application(application(is_501c3=False))

        ok, _ = service.mark_forming_module_completed(result.application_id)

        row = db.ns_beta_applications[result.application_id]
        assert ok is True
        assert row.forming_module_completed is True
        assert row.forming_module_completed_date is not None

    def test_waitlist_is_not_promoted_automatically(self, db, service):
        first, _ = service.submit_application(application(1))
        waitlisted, _ = service.submit_application(application(2))
        db(db.ns_beta_applications.id == first.application_id).update(status="rejected")
        db.commit()

        assert db.ns_beta_applications[waitlisted.application_id].status == "waitlist"

    def test_promote_waitlist_fills_freed_slots_oldest_first(self, db, service, clock):
        first, _ = service.submit_application(application(1))
        clock.advance(minutes=1)
        second, _ = service.submit_application(application(2))
        clock.advance(minutes=1)
        third, _ = service.submit_application(application(3))
        db(db.ns_beta_applications.id == first.application_id).update(status="rejected")
        db.commit()

        promoted, error = service.promote_waitlist("501c3")

        assert error is None
        assert promoted == [second.application_id]
        row = db.ns_beta_applications[second.application_id]
        assert row.status == "approved"
        assert row.license_key.startswith("BETA-")
        assert db.ns_beta_applications[third.application_id].status == "waitlist"

    def test_promote_waitlist_per_state(self, db, service):
        first, _ = service.submit_application(application(1, is_501c3=False, state="OR"))
        waiting, _ = service.submit_application(application(2, is_501c3=False, state="OR"))
        db(db.ns_beta_applications.id == first.application_id).delete()
        db.commit()

        promoted, _ = service.promote_waitlist("pre_nonprofit", state="or")

        assert promoted == [waiting.application_id]

    def test_promote_waitlist_rejects_unknown_slot_type(self, service):
        _, error = service.promote_waitlist("gold")
        assert error.code == INVALID_TYPE

    def test_statistics(self, service):
        service.submit_application(application(1))
        service.submit_application(application(2))
        service.submit_application(application(3, is_501c3=False, state="TX"))

        stats = service.get_statistics()

        assert stats["total"] == 3
        assert stats["501c3_total"] == 2
        assert stats["501c3_approved"] == 1
        assert stats["prenp_approved"] == 1
        assert stats["by_status"] == {"approved": 2, "waitlist": 1}
        assert stats["by_state"] == [{"state": "TX", "slot_type": "pre_nonprofit", "count": 1}]
        assert stats["activated"] == 0


@pytest.mark.unit
def test_license_key_format():
    assert LICENSE_PATTERN.match(BetaApplicationService.generate_license_key())
