"""
Unit tests for the document retention service.
"""

import datetime

import pytest

from apps.services.retention.service import RetentionService
from shared.errors import NOT_FOUND
from shared.utils.dates import add_years


@pytest.mark.unit
class TestRetentionPolicies:
    """Test policy installation and lookup."""

    @pytest.fixture
    def service(self, db, clock):
        service = RetentionService(db, clock=clock)
        service.install_default_policies()
        return service

    def test_install_default_policies_is_idempotent(self, service):
        assert service.install_default_policies() == 0
        assert len(service.get_active_policies()) == 3

    def test_policy_for_category(self, service):
        assert service.get_policy_for_category("legal").policy_key == "published"
        assert service.get_policy_for_category("grants").policy_key == "work_products"

    def test_unknown_category_falls_back_to_notes(self, service):
        assert service.get_policy_for_category("misc").policy_key == "notes"
        assert service.get_policy_for_category(None).policy_key == "notes"

    def test_inactive_policy_is_ignored(self, db, service):
        db(db.ns_retention_policies.policy_key == "work_products").update(is_active=False)
        db.commit()
        assert service.get_policy_for_category("grants").policy_key == "notes"

    @pytest.mark.parametrize("years", [0, None, -3])
    def test_non_positive_years_never_expire(self, years):
        assert RetentionService.expiration_from(datetime.datetime(2025, 1, 1), years) is None

    def test_expiration_from(self):
        assert RetentionService.expiration_from(datetime.datetime(2025, 1, 1), 7) == datetime.datetime(2032, 1, 1)


@pytest.mark.unit
class TestRetentionDocuments:
    """Test per-document operations."""

    @pytest.fixture
    def service(self, db, clock):
        service = RetentionService(db, clock=clock)
        service.install_default_policies()
        return service

    def _document(self, db, now, days_old, **fields):
        fields.setdefault("title", "Document")
        doc_id = db.ns_documents.insert(created_at=now - datetime.timedelta(days=days_old), **fields)
        db.commit()
        return doc_id

    def test_apply_policy_counts_from_created_at(self, db, service, now):
        doc_id = self._document(db, now, 100, category="grants")

        result, error = service.apply_policy(doc_id)

        assert error is None
        created_at = now - datetime.timedelta(days=100)
        assert result["policy_key"] == "work_products"
        assert db.ns_documents[doc_id].expiration_date == add_years(created_at, 7)

    def test_apply_permanent_policy(self, db, service, now):
        doc_id = self._document(db, now, 10, category="board")

        result, _ = service.apply_policy(doc_id)

        assert result["expiration_date"] is None
        assert db.ns_documents[doc_id].retention_policy == "published"

    def test_apply_explicit_policy(self, db, service, now):
        doc_id = self._document(db, now, 10, category="board")
        result, _ = service.apply_policy(doc_id, "notes")
        assert result["policy_key"] == "notes"

    def test_apply_unknown_policy(self, db, service, now):
        doc_id = self._document(db, now, 10)
        _, error = service.apply_policy(doc_id, "nope")
        assert error.code == NOT_FOUND

    def test_apply_policy_to_missing_document(self, service):
        _, error = service.apply_policy(12345)
        assert error.code == NOT_FOUND

    def test_archive_document_counts_from_archive_time(self, db, service, now):
        doc_id = self._document(db, now, 30, category="committee")

        ok, error = service.archive_document(doc_id)

        assert ok is True and error is None
        row = db.ns_documents[doc_id]
        assert row.is_archived is True
        assert row.archived_at == now
        assert row.expiration_date == add_years(now, 7)
        assert row.retention_policy == "work_products"

    def test_unarchive_and_expire(self, db, service, now):
        doc_id = self._document(db, now, 30)
        service.archive_document(doc_id)

        service.unarchive_document(doc_id)
        row = db.ns_documents[doc_id]
        assert row.is_archived is False
        assert row.archived_at is None

        service.expire_document(doc_id)
        assert db.ns_documents[doc_id].is_expired is True

    def test_operations_on_missing_document(self, service):
        for operation in (service.archive_document, service.unarchive_document, service.expire_document):
            _, error = operation(999)
            assert error.code == NOT_FOUND


@pytest.mark.unit
class TestRetentionPasses:
    """Test the auto-archival and expiration passes."""

    @pytest.fixture
    def service(self, db, clock):
        service = RetentionService(db, clock=clock)
        service.install_default_policies()
        return service

    def _document(self, db, now, days_old, **fields):
        fields.setdefault("title", "Document")
        doc_id = db.ns_documents.insert(created_at=now - datetime.timedelta(days=days_old), **fields)
        db.commit()
        return doc_id

    def test_document_past_archive_window_is_archived_with_expiration(self, db, service, now):
        doc_id = self._document(db, now, 400, category="grants")

        result = service.process_auto_archival()

        assert result == {"archived_count": 1, "errors": []}
        row = db.ns_documents[doc_id]
        assert row.is_archived is True
        assert row.archived_at == now
        assert row.retention_policy == "work_products"
        assert row.expiration_date == add_years(row.archived_at, 7)

    def test_permanent_policy_archives_without_expiration(self, db, service, now):
        doc_id = self._document(db, now, 400, category="board")

        service.process_auto_archival()

        row = db.ns_documents[doc_id]
        assert row.is_archived is True
        assert row.expiration_date is None

    def test_young_documents_are_left_alone(self, db, service, now):
        doc_id = self._document(db, now, 100, category="grants")

        assert service.process_auto_archival()["archived_count"] == 0
        assert db.ns_documents[doc_id].is_archived is False

    def test_uncovered_category_uses_notes_window(self, db, service, now):
        misc = self._document(db, now, 200, category="misc")
        board = self._document(db, now, 200, category="board")

        assert service.process_auto_archival()["archived_count"] == 1
        assert db.ns_documents[misc].retention_policy == "notes"
        assert db.ns_documents[misc].expiration_date == add_years(now, 3)
        assert db.ns_documents[board].is_archived is False

    def test_assigned_policy_wins_over_category(self, db, service, now):
        doc_id = self._document(db, now, 370, category="board", retention_policy="work_products")

        service.process_auto_archival()

        row = db.ns_documents[doc_id]
        assert row.retention_policy == "work_products"
        assert row.expiration_date == add_years(now, 7)

    def test_second_run_archives_nothing(self, db, service, now):
        self._document(db, now, 400, category="grants")
        service.process_auto_archival()
        assert service.process_auto_archival()["archived_count"] == 0

    def test_zero_day_window_is_skipped(self, db, service, now):
        db(db.ns_retention_policies.policy_key == "work_products").update(auto_archive_after_days=0)
        db.commit()
        self._document(db, now, 4000, category="grants")

        assert service.process_auto_archival()["archived_count"] == 0

    def test_process_expiration(self, db, service, now):
        due = self._document(db, now, 10, expiration_date=now - datetime.timedelta(days=1))
        later = self._document(db, now, 10, expiration_date=now + datetime.timedelta(days=1))
        self._document(db, now, 10)

        assert service.process_expiration() == {"expired_count": 1, "errors": []}
        assert db.ns_documents[due].is_expired is True
        assert db.ns_documents[later].is_expired is False
        assert service.process_expiration()["expired_count"] == 0

    def test_eligibility_reports(self, db, service, now):
        old = self._document(db, now, 400, category="grants", title="Old grant")
        self._document(db, now, 5, category="grants")
        expiring = self._document(db, now, 5, expiration_date=now)

        eligible = service.get_eligible_for_archival()
        assert [e["document_id"] for e in eligible] == [old]
        assert eligible[0]["policy_key"] == "work_products"
        assert [e["document_id"] for e in service.get_eligible_for_expiration()] == [expiring]

    def test_bulk_apply_policies(self, db, service, now):
        first = self._document(db, now, 5, category="grants")
        second = self._document(db, now, 5, category="legal")
        self._document(db, now, 5, category="grants", retention_policy="notes")

        result = service.bulk_apply_policies()

        assert result == {"updated_count": 2, "errors": []}
        assert db.ns_documents[first].retention_policy == "work_products"
        assert db.ns_documents[second].retention_policy == "published"

    def test_statistics(self, db, service, now):
        self._document(db, now, 400, category="grants")
        self._document(db, now, 5, category="grants")
        service.process_auto_archival()

        stats = service.get_statistics()

        assert stats["total"] == 2
        assert stats["archived"] == 1
        assert stats["active"] == 1
        assert stats["by_policy"] == {"work_products": 1, "standard": 1}
