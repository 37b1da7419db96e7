"""
Unit tests for the generic CRUD module base.

Tests run the concrete modules against an in-memory database so that
sanitization, caching and pagination are exercised end to end.
"""

from unittest.mock import MagicMock

import pytest

from apps.modules import (
    CalendarEventsModule,
    DocumentsModule,
    ModuleBase,
    QueryOptimizer,
    RetentionPoliciesModule,
)
from shared.cache import CacheManager, MemoryCacheBackend
from shared.errors import DB_INSERT_ERROR, NO_DATA, NOT_FOUND, PRO_REQUIRED


class ProDocumentsModule(DocumentsModule):
    requires_pro = True


@pytest.mark.unit
class TestModuleCrud:
    """Test create/get/update/delete through DocumentsModule."""

    @pytest.fixture
    def documents(self, db, cache):
        return DocumentsModule(db, cache)

    def test_create_then_get_returns_sanitized_input(self, documents):
        doc_id, error = documents.create(
            {
                "title": "  <b>Bylaws</b>  2025 ",
                "description": "Adopted <i>unanimously</i>\nSecond line",
                "category": "board",
                "file_size": "2048",
                "not_a_field": "dropped",
            }
        )
        assert error is None

        record, error = documents.get(doc_id)
        assert error is None
        assert record["id"] == doc_id
        assert record["title"] == "Bylaws 2025"
        assert record["description"] == "Adopted unanimously\nSecond line"
        assert record["category"] == "board"
        assert record["file_size"] == 2048
        assert record["retention_policy"] == "standard"
        assert record["is_archived"] is False
        assert "not_a_field" not in record

    def test_defaults_fill_missing_fields(self, documents):
        doc_id, _ = documents.create({"title": "Scratch"})
        record, _ = documents.get(doc_id)
        assert record["category"] == "other"

    def test_stored_values_are_stable_under_resanitization(self, documents):
        doc_id, _ = documents.create({"title": "<p>Budget</p>   draft", "description": "a  b\n c"})
        first, _ = documents.get(doc_id)

        _, error = documents.update(doc_id, {"title": first["title"], "description": first["description"]})
        assert error is None
        second, _ = documents.get(doc_id)

        assert second["title"] == first["title"]
        assert second["description"] == first["description"]

    def test_update_without_whitelisted_keys_fails_with_no_data(self, documents):
        doc_id, _ = documents.create({"title": "Minutes"})
        before, _ = documents.get(doc_id)

        result, error = documents.update(doc_id, {"is_archived": True, "unknown": 1})

        assert result is None
        assert error.code == NO_DATA
        after, _ = documents.get(doc_id)
        assert after == before

    def test_get_after_update_is_not_stale(self, documents):
        doc_id, _ = documents.create({"title": "Old title"})
        cached, _ = documents.get(doc_id)
        assert cached["title"] == "Old title"

        ok, error = documents.update(doc_id, {"title": "New title"})

        assert ok is True and error is None
        fresh, _ = documents.get(doc_id)
        assert fresh["title"] == "New title"

    def test_get_missing_record(self, documents):
        record, error = documents.get(999)
        assert record is None
        assert error.code == NOT_FOUND
        assert error.message == "Document record not found."

    def test_update_missing_record(self, documents):
        _, error = documents.update(999, {"title": "x"})
        assert error.code == NOT_FOUND

    def test_delete(self, documents):
        doc_id, _ = documents.create({"title": "Temp"})
        documents.get(doc_id)

        ok, error = documents.delete(doc_id)
        assert ok is True and error is None

        _, error = documents.get(doc_id)
        assert error.code == NOT_FOUND
        assert documents.exists(doc_id) is False

        _, error = documents.delete(doc_id)
        assert error.code == NOT_FOUND

    def test_insert_failure_is_reported(self, mock_pydal_db, cache):
        mock_pydal_db.__getitem__.return_value.insert.side_effect = RuntimeError("disk full")
        documents = DocumentsModule(mock_pydal_db, cache)

        doc_id, error = documents.create({"title": "Bylaws"})

        assert doc_id is None
        assert error.code == DB_INSERT_ERROR
        mock_pydal_db.rollback.assert_called_once()

    def test_datetime_fields_round_trip_as_iso(self, db, cache):
        events = CalendarEventsModule(db, cache)
        event_id, _ = events.create({"title": "Board meeting", "start_datetime": "2025-07-01T18:30:00Z"})

        record, _ = events.get(event_id)

        assert record["start_datetime"] == "2025-07-01T18:30:00"
        assert record["event_type"] == "event"


@pytest.mark.unit
class TestModuleListing:
    """Test get_all, count and pagination."""

    @pytest.fixture
    def documents(self, db, cache):
        module = DocumentsModule(db, cache)
        for index in range(5):
            module.create({"title": f"Doc {index + 1}", "category": "board" if index % 2 == 0 else "grants"})
        return module

    def test_default_order_is_newest_first(self, documents):
        records, error = documents.get_all()
        assert error is None
        assert [r["title"] for r in records] == ["Doc 5", "Doc 4", "Doc 3", "Doc 2", "Doc 1"]

    def test_pagination(self, documents):
        records, _ = documents.get_all({"page": 2, "per_page": 2, "orderby": "id", "order": "asc"})
        assert [r["title"] for r in records] == ["Doc 3", "Doc 4"]

    def test_unknown_orderby_falls_back_to_id(self, documents):
        records, error = documents.get_all({"orderby": "1; DROP TABLE", "order": "ASC"})
        assert error is None
        assert records[0]["title"] == "Doc 1"

    def test_filter_by_category(self, documents):
        records, _ = documents.get_all({"category": "board"})
        assert len(records) == 3
        assert documents.count({"category": "grants"}) == (2, None)

    def test_limit_overrides_per_page(self, documents):
        records, _ = documents.get_all({"limit": 2, "per_page": 50})
        assert len(records) == 2

    def test_page_size_clamped_to_module_maximum(self, db, cache):
        module = DocumentsModule(db, cache, optimizer=QueryOptimizer(default_max_records=3))
        for index in range(5):
            module.create({"title": f"Doc {index}"})

        records, _ = module.get_all({"per_page": 100})

        assert len(records) == 3

    def test_list_results_are_cached_until_a_write(self, db, documents):
        first, _ = documents.get_all({"category": "board"})

        db.ns_documents.insert(title="Direct insert", category="board")
        db.commit()
        cached, _ = documents.get_all({"category": "board"})
        assert len(cached) == len(first)

        documents.create({"title": "Via module", "category": "board"})
        fresh, _ = documents.get_all({"category": "board"})
        assert len(fresh) == len(first) + 2

    def test_pagination_meta(self, documents):
        meta = documents.get_pagination_meta(5, {"per_page": 2, "page": 1})
        assert meta == {"total": 5, "per_page": 2, "current_page": 1, "total_pages": 3, "has_more": True}


@pytest.mark.unit
class TestProGate:
    """Test license gating of Pro modules."""

    def test_pro_module_refuses_without_license(self, db, cache):
        gate = MagicMock()
        gate.is_pro_active.return_value = False
        module = ProDocumentsModule(db, cache, license_gate=gate)

        result, error = module.create({"title": "x"})

        assert result is None
        assert error.code == PRO_REQUIRED
        assert db(db.ns_documents).count() == 0

    def test_pro_module_without_gate_refuses(self, db, cache):
        _, error = ProDocumentsModule(db, cache).get_all()
        assert error.code == PRO_REQUIRED

    def test_pro_module_with_active_license(self, db, cache):
        gate = MagicMock()
        gate.is_pro_active.return_value = True
        module = ProDocumentsModule(db, cache, license_gate=gate)

        doc_id, error = module.create({"title": "x"})

        assert error is None
        assert module.exists(doc_id)


@pytest.mark.unit
class TestRetentionPoliciesModule:
    def test_policy_key_is_slugged_and_categories_cleaned(self, db, cache):
        policies = RetentionPoliciesModule(db, cache)
        policy_id, error = policies.create(
            {"policy_name": "Board Docs", "policy_key": "Board Docs!", "document_categories": "board, legal"}
        )
        assert error is None

        record, _ = policies.get(policy_id)
        assert record["policy_key"] == "boarddocs"
        assert record["document_categories"] == ["board", "legal"]
        assert record["is_active"] is True
        assert record["auto_archive_after_days"] == 365


@pytest.mark.unit
def test_module_requires_table_name(db, cache):
    with pytest.raises(ValueError):
        ModuleBase(db, cache)


@pytest.mark.unit
def test_slug_strips_table_prefix(db):
    module = DocumentsModule(db, CacheManager(MemoryCacheBackend()))
    assert module.slug == "documents"
