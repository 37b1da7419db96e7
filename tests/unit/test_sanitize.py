"""
Unit tests for field sanitization and date helpers.
"""

import datetime

import pytest

from shared.utils.dates import add_years, format_time_until, isoformat, parse_datetime
from shared.utils.sanitize import (
    absint,
    is_valid_email,
    sanitize_email,
    sanitize_field,
    sanitize_key,
    sanitize_list,
    sanitize_text,
    sanitize_textarea,
    to_bool,
    to_float,
)


@pytest.mark.unit
class TestSanitizeText:
    """Test text sanitizers."""

    def test_strips_tags_and_collapses_whitespace(self):
        assert sanitize_text("  <b>Annual</b>\n  Report ") == "Annual Report"

    def test_drops_script_content(self):
        assert sanitize_text("<script>alert(1)</script>Minutes") == "Minutes"

    def test_none_becomes_empty_string(self):
        assert sanitize_text(None) == ""

    def test_textarea_keeps_line_breaks(self):
        value = "First   line\r\nSecond <i>line</i>\n"
        assert sanitize_textarea(value) == "First line\nSecond line"

    @pytest.mark.parametrize(
        "value",
        [
            "  Board <em>meeting</em>  notes ",
            "<p>Quarterly</p><p>review</p>",
            "plain",
        ],
    )
    def test_sanitize_text_is_idempotent(self, value):
        once = sanitize_text(value)
        assert sanitize_text(once) == once

    def test_sanitize_textarea_is_idempotent(self):
        once = sanitize_textarea("<div>Agenda</div>\n\n  1. Budget  \n2. Vote")
        assert sanitize_textarea(once) == once


@pytest.mark.unit
class TestScalarSanitizers:
    """Test number, boolean, list, email and key sanitizers."""

    @pytest.mark.parametrize(
        "value,expected",
        [(5, 5), ("-7", 7), ("12.9", 12), ("abc", 0), (None, 0), (True, 1), ("42px", 42)],
    )
    def test_absint(self, value, expected):
        assert absint(value) == expected

    def test_to_float_rejects_nan_and_garbage(self):
        assert to_float("3.5") == 3.5
        assert to_float("nan") == 0.0
        assert to_float("x") == 0.0

    @pytest.mark.parametrize("value", ["1", "true", "Yes", "on", 1, True])
    def test_to_bool_truthy(self, value):
        assert to_bool(value) is True

    @pytest.mark.parametrize("value", ["0", "false", "no", "", 0, None])
    def test_to_bool_falsy(self, value):
        assert to_bool(value) is False

    def test_sanitize_list_from_csv(self):
        assert sanitize_list("board, financial,,legal") == ["board", "financial", "legal"]

    def test_sanitize_email(self):
        assert sanitize_email(" Jane.Doe@Example.ORG ") == "jane.doe@example.org"

    def test_is_valid_email(self):
        assert is_valid_email("treasurer@nonprofit.org")
        assert not is_valid_email("not-an-email")
        assert not is_valid_email("")

    def test_sanitize_key(self):
        assert sanitize_key("Work Products!") == "workproducts"
        assert sanitize_key("work_products") == "work_products"


@pytest.mark.unit
class TestSanitizeField:
    """Test type-directed field sanitization."""

    def test_integer_field(self):
        assert sanitize_field("file_size", "integer", "2048") == 2048

    def test_boolean_field(self):
        assert sanitize_field("is_active", "boolean", "yes") is True

    def test_json_field(self):
        assert sanitize_field("document_categories", "json", ["board", "<b>legal</b>"]) == ["board", "legal"]

    def test_datetime_field(self):
        assert sanitize_field("start_datetime", "datetime", "2025-03-01T10:00:00Z") == datetime.datetime(2025, 3, 1, 10, 0)

    def test_multiline_string_field_keeps_newlines(self):
        assert sanitize_field("description", "string", "a\nb") == "a\nb"

    def test_single_line_string_field(self):
        assert sanitize_field("title", "string", "a\nb") == "a b"

    def test_none_string_stays_none(self):
        assert sanitize_field("file_url", "string", None) is None


@pytest.mark.unit
class TestDates:
    """Test date helpers."""

    def test_add_years_handles_leap_day(self):
        assert add_years(datetime.datetime(2024, 2, 29, 8, 0), 1) == datetime.datetime(2025, 2, 28, 8, 0)

    def test_add_years(self):
        assert add_years(datetime.datetime(2020, 5, 1), 7) == datetime.datetime(2027, 5, 1)

    def test_parse_datetime_variants(self):
        assert parse_datetime("2025-01-02") == datetime.datetime(2025, 1, 2)
        assert parse_datetime(datetime.date(2025, 1, 2)) == datetime.datetime(2025, 1, 2)
        assert parse_datetime("2025-01-02T05:00:00+02:00") == datetime.datetime(2025, 1, 2, 3, 0)
        assert parse_datetime("garbage") is None
        assert parse_datetime("") is None

    def test_isoformat_passes_non_dates_through(self):
        assert isoformat(datetime.datetime(2025, 1, 2, 3, 4, 5)) == "2025-01-02T03:04:05"
        assert isoformat(5) == 5

    @pytest.mark.parametrize(
        "minutes,expected",
        [(1, "1 minute"), (30, "30 minutes"), (60, "1 hour"), (1440, "1 day"), (10080, "1 week"), (20160, "2 weeks")],
    )
    def test_format_time_until(self, minutes, expected):
        assert format_time_until(minutes) == expected
