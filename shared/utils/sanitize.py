"""Input sanitization for whitelisted module fields.

Every function here is idempotent: sanitizing a sanitized value returns it
unchanged.
"""

# flake8: noqa: E501


import re
from typing import Any, Iterable, List

import nh3

from shared.utils.dates import parse_datetime

# Field names whose string values keep line breaks
MULTILINE_FIELD_PATTERN = re.compile(
    r"(description|notes|content|message|details)", re.IGNORECASE
)

_EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+\-']+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}$")
_INLINE_WS = re.compile(r"[ \t\f\v]+")
_ANY_WS = re.compile(r"\s+")


def _strip_markup(value: str) -> str:
    # Drop every tag; script/style bodies go with them
    return nh3.clean(value, tags=set(), clean_content_tags={"script", "style"})


def sanitize_text(value: Any) -> str:
    """Single-line text: markup removed, whitespace collapsed, trimmed."""
    if value is None:
        return ""
    text = _strip_markup(str(value))
    return _ANY_WS.sub(" ", text).strip()


def sanitize_textarea(value: Any) -> str:
    """Multi-line text: markup removed, line breaks kept."""
    if value is None:
        return ""
    text = _strip_markup(str(value)).replace("\r\n", "\n").replace("\r", "\n")
    lines = [_INLINE_WS.sub(" ", line).strip() for line in text.split("\n")]
    return "\n".join(lines).strip()


def absint(value: Any) -> int:
    """Non-negative integer; anything unparseable becomes 0."""
    if isinstance(value, bool):
        return int(value)
    try:
        return abs(int(value))
    except (TypeError, ValueError):
        pass
    try:
        return abs(int(float(str(value).strip())))
    except (TypeError, ValueError, OverflowError):
        match = re.match(r"\s*-?(\d+)", str(value))
        return int(match.group(1)) if match else 0


def to_float(value: Any) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    if result != result or result in (float("inf"), float("-inf")):
        return 0.0
    return result


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def sanitize_list(values: Any) -> List[str]:
    """List of short strings, e.g. document categories."""
    if values is None:
        return []
    if isinstance(values, str):
        values = values.split(",")
    if not isinstance(values, Iterable):
        values = [values]
    cleaned = (sanitize_text(item) for item in values)
    return [item for item in cleaned if item]


def sanitize_email(value: Any) -> str:
    if value is None:
        return ""
    return _ANY_WS.sub("", _strip_markup(str(value))).lower()


def is_valid_email(value: Any) -> bool:
    return bool(value) and bool(_EMAIL_PATTERN.match(str(value)))


def sanitize_key(value: Any) -> str:
    """Lowercase slug of letters, digits, dashes and underscores."""
    if value is None:
        return ""
    return re.sub(r"[^a-z0-9_\-]", "", str(value).lower())


def sanitize_field(name: str, field_type: str, value: Any) -> Any:
    """Sanitize one value according to its declared module field type."""
    if field_type == "integer":
        return absint(value)
    if field_type == "float":
        return to_float(value)
    if field_type == "boolean":
        return to_bool(value)
    if field_type == "json":
        return sanitize_list(value)
    if field_type == "datetime":
        return parse_datetime(value)
    if value is None:
        return None
    if MULTILINE_FIELD_PATTERN.search(name):
        return sanitize_textarea(value)
    return sanitize_text(value)
