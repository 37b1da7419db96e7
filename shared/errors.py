"""Typed failure values for NonprofitSuite operations.

Expected failures (missing records, validation problems, license gates) are
returned, not raised. Operations return a ``(value, error)`` pair:

    record, error = documents.get(doc_id)
    if error:
        return error
"""

# flake8: noqa: E501


from dataclasses import dataclass, field
from typing import Any, Dict, Optional

# CRUD
PRO_REQUIRED = "pro_required"
NOT_FOUND = "not_found"
NO_DATA = "no_data"
DB_INSERT_ERROR = "db_insert_error"
DB_UPDATE_ERROR = "db_update_error"
DB_DELETE_ERROR = "db_delete_error"
DB_QUERY_ERROR = "db_query_error"

# Validation
MISSING_FIELD = "missing_field"
INVALID_EMAIL = "invalid_email"
INVALID_STATE = "invalid_state"
DUPLICATE_EMAIL = "duplicate_email"
INVALID_LICENSE = "invalid_license"
NOT_APPROVED = "not_approved"

# Reminders
EVENT_NOT_FOUND = "event_not_found"
NO_RECIPIENT = "no_recipient"
NO_DATE = "no_date"
INVALID_TYPE = "invalid_type"
SEND_FAILED = "send_failed"
EMAIL_FAILED = "email_failed"

# Calendar
UNKNOWN_PROVIDER = "unknown_provider"
NOT_CONNECTED = "not_connected"
NOT_SUPPORTED = "not_supported"
API_ERROR = "api_error"


@dataclass(slots=True, frozen=True)
class ModuleError:
    """Immutable tagged failure with a machine code and a readable message."""

    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result = {"code": self.code, "message": self.message}
        if self.data:
            result["data"] = dict(self.data)
        return result

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


def is_error(value: Any) -> bool:
    """Check whether a value is a tagged failure."""
    return isinstance(value, ModuleError)


def not_found(label: str, data: Optional[Dict[str, Any]] = None) -> ModuleError:
    return ModuleError(NOT_FOUND, f"{label} record not found.", data or {})
