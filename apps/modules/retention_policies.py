"""Retention policies module."""

# flake8: noqa: E501


from typing import Any, Dict

from apps.modules.base import ModuleBase
from shared.utils.sanitize import sanitize_key


class RetentionPoliciesModule(ModuleBase):
    """Admin-editable retention policies; read-only to the retention job."""

    table_name = "ns_retention_policies"
    module_name = "Retention policy"
    fields = (
        "policy_name",
        "policy_key",
        "document_categories",
        "retention_years",
        "auto_archive_after_days",
        "description",
        "is_active",
    )
    field_types = {
        "policy_name": "string",
        "policy_key": "string",
        "document_categories": "json",
        "retention_years": "integer",
        "auto_archive_after_days": "integer",
        "description": "string",
        "is_active": "boolean",
    }
    defaults = {
        "document_categories": [],
        "retention_years": 0,
        "auto_archive_after_days": 365,
        "is_active": True,
    }
    filter_fields = ("policy_key", "is_active")

    def sanitize_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        clean = super().sanitize_data(data)
        if "policy_key" in clean:
            clean["policy_key"] = sanitize_key(clean["policy_key"])
        return clean
