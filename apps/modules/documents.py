"""Documents module."""

# flake8: noqa: E501


from apps.modules.base import ModuleBase


class DocumentsModule(ModuleBase):
    """Document records. Archival and expiration columns are owned by retention."""

    table_name = "ns_documents"
    module_name = "Document"
    fields = (
        "title",
        "description",
        "category",
        "file_url",
        "file_type",
        "file_size",
        "uploaded_by",
        "retention_policy",
    )
    field_types = {
        "title": "string",
        "description": "string",
        "category": "string",
        "file_url": "string",
        "file_type": "string",
        "file_size": "integer",
        "uploaded_by": "integer",
        "retention_policy": "string",
        "is_archived": "boolean",
        "is_expired": "boolean",
    }
    defaults = {"category": "other", "retention_policy": "standard"}
    filter_fields = ("category", "retention_policy", "is_archived", "is_expired", "uploaded_by")
    readonly_fields = ("is_archived", "archived_at", "expiration_date", "is_expired")
