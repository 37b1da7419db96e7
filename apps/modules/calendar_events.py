"""Calendar events module."""

# flake8: noqa: E501


from apps.modules.base import ModuleBase


class CalendarEventsModule(ModuleBase):
    table_name = "ns_calendar_events"
    module_name = "Calendar event"
    fields = (
        "title",
        "description",
        "location",
        "start_datetime",
        "end_datetime",
        "due_date",
        "all_day",
        "event_type",
        "created_by",
        "external_id",
        "external_provider",
        "external_url",
    )
    field_types = {
        "title": "string",
        "description": "string",
        "location": "string",
        "start_datetime": "datetime",
        "end_datetime": "datetime",
        "due_date": "datetime",
        "all_day": "boolean",
        "event_type": "string",
        "created_by": "integer",
        "external_id": "string",
        "external_provider": "string",
        "external_url": "string",
    }
    defaults = {"event_type": "event", "all_day": False}
    filter_fields = ("event_type", "external_provider", "created_by")
