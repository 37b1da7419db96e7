"""Calendar provider registry and settings lookup."""

import logging
from typing import Any, Dict, Optional, Tuple, Type

from apps.services.calendar.base import BaseCalendarAdapter
from apps.services.calendar.builtin import BuiltinCalendarAdapter
from apps.services.calendar.google import GoogleCalendarAdapter
from apps.services.calendar.outlook import OutlookCalendarAdapter
from shared.errors import UNKNOWN_PROVIDER, ModuleError

logger = logging.getLogger(__name__)

SETTINGS_OPTION = "calendar_settings"
PROVIDER_OPTION_PREFIX = "calendar_provider_"

DEFAULT_CALENDAR_SETTINGS = {"provider": "builtin", "auto_sync": True}

CALENDAR_PROVIDERS: Dict[str, Type[BaseCalendarAdapter]] = {
    BuiltinCalendarAdapter.provider_id: BuiltinCalendarAdapter,
    GoogleCalendarAdapter.provider_id: GoogleCalendarAdapter,
    OutlookCalendarAdapter.provider_id: OutlookCalendarAdapter,
}


def get_calendar_settings(options) -> Dict[str, Any]:
    return options.get_dict(SETTINGS_OPTION, DEFAULT_CALENDAR_SETTINGS)


def get_provider_config(options, provider_id: str) -> Dict[str, Any]:
    return options.get_dict(f"{PROVIDER_OPTION_PREFIX}{provider_id}", {})


def create_adapter(
    provider_id: str, db, options, **kwargs
) -> Tuple[Optional[BaseCalendarAdapter], Optional[ModuleError]]:
    """Instantiate the adapter registered for ``provider_id``.

    Provider credentials are read from the ``calendar_provider_<id>`` option.
    Extra keyword arguments (``client``, ``clock``) go to the adapter.
    """
    adapter_class = CALENDAR_PROVIDERS.get(provider_id)
    if adapter_class is None:
        logger.warning(f"Unknown calendar provider requested: {provider_id}")
        return None, ModuleError(
            UNKNOWN_PROVIDER,
            f"Unknown calendar provider: {provider_id}",
            {"available": sorted(CALENDAR_PROVIDERS)},
        )
    if adapter_class is BuiltinCalendarAdapter:
        kwargs.pop("client", None)
    return adapter_class(db, get_provider_config(options, provider_id), **kwargs), None
