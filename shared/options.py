"""Runtime options stored in the database.

Options hold admin-editable settings (calendar provider, beta program limits,
license status) as JSON values keyed by name.
"""

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class OptionStore:
    """JSON key/value settings backed by the ``ns_options`` table."""

    def __init__(self, db):
        self.db = db

    def get(self, key: str, default: Any = None) -> Any:
        row = self.db(self.db.ns_options.option_key == key).select().first()
        if row is None or row.option_value is None:
            return default
        return row.option_value

    def get_dict(self, key: str, defaults: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Read a dict option merged over defaults."""
        merged = dict(defaults or {})
        value = self.get(key)
        if isinstance(value, dict):
            merged.update(value)
        return merged

    def set(self, key: str, value: Any) -> None:
        self.db.ns_options.update_or_insert(
            self.db.ns_options.option_key == key,
            option_key=key,
            option_value=value,
        )
        self.db.commit()
        logger.debug(f"Option {key} updated")

    def delete(self, key: str) -> bool:
        deleted = self.db(self.db.ns_options.option_key == key).delete()
        self.db.commit()
        return bool(deleted)
