"""Cache manager with module-scoped keys and invalidation.

Key layout (prefix ``ns_`` by default):

    ns_{module}_item_{id}        single record
    ns_{module}_list_{md5}       list query, md5 of the canonical query args
    ns_stats_{module}            module statistics

Writes to a module invalidate its list keys; updates additionally drop the
item key.
"""

# flake8: noqa: E501


import hashlib
import json
import logging
from typing import Any, Callable, Dict, Optional

from shared.cache.backends import CacheBackend

logger = logging.getLogger(__name__)

DEFAULT_EXPIRATION = 3600


def canonical_args(args: Optional[Dict[str, Any]]) -> str:
    """Stable serialization of query arguments for fingerprinting."""
    return json.dumps(args or {}, sort_keys=True, default=str, separators=(",", ":"))


class CacheManager:
    """JSON-serializing front end over a ``CacheBackend``."""

    def __init__(
        self,
        backend: CacheBackend,
        prefix: str = "ns_",
        default_ttl: int = DEFAULT_EXPIRATION,
    ):
        self.backend = backend
        self.prefix = prefix
        self.default_ttl = default_ttl

    # ==================== Keys ====================

    def item_key(self, module: str, item_id: int) -> str:
        return f"{self.prefix}{module}_item_{int(item_id)}"

    def list_key(self, module: str, args: Optional[Dict[str, Any]] = None) -> str:
        digest = hashlib.md5(canonical_args(args).encode("utf-8")).hexdigest()
        return f"{self.prefix}{module}_list_{digest}"

    def stats_key(self, module: str) -> str:
        return f"{self.prefix}stats_{module}"

    # ==================== Basic operations ====================

    def get(self, key: str, default: Any = None) -> Any:
        payload = self.backend.get(key)
        if payload is None:
            return default
        try:
            return json.loads(payload)
        except ValueError:
            logger.warning(f"Dropping undecodable cache entry {key}")
            self.backend.delete(key)
            return default

    def contains(self, key: str) -> bool:
        return self.backend.get(key) is not None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        payload = json.dumps(value, default=str)
        return self.backend.set(key, payload, self.default_ttl if ttl is None else ttl)

    def delete(self, key: str) -> bool:
        return self.backend.delete(key)

    def remember(self, key: str, callback: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """Return the cached value, computing and storing it on a miss."""
        payload = self.backend.get(key)
        if payload is not None:
            return json.loads(payload)
        value = callback()
        self.set(key, value, ttl)
        return value

    # ==================== Invalidation ====================

    def clear_pattern(self, pattern: str) -> int:
        """Delete keys matching a trailing-wildcard pattern like ``ns_documents_*``."""
        return self.backend.delete_prefix(pattern.rstrip("*"))

    def clear_all(self) -> int:
        return self.backend.delete_prefix(self.prefix)

    def invalidate_module(self, module: str) -> int:
        count = self.clear_pattern(f"{self.prefix}{module}_*")
        logger.debug(f"Invalidated {count} cache entries for {module}")
        return count

    def invalidate_lists(self, module: str) -> int:
        return self.clear_pattern(f"{self.prefix}{module}_list_*")

    def invalidate_item(self, module: str, item_id: int) -> bool:
        return self.delete(self.item_key(module, item_id))

    def invalidate_related(self, module: str, item_id: Optional[int] = None) -> None:
        self.invalidate_lists(module)
        if item_id is not None:
            self.invalidate_item(module, item_id)
        self.delete(self.stats_key(module))

    # ==================== Stats ====================

    def get_stats(self) -> Dict[str, Any]:
        stats = self.backend.stats()
        stats["size"] = format_bytes(stats.get("bytes", 0))
        return stats


def format_bytes(size: int, precision: int = 2) -> str:
    units = ["B", "KB", "MB", "GB", "TB"]
    value = float(max(size, 0))
    index = 0
    while value >= 1024 and index < len(units) - 1:
        value /= 1024
        index += 1
    return f"{round(value, precision)} {units[index]}"
