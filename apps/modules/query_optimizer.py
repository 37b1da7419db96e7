"""Query limits and slow-query logging for module list queries."""

# flake8: noqa: E501


import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_RECORDS = 1000
SLOW_QUERY_THRESHOLD = 1.0  # seconds


class QueryOptimizer:
    """Clamps caller supplied limits to a safe per-module maximum."""

    def __init__(
        self,
        default_max_records: int = DEFAULT_MAX_RECORDS,
        module_limits: Optional[Dict[str, int]] = None,
        slow_query_threshold: float = SLOW_QUERY_THRESHOLD,
    ):
        self.default_max_records = default_max_records
        self.module_limits = dict(module_limits or {})
        self.slow_query_threshold = slow_query_threshold

    def get_max_records(self, context: str = "default") -> int:
        return self.module_limits.get(context, self.default_max_records)

    def apply_safe_limit(self, limit: Any, context: str = "default") -> int:
        """
        Clamp a requested limit.

        ``None``, ``-1`` ("everything"), ``0`` and values above the maximum all
        map to the maximum; anything else becomes its absolute integer value.
        """
        max_records = self.get_max_records(context)
        try:
            value = int(limit)
        except (TypeError, ValueError):
            return max_records
        if value in (-1, 0) or value > max_records:
            return max_records
        return min(abs(value), max_records)

    @contextmanager
    def timed(self, context: str, **details: Any) -> Iterator[None]:
        """Log a warning when the wrapped query exceeds the slow threshold."""
        started = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - started
            if elapsed >= self.slow_query_threshold:
                logger.warning(
                    f"Slow query in {context}: {elapsed:.3f}s",
                    extra={"context": context, "elapsed": elapsed, **details},
                )
