"""Cache layer for module records and list queries."""

# flake8: noqa: E501

from shared.cache.backends import (
    CacheBackend,
    MemoryCacheBackend,
    RedisCacheBackend,
    create_cache_backend,
)
from shared.cache.manager import CacheManager, canonical_args, format_bytes

__all__ = [
    "CacheBackend",
    "CacheManager",
    "MemoryCacheBackend",
    "RedisCacheBackend",
    "canonical_args",
    "create_cache_backend",
    "format_bytes",
]
