"""Valkey (Redis-compatible) cache module."""

from .cache import (
    Cache,
    cache_key,
    invalidate_pattern,
)
from .client import (
    close_valkey_client,
    get_valkey_client,
    valkey_healthcheck,
)


__all__ = [
    # Client
    "get_valkey_client",
    "close_valkey_client",
    "valkey_healthcheck",
    # Cache
    "Cache",
    "cache_key",
    "invalidate_pattern",
]
