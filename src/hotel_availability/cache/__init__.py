"""Identifier cache backends."""

from .identifier_cache import (
    IdentifierCache,
    MemoryIdentifierCache,
    RedisIdentifierCache,
    build_cache_key,
    create_identifier_cache,
)

__all__ = [
    "IdentifierCache",
    "MemoryIdentifierCache",
    "RedisIdentifierCache",
    "build_cache_key",
    "create_identifier_cache",
]
