"""Identifier cache: lookup key -> ordered hotel codes, with expiry."""
from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol, Sequence

import redis.asyncio as redis_async
from redis.exceptions import RedisError

from hotel_availability.core.errors import CacheUnavailable
from hotel_availability.hotels.keys import normalize_lookup_key

if TYPE_CHECKING:  # pragma: no cover - import for type checking only
    from hotel_availability.config.settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "hotel_codes"
DEFAULT_TTL_S = 86_400


class IdentifierCache(Protocol):
    async def get(self, key: str) -> Optional[tuple[str, ...]]:
        ...

    async def set(self, key: str, identifiers: Sequence[str], ttl: Optional[int] = None) -> None:
        ...


def build_cache_key(key: str, prefix: str = DEFAULT_PREFIX) -> str:
    return f"{prefix}:{normalize_lookup_key(key)}"


def decode_identifiers(raw: Any) -> Optional[tuple[str, ...]]:
    """Decode a cached JSON list of identifiers; ``None`` when the value is unusable."""
    if raw is None:
        return None
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        return None
    return tuple(data)


def encode_identifiers(identifiers: Sequence[str]) -> str:
    return json.dumps(list(identifiers), separators=(",", ":"))


class RedisIdentifierCache:
    """Redis-backed identifier cache.

    Every Redis failure surfaces as :class:`CacheUnavailable`; the client is
    expected to carry a socket timeout so calls never hang.
    """

    def __init__(
        self,
        client: redis_async.Redis,
        *,
        prefix: str = DEFAULT_PREFIX,
        default_ttl: int = DEFAULT_TTL_S,
    ) -> None:
        self._client = client
        self._prefix = prefix
        self._default_ttl = default_ttl

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        socket_timeout: float = 2.0,
        prefix: str = DEFAULT_PREFIX,
        default_ttl: int = DEFAULT_TTL_S,
    ) -> "RedisIdentifierCache":
        client = redis_async.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            decode_responses=True,
        )
        return cls(client, prefix=prefix, default_ttl=default_ttl)

    async def close(self) -> None:
        await self._client.aclose()

    async def get(self, key: str) -> Optional[tuple[str, ...]]:
        cache_key = build_cache_key(key, self._prefix)
        try:
            raw = await self._client.get(cache_key)
        except RedisError as exc:
            raise CacheUnavailable(f"Redis error getting {cache_key}: {exc}") from exc
        except UnicodeDecodeError:
            # decode_responses=True clients fail inside redis-py on non-UTF-8 values.
            logger.warning("Ignoring undecodable cache entry for %s", cache_key)
            return None
        if raw is None:
            logger.debug("Cache miss for %s", cache_key)
            return None
        identifiers = decode_identifiers(raw)
        if identifiers is None:
            logger.warning("Ignoring malformed cache entry for %s", cache_key)
            return None
        logger.debug("Cache hit for %s (%s identifiers)", cache_key, len(identifiers))
        return identifiers

    async def set(self, key: str, identifiers: Sequence[str], ttl: Optional[int] = None) -> None:
        cache_key = build_cache_key(key, self._prefix)
        expiry = ttl if ttl is not None else self._default_ttl
        try:
            await self._client.set(cache_key, encode_identifiers(identifiers), ex=expiry)
        except RedisError as exc:
            raise CacheUnavailable(f"Redis error setting {cache_key}: {exc}") from exc
        logger.debug("Cached %s identifiers under %s for %ss", len(identifiers), cache_key, expiry)


class MemoryIdentifierCache:
    """Process-local identifier cache for development runs and tests."""

    def __init__(
        self,
        *,
        prefix: str = DEFAULT_PREFIX,
        default_ttl: int = DEFAULT_TTL_S,
        clock=time.monotonic,
    ) -> None:
        self._prefix = prefix
        self._default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, tuple[float, str]] = {}

    async def close(self) -> None:
        self._entries.clear()

    async def get(self, key: str) -> Optional[tuple[str, ...]]:
        cache_key = build_cache_key(key, self._prefix)
        entry = self._entries.get(cache_key)
        if entry is None:
            return None
        expires_at, payload = entry
        if self._clock() >= expires_at:
            del self._entries[cache_key]
            return None
        return decode_identifiers(payload)

    async def set(self, key: str, identifiers: Sequence[str], ttl: Optional[int] = None) -> None:
        cache_key = build_cache_key(key, self._prefix)
        expiry = ttl if ttl is not None else self._default_ttl
        self._entries[cache_key] = (self._clock() + expiry, encode_identifiers(identifiers))


def create_identifier_cache(settings: "Settings") -> RedisIdentifierCache | MemoryIdentifierCache:
    """Build the cache backend selected by ``settings.cache_backend``."""
    if settings.cache_backend == "memory":
        return MemoryIdentifierCache(prefix=settings.cache_prefix, default_ttl=settings.cache_ttl_s)
    return RedisIdentifierCache.from_url(
        settings.redis_url,
        socket_timeout=settings.redis_socket_timeout_s,
        prefix=settings.cache_prefix,
        default_ttl=settings.cache_ttl_s,
    )
