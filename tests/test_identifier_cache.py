from __future__ import annotations

import json

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from hotel_availability.cache import MemoryIdentifierCache, RedisIdentifierCache, build_cache_key
from hotel_availability.core.errors import CacheUnavailable
from hotel_availability.tasks import SearchOrchestrator


class _DummyRedis:
    def __init__(self, *, fail: bool = False) -> None:
        self.values: dict[str, str] = {}
        self.expiries: dict[str, int] = {}
        self.fail = fail
        self.closed = False

    async def get(self, key):
        if self.fail:
            raise RedisConnectionError("connection refused")
        return self.values.get(key)

    async def set(self, key, value, ex=None):
        if self.fail:
            raise RedisConnectionError("connection refused")
        self.values[key] = value
        self.expiries[key] = ex
        return True

    async def aclose(self):
        self.closed = True


class _FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_cache_key_is_normalised():
    assert build_cache_key("  New   Delhi ") == "hotel_codes:new delhi"
    assert build_cache_key("Mumbai", prefix="codes") == "codes:mumbai"


@pytest.mark.asyncio
async def test_redis_cache_round_trip_uses_ttl():
    client = _DummyRedis()
    cache = RedisIdentifierCache(client, default_ttl=60)

    await cache.set("Mumbai", ["H1", "H2"])
    assert json.loads(client.values["hotel_codes:mumbai"]) == ["H1", "H2"]
    assert client.expiries["hotel_codes:mumbai"] == 60

    assert await cache.get("MUMBAI ") == ("H1", "H2")
    assert await cache.get("Pune") is None

    await cache.set("Pune", ["H9"], ttl=5)
    assert client.expiries["hotel_codes:pune"] == 5

    await cache.close()
    assert client.closed


@pytest.mark.asyncio
async def test_redis_errors_surface_as_cache_unavailable():
    cache = RedisIdentifierCache(_DummyRedis(fail=True))
    with pytest.raises(CacheUnavailable):
        await cache.get("Mumbai")
    with pytest.raises(CacheUnavailable):
        await cache.set("Mumbai", ["H1"])


@pytest.mark.asyncio
async def test_malformed_redis_entry_is_a_miss():
    client = _DummyRedis()
    client.values["hotel_codes:goa"] = "not json"
    client.values["hotel_codes:pune"] = json.dumps({"codes": ["H1"]})
    cache = RedisIdentifierCache(client)

    assert await cache.get("Goa") is None
    assert await cache.get("Pune") is None


@pytest.mark.asyncio
async def test_memory_cache_expires_entries():
    clock = _FakeClock()
    cache = MemoryIdentifierCache(default_ttl=10, clock=clock)

    await cache.set("Goa", ["H1", "H2"])
    assert await cache.get("goa") == ("H1", "H2")

    clock.now += 9
    assert await cache.get("Goa") == ("H1", "H2")

    clock.now += 1
    assert await cache.get("Goa") is None


@pytest.mark.asyncio
async def test_memory_cache_respects_explicit_ttl():
    clock = _FakeClock()
    cache = MemoryIdentifierCache(default_ttl=10, clock=clock)

    await cache.set("Goa", ["H1"], ttl=100)
    clock.now += 50
    assert await cache.get("Goa") == ("H1",)


class _UndecodableRedis(_DummyRedis):
    async def get(self, key):
        raise UnicodeDecodeError("utf-8", b"\xff\xfe", 0, 1, "invalid start byte")


class _DummyStore:
    def __init__(self, codes: tuple[str, ...]) -> None:
        self.codes = codes
        self.calls: list[str] = []

    async def lookup(self, key):
        self.calls.append(key)
        return self.codes


@pytest.mark.asyncio
async def test_undecodable_bytes_are_a_miss():
    client = _DummyRedis()
    client.values["hotel_codes:goa"] = b"\xff\xfe"
    cache = RedisIdentifierCache(client)

    assert await cache.get("Goa") is None


@pytest.mark.asyncio
async def test_client_side_decode_failure_is_a_miss():
    cache = RedisIdentifierCache(_UndecodableRedis())

    assert await cache.get("Goa") is None


@pytest.mark.asyncio
async def test_undecodable_entry_falls_back_to_store():
    client = _DummyRedis()
    client.values["hotel_codes:goa"] = b"\xff\xfe"
    store = _DummyStore(("H1", "H2"))
    orchestrator = SearchOrchestrator(cache=RedisIdentifierCache(client), store=store, gateway=object())

    assert await orchestrator.resolve_identifiers("Goa") == ("H1", "H2")
    assert store.calls == ["goa"]
    assert json.loads(client.values["hotel_codes:goa"]) == ["H1", "H2"]
