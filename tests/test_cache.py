"""
Tests for the Redis-backed result cache.
"""

from datetime import datetime, timezone

import pytest

from ecoinsight.climate.schemas import DataType
from ecoinsight.core.cache import DELETE_BATCH_SIZE, ResultCache, make_key

from .conftest import InMemoryRedis


class TestMakeKey:
    def test_order_invariant(self):
        a = make_key("climate", {"page": 1, "limit": 10, "location": "Oslo"})
        b = make_key("climate", {"location": "Oslo", "limit": 10, "page": 1})
        assert a == b

    def test_format_sorted_and_skips_none(self):
        key = make_key("esg", {"year": 2023, "company": "Acme", "reportType": None})
        assert key == "esg:company:Acme|year:2023"

    def test_renders_enums_and_datetimes(self):
        ts = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        key = make_key("climate", {"dataType": DataType.WEATHER, "startDate": ts})
        assert key == f"climate:dataType:weather|startDate:{ts.isoformat()}"


class TestResultCache:
    @pytest.mark.asyncio
    async def test_set_get_roundtrip_with_ttl(self):
        redis = InMemoryRedis()
        cache = ResultCache(redis)

        assert await cache.set("climate:page:1", {"data": [1, 2]}, 30) is True
        assert await cache.get("climate:page:1") == {"data": [1, 2]}
        assert redis.ttls["climate:page:1"] == 30
        assert await cache.exists("climate:page:1") is True

    @pytest.mark.asyncio
    async def test_default_ttl(self):
        redis = InMemoryRedis()
        cache = ResultCache(redis, default_ttl_s=123)

        await cache.set("k", 1)
        assert redis.ttls["k"] == 123

    @pytest.mark.asyncio
    async def test_delete_by_pattern_only_touches_prefix(self):
        redis = InMemoryRedis()
        cache = ResultCache(redis)
        total = DELETE_BATCH_SIZE + 5
        for i in range(total):
            await cache.set(f"climate:page:{i}", i)
        await cache.set("esg:page:1", 1)

        deleted = await cache.delete_by_pattern("climate:*")

        assert deleted == total
        assert list(redis.data) == ["esg:page:1"]

    @pytest.mark.asyncio
    async def test_invalidate_prefixes(self):
        redis = InMemoryRedis()
        cache = ResultCache(redis)
        for key in ("esg:a", "metrics:b", "climate:c"):
            await cache.set(key, 1)

        await cache.invalidate_prefixes("esg", "metrics")

        assert list(redis.data) == ["climate:c"]

    @pytest.mark.asyncio
    async def test_failures_degrade_to_miss(self):
        redis = InMemoryRedis()
        cache = ResultCache(redis)
        await cache.set("k", {"v": 1})
        redis.broken = True

        assert await cache.get("k") is None
        assert await cache.set("k", 2) is False
        assert await cache.delete("k") is False
        assert await cache.exists("k") is False
        assert await cache.delete_by_pattern("*") == 0

    @pytest.mark.asyncio
    async def test_undecodable_payload_is_a_miss(self):
        redis = InMemoryRedis()
        redis.data["k"] = "{not json"
        assert await ResultCache(redis).get("k") is None
