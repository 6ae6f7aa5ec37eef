"""
Result cache backed by Redis (redis.asyncio).

The cache is never authoritative: every failure (unreachable server, pool
timeout, undecodable payload) degrades to a miss and is logged, so callers
always fall back to the store. Expiry is delegated to Redis TTLs.

Key format: "<prefix>:<name>:<value>|<name>:<value>..." with names sorted,
so logically identical queries share a key whatever the parameter order.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from .config import Settings

logger = logging.getLogger(__name__)

DEFAULT_TTL_S = 3600
SCAN_COUNT = 250
DELETE_BATCH_SIZE = 1000


def create_client(settings: Settings) -> aioredis.Redis:
    pool = aioredis.BlockingConnectionPool.from_url(
        settings.redis_uri,
        max_connections=settings.redis_pool_max,
        timeout=settings.acquire_timeout_s,
        socket_connect_timeout=10,
        decode_responses=True,
    )
    return aioredis.Redis(connection_pool=pool)


def _render(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def make_key(prefix: str, fields: Mapping[str, Any]) -> str:
    parts = [f"{name}:{_render(fields[name])}" for name in sorted(fields) if fields[name] is not None]
    return f"{prefix}:{'|'.join(parts)}"


class ResultCache:
    def __init__(self, client: aioredis.Redis, *, default_ttl_s: int = DEFAULT_TTL_S) -> None:
        self._client = client
        self.default_ttl_s = default_ttl_s

    @property
    def client(self) -> aioredis.Redis:
        return self._client

    @staticmethod
    def key(prefix: str, fields: Mapping[str, Any]) -> str:
        return make_key(prefix, fields)

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self._client.get(key)
        except RedisError as exc:
            logger.warning("cache_get_failed key=%s error=%s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("cache_decode_failed key=%s", key)
            return None

    async def set(self, key: str, value: Any, ttl_s: int | None = None) -> bool:
        ttl = ttl_s if ttl_s is not None else self.default_ttl_s
        try:
            await self._client.setex(key, ttl, json.dumps(value, ensure_ascii=True))
        except RedisError as exc:
            logger.warning("cache_set_failed key=%s error=%s", key, exc)
            return False
        return True

    async def delete(self, key: str) -> bool:
        try:
            await self._client.delete(key)
        except RedisError as exc:
            logger.warning("cache_delete_failed key=%s error=%s", key, exc)
            return False
        return True

    async def exists(self, key: str) -> bool:
        try:
            return await self._client.exists(key) == 1
        except RedisError as exc:
            logger.warning("cache_exists_failed key=%s error=%s", key, exc)
            return False

    async def delete_by_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a glob pattern (e.g. "climate:*").

        Uses incremental SCAN and batched DEL so large keyspaces never block
        the server. Returns the number of deleted keys (0 on failure).
        """
        deleted = 0
        batch: list[str] = []
        try:
            async for key in self._client.scan_iter(match=pattern, count=SCAN_COUNT):
                batch.append(key)
                if len(batch) >= DELETE_BATCH_SIZE:
                    deleted += await self._client.delete(*batch)
                    batch.clear()
            if batch:
                deleted += await self._client.delete(*batch)
        except RedisError as exc:
            logger.warning("cache_invalidate_failed pattern=%s error=%s", pattern, exc)
            return deleted
        logger.debug("cache_invalidated pattern=%s deleted=%s", pattern, deleted)
        return deleted

    async def invalidate_prefixes(self, *prefixes: str) -> None:
        for prefix in prefixes:
            await self.delete_by_pattern(f"{prefix}:*")

    async def ping(self) -> bool:
        return bool(await self._client.ping())

    async def close(self) -> None:
        await self._client.aclose(close_connection_pool=True)
