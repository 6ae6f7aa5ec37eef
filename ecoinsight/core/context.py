"""
Process-scoped application context.

One AppContext is built in the FastAPI lifespan (see `ecoinsight/main.py`) and
stored on `app.state.context`. Routers receive it through the `get_context`
dependency and pass it down explicitly, so no module holds a global handle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import asyncpg
import httpx
from fastapi import Request
from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from . import cache as cache_module
from . import db, documents
from .cache import ResultCache
from .config import Settings

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    settings: Settings
    documents: AsyncDatabase | None
    pg_pool: asyncpg.Pool | None
    cache: ResultCache
    http: httpx.AsyncClient
    mongo_client: AsyncMongoClient | None = None

    @classmethod
    async def open(cls, settings: Settings) -> "AppContext":
        """
        Connect every store and bootstrap schemas.

        Any failure propagates: the service cannot serve meaningfully without
        its stores, so startup must abort.
        """
        mongo_client = documents.create_client(settings)
        pg_pool: asyncpg.Pool | None = None
        redis_client = cache_module.create_client(settings)
        http = httpx.AsyncClient(timeout=settings.upstream_timeout_s)
        try:
            database = mongo_client[settings.mongodb_db]
            await documents.ping(database)
            await documents.ensure_indexes(database)
            logger.info("store_connected store=mongodb db=%s", settings.mongodb_db)

            pg_pool = await db.create_pool(settings)
            await db.ensure_schema(pg_pool, reset=settings.timeseries_reset_on_startup)
            logger.info("store_connected store=timescaledb")

            await redis_client.ping()
            logger.info("store_connected store=redis")
        except Exception:
            logger.exception("store_connect_failed")
            await http.aclose()
            await redis_client.aclose(close_connection_pool=True)
            if pg_pool is not None:
                await pg_pool.close()
            await mongo_client.close()
            raise

        return cls(
            settings=settings,
            documents=database,
            pg_pool=pg_pool,
            cache=ResultCache(redis_client),
            http=http,
            mongo_client=mongo_client,
        )

    async def close(self) -> None:
        await self.http.aclose()
        await self.cache.close()
        if self.pg_pool is not None:
            await self.pg_pool.close()
        if self.mongo_client is not None:
            await self.mongo_client.close()
        logger.info("stores_closed")


def get_context(request: Request) -> AppContext:
    ctx = getattr(request.app.state, "context", None)
    if ctx is None:
        raise RuntimeError("AppContext is not initialized. It is created in the app lifespan.")
    return ctx
