"""
Store health checks.

Each store is checked independently and concurrently; one failing store marks
the service "degraded" without hiding the status of the others.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from fastapi.encoders import jsonable_encoder

from ecoinsight import __version__
from ecoinsight.core import db, documents
from ecoinsight.core.context import AppContext

logger = logging.getLogger(__name__)

SERVICE_NAME = "ecoinsight-backend"
SERVICES = ("mongodb", "timescaledb", "redis")


async def _check_mongodb(ctx: AppContext) -> dict[str, Any]:
    if ctx.documents is None:
        raise RuntimeError("document store is not configured")
    return await documents.ping(ctx.documents)


async def _check_timescaledb(ctx: AppContext) -> dict[str, Any]:
    if ctx.pg_pool is None:
        raise RuntimeError("time-series store is not configured")
    return await db.ping(ctx.pg_pool)


async def _check_redis(ctx: AppContext) -> dict[str, Any]:
    await ctx.cache.ping()
    return {}


_CHECKS: dict[str, Callable[[AppContext], Awaitable[dict[str, Any]]]] = {
    "mongodb": _check_mongodb,
    "timescaledb": _check_timescaledb,
    "redis": _check_redis,
}


async def check_service(ctx: AppContext, name: str) -> dict[str, Any]:
    started = time.perf_counter()
    try:
        details = await _CHECKS[name](ctx)
    except Exception as exc:
        logger.warning("health_check_failed service=%s error=%s", name, exc)
        return {
            "status": "disconnected",
            "error": str(exc) or exc.__class__.__name__,
            "responseTime": f"{(time.perf_counter() - started) * 1000:.0f}ms",
        }
    return {
        "status": "connected",
        "responseTime": f"{(time.perf_counter() - started) * 1000:.0f}ms",
        **jsonable_encoder(details),
    }


async def overall_health(ctx: AppContext) -> tuple[bool, dict[str, Any]]:
    started = time.perf_counter()
    results = await asyncio.gather(*(check_service(ctx, name) for name in SERVICES))
    services = dict(zip(SERVICES, results))
    healthy = all(item["status"] == "connected" for item in services.values())
    return healthy, {
        "status": "healthy" if healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME,
        "version": __version__,
        "responseTime": f"{(time.perf_counter() - started) * 1000:.0f}ms",
        "services": services,
    }
