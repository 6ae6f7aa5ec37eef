"""
Live weather / air-quality proxies.

A cache hit is returned as-is (tagged "cache"). On a miss the upstream payload
is normalized, recorded as a climate observation and written through to the
cache for LIVE_TTL_S (tagged "live").
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from ecoinsight.climate import service as climate_service
from ecoinsight.core.context import AppContext
from ecoinsight.core.errors import NotFoundError

from . import openaq, openweather

logger = logging.getLogger(__name__)

WEATHER_PREFIX = "weather_live"
AIR_QUALITY_PREFIX = "aq_live"
LIVE_TTL_S = 600


def _parse_timestamp(raw: Any) -> datetime:
    if isinstance(raw, str):
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            parsed = None
        if parsed is not None:
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


def pick_air_quality_reading(measurements: dict[str, Any]) -> tuple[str, dict[str, Any]] | None:
    """
    pm25 when present, otherwise the first measurement reported.
    """
    if not measurements:
        return None
    if "pm25" in measurements:
        return "pm25", measurements["pm25"]
    parameter = next(iter(measurements))
    return parameter, measurements[parameter]


def weather_observation(city: str, payload: dict[str, Any]) -> dict[str, Any] | None:
    value = payload.get("tempCelsius")
    if not isinstance(value, (int, float)):
        return None
    return {
        "location": payload.get("city") or city,
        "dataType": "weather",
        "timestamp": _parse_timestamp(payload.get("timestamp")),
        "value": float(value),
        "unit": "celsius",
        "source": "openweathermap",
        "metadata": {
            "humidity": payload.get("humidity"),
            "pressure": payload.get("pressure"),
            "weather": payload.get("weather"),
            "description": payload.get("description"),
            "windSpeed": payload.get("windSpeed"),
        },
    }


def air_quality_observation(city: str, payload: dict[str, Any]) -> dict[str, Any] | None:
    picked = pick_air_quality_reading(payload.get("measurements") or {})
    if picked is None:
        return None
    parameter, reading = picked
    value = reading.get("value")
    if not isinstance(value, (int, float)):
        return None
    return {
        "location": payload.get("city") or city,
        "dataType": "air_quality",
        "timestamp": _parse_timestamp(payload.get("timestamp")),
        "value": float(value),
        "unit": reading.get("unit") or "unknown",
        "source": "openaq",
        "metadata": {
            "parameter": parameter,
            "station": payload.get("location"),
            "country": payload.get("country"),
            "coordinates": payload.get("coordinates"),
        },
    }


async def _record(ctx: AppContext, doc: dict[str, Any] | None, *, kind: str, city: str) -> None:
    if doc is None:
        logger.warning("live_observation_skipped kind=%s city=%s reason=no_numeric_value", kind, city)
        return
    await climate_service.record_observation(ctx, doc)


async def fetch_weather(ctx: AppContext, city: str) -> dict[str, Any]:
    cache_key = ctx.cache.key(WEATHER_PREFIX, {"city": city})
    cached = await ctx.cache.get(cache_key)
    if cached is not None:
        return {"source": "cache", "data": cached}

    settings = ctx.settings
    payload = await openweather.fetch_current_weather(
        ctx.http,
        base_url=settings.openweather_base_url,
        api_key=settings.openweather_api_key,
        city=city,
        timeout_s=settings.upstream_timeout_s,
    )
    await _record(ctx, weather_observation(city, payload), kind="weather", city=city)
    await ctx.cache.set(cache_key, payload, LIVE_TTL_S)
    logger.info("live_weather_fetched city=%s", city)
    return {"source": "live", "data": payload}


async def fetch_air_quality(ctx: AppContext, city: str) -> dict[str, Any]:
    cache_key = ctx.cache.key(AIR_QUALITY_PREFIX, {"city": city})
    cached = await ctx.cache.get(cache_key)
    if cached is not None:
        return {"source": "cache", "data": cached}

    settings = ctx.settings
    payload = await openaq.fetch_air_quality(
        ctx.http,
        base_url=settings.openaq_base_url,
        api_key=settings.openaq_api_key,
        city=city,
        timeout_s=settings.upstream_timeout_s,
    )
    if payload is None:
        raise NotFoundError("No data for city")

    await _record(ctx, air_quality_observation(city, payload), kind="air_quality", city=city)
    await ctx.cache.set(cache_key, payload, LIVE_TTL_S)
    logger.info("live_air_quality_fetched city=%s", city)
    return {"source": "live", "data": payload}
