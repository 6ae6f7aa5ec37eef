"""
Live upstream proxies, mounted next to the climate CRUD routes.

Both routes charge the per-client external limit in addition to the global one.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ecoinsight.core.context import AppContext, get_context
from ecoinsight.core.errors import ValidationError
from ecoinsight.core.ratelimit import enforce_external_limit

from . import service

router = APIRouter(prefix="/climate", dependencies=[Depends(enforce_external_limit)])


def _require_city(city: str) -> str:
    city = (city or "").strip()
    if not city:
        raise ValidationError("city is required")
    return city


@router.get("/weather/live")
async def live_weather(
    city: str = Query(default="", max_length=200),
    ctx: AppContext = Depends(get_context),
) -> dict:
    result = await service.fetch_weather(ctx, _require_city(city))
    return {"success": True, **result}


@router.get("/air-quality/live")
async def live_air_quality(
    city: str = Query(default="", max_length=200),
    ctx: AppContext = Depends(get_context),
) -> dict:
    result = await service.fetch_air_quality(ctx, _require_city(city))
    return {"success": True, **result}
