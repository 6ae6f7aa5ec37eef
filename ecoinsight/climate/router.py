"""
Climate observation endpoints.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from ecoinsight.auth import dependencies as auth_dependencies
from ecoinsight.core.context import AppContext, get_context
from ecoinsight.core.pagination import Page, page_params

from . import schemas, service

router = APIRouter(prefix="/climate")


@router.get("")
async def list_climate_data(
    page: Page = Depends(page_params),
    location: str | None = Query(default=None, max_length=200),
    dataType: schemas.DataType | None = Query(default=None),
    startDate: datetime | None = Query(default=None),
    endDate: datetime | None = Query(default=None),
    ctx: AppContext = Depends(get_context),
) -> dict:
    filters = schemas.ClimateFilters(
        location=(location or "").strip() or None,
        data_type=dataType,
        start_date=startDate,
        end_date=endDate,
    )
    result = await service.list_observations(ctx, filters, page)
    return {"success": True, **result}


@router.get("/{observation_id}")
async def get_climate_data(
    observation_id: str,
    ctx: AppContext = Depends(get_context),
) -> dict:
    return {"success": True, "data": await service.get_observation(ctx, observation_id)}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_climate_data(
    request: schemas.ClimateCreate,
    _: dict = Depends(auth_dependencies.get_current_user),
    ctx: AppContext = Depends(get_context),
) -> dict:
    return {"success": True, "data": await service.create_observation(ctx, request)}


@router.put("/{observation_id}")
async def update_climate_data(
    observation_id: str,
    request: schemas.ClimateUpdate,
    _: dict = Depends(auth_dependencies.get_current_user),
    ctx: AppContext = Depends(get_context),
) -> dict:
    return {"success": True, "data": await service.update_observation(ctx, observation_id, request)}


@router.delete("/{observation_id}")
async def delete_climate_data(
    observation_id: str,
    _: dict = Depends(auth_dependencies.get_current_user),
    ctx: AppContext = Depends(get_context),
) -> dict:
    await service.delete_observation(ctx, observation_id)
    return {"success": True, "message": "Climate data deleted successfully"}
