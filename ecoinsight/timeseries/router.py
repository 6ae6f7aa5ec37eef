"""
Time-series endpoints.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from fastapi.encoders import jsonable_encoder

from ecoinsight.auth import dependencies as auth_dependencies
from ecoinsight.core.context import AppContext, get_context

from . import schemas, service

router = APIRouter(prefix="/timeseries")


@router.post("", status_code=status.HTTP_201_CREATED)
async def insert_point(
    request: schemas.TimeseriesPointCreate,
    _: dict = Depends(auth_dependencies.get_current_user),
    ctx: AppContext = Depends(get_context),
) -> dict:
    point_id = await service.insert_point(ctx, request)
    return {"success": True, "data": {"id": point_id}}


@router.get("")
async def query_timeseries(
    location: str = Query(default="", max_length=200),
    dataType: str = Query(default="", max_length=50),
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    bucket: str | None = Query(default=None, max_length=50),
    ctx: AppContext = Depends(get_context),
) -> dict:
    rows = await service.query_buckets(
        ctx,
        location=location,
        data_type=dataType,
        start=start,
        end=end,
        bucket=bucket,
    )
    return {"success": True, "data": jsonable_encoder(rows)}
