"""
Health endpoints (mounted at the root and under /api/v1, outside the rate limit).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ecoinsight.core.context import AppContext, get_context
from ecoinsight.core.errors import ValidationError

from . import service

router = APIRouter()


@router.get("/health")
async def health(ctx: AppContext = Depends(get_context)) -> JSONResponse:
    healthy, body = await service.overall_health(ctx)
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"success": healthy, **body},
    )


@router.get("/health/{service_name}")
async def service_health(service_name: str, ctx: AppContext = Depends(get_context)) -> JSONResponse:
    if service_name not in service.SERVICES:
        raise ValidationError(
            "Unknown service",
            details={"availableServices": list(service.SERVICES)},
        )
    result = await service.check_service(ctx, service_name)
    healthy = result["status"] == "connected"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"success": healthy, "service": service_name, **result},
    )
