"""
Sustainability endpoints: ESG report CRUD and the metrics summary.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from ecoinsight.auth import dependencies as auth_dependencies
from ecoinsight.core.context import AppContext, get_context
from ecoinsight.core.pagination import Page, page_params

from . import schemas, service

router = APIRouter(prefix="/sustainability")


@router.get("/esg")
async def list_esg_reports(
    page: Page = Depends(page_params),
    company: str | None = Query(default=None, max_length=200),
    year: int | None = Query(default=None),
    reportType: schemas.ReportType | None = Query(default=None),
    ctx: AppContext = Depends(get_context),
) -> dict:
    filters = schemas.ESGFilters(
        company=(company or "").strip() or None,
        year=year,
        report_type=reportType,
    )
    result = await service.list_reports(ctx, filters, page)
    return {"success": True, **result}


@router.get("/esg/{report_id}")
async def get_esg_report(
    report_id: str,
    ctx: AppContext = Depends(get_context),
) -> dict:
    return {"success": True, "data": await service.get_report(ctx, report_id)}


@router.post("/esg", status_code=status.HTTP_201_CREATED)
async def create_esg_report(
    request: schemas.ESGCreate,
    _: dict = Depends(auth_dependencies.get_current_user),
    ctx: AppContext = Depends(get_context),
) -> dict:
    return {"success": True, "data": await service.create_report(ctx, request)}


@router.put("/esg/{report_id}")
async def update_esg_report(
    report_id: str,
    request: schemas.ESGUpdate,
    _: dict = Depends(auth_dependencies.get_current_user),
    ctx: AppContext = Depends(get_context),
) -> dict:
    return {"success": True, "data": await service.update_report(ctx, report_id, request)}


@router.delete("/esg/{report_id}")
async def delete_esg_report(
    report_id: str,
    _: dict = Depends(auth_dependencies.get_current_user),
    ctx: AppContext = Depends(get_context),
) -> dict:
    await service.delete_report(ctx, report_id)
    return {"success": True, "message": "ESG report deleted successfully"}


@router.get("/metrics")
async def sustainability_metrics(
    company: str | None = Query(default=None, max_length=200),
    year: int | None = Query(default=None),
    ctx: AppContext = Depends(get_context),
) -> dict:
    data = await service.metrics_summary(
        ctx,
        company=(company or "").strip() or None,
        year=year,
    )
    return {"success": True, "data": data}
