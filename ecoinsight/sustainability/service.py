"""
ESG report service and sustainability metrics summary.

ESG mutations invalidate both `esg:` (report listings) and `metrics:`
(aggregates computed from the same reports).
"""

from __future__ import annotations

import logging
from typing import Any

from ecoinsight.core.context import AppContext
from ecoinsight.core.documents import parse_object_id, store_errors, to_jsonable, update_fields
from ecoinsight.core.errors import NotFoundError
from ecoinsight.core.pagination import Page

from . import repository, schemas

logger = logging.getLogger(__name__)

ESG_PREFIX = "esg"
METRICS_PREFIX = "metrics"
LIST_TTL_S = 3600
METRICS_TTL_S = 1800


def _flatten_metrics(fields: dict[str, Any]) -> dict[str, Any]:
    # Partial nested update: set only the metric leaves the client sent.
    metrics = fields.pop("metrics", None)
    if metrics is None:
        return fields
    for group, values in metrics.items():
        for name, value in values.items():
            fields[f"metrics.{group}.{name}"] = value
    return fields


async def invalidate(ctx: AppContext) -> None:
    await ctx.cache.invalidate_prefixes(ESG_PREFIX, METRICS_PREFIX)


async def list_reports(ctx: AppContext, filters: schemas.ESGFilters, page: Page) -> dict[str, Any]:
    cache_key = ctx.cache.key(
        ESG_PREFIX,
        {"page": page.page, "limit": page.limit, **filters.cache_fields()},
    )
    cached = await ctx.cache.get(cache_key)
    if cached is not None:
        logger.info("esg_list_cache_hit key=%s", cache_key)
        return cached

    query = repository.build_query(filters)
    with store_errors("fetch ESG data"):
        items, total = await repository.list_reports(
            ctx.documents,
            query,
            skip=page.skip,
            limit=page.limit,
        )

    result = {"data": to_jsonable(items), "pagination": page.meta(total)}
    await ctx.cache.set(cache_key, result, LIST_TTL_S)
    return result


async def get_report(ctx: AppContext, raw_id: str) -> dict[str, Any]:
    report_id = parse_object_id(raw_id)
    with store_errors("fetch ESG report"):
        row = await repository.get_report(ctx.documents, report_id)
    if row is None:
        raise NotFoundError("ESG report not found")
    return to_jsonable(row)


async def create_report(ctx: AppContext, payload: schemas.ESGCreate) -> dict[str, Any]:
    with store_errors("create ESG report"):
        row = await repository.insert_report(ctx.documents, payload.model_dump())
    await invalidate(ctx)
    logger.info("esg_created id=%s company=%s year=%s", row["_id"], row["company"], row["year"])
    return to_jsonable(row)


async def update_report(ctx: AppContext, raw_id: str, payload: schemas.ESGUpdate) -> dict[str, Any]:
    report_id = parse_object_id(raw_id)
    fields = _flatten_metrics(update_fields(payload))
    with store_errors("update ESG report"):
        row = await repository.update_report(ctx.documents, report_id, fields)
    if row is None:
        raise NotFoundError("ESG report not found")

    await invalidate(ctx)
    logger.info("esg_updated id=%s fields=%s", report_id, ",".join(sorted(fields)))
    return to_jsonable(row)


async def delete_report(ctx: AppContext, raw_id: str) -> None:
    report_id = parse_object_id(raw_id)
    with store_errors("delete ESG report"):
        deleted = await repository.delete_report(ctx.documents, report_id)
    if not deleted:
        raise NotFoundError("ESG report not found")

    await invalidate(ctx)
    logger.info("esg_deleted id=%s", report_id)


async def metrics_summary(ctx: AppContext, *, company: str | None, year: int | None) -> dict[str, Any]:
    cache_key = ctx.cache.key(METRICS_PREFIX, {"company": company, "year": year})
    cached = await ctx.cache.get(cache_key)
    if cached is not None:
        return cached

    query = repository.build_query(schemas.ESGFilters(company=company, year=year))
    with store_errors("fetch sustainability metrics"):
        row = await repository.summarize(ctx.documents, query)

    row = row or {}
    result = {
        "avgScore": row.get("avgScore") or 0,
        "totalReports": int(row.get("totalReports") or 0),
        "companies": sorted(row.get("companies") or []),
        "years": sorted(row.get("years") or []),
    }
    await ctx.cache.set(cache_key, result, METRICS_TTL_S)
    return result
