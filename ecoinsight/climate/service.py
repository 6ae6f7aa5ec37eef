"""
Climate observation service.

Reads go cache-first (key built from the normalized filters + page), falling
back to the document store and writing the result back. Every successful
mutation invalidates the `climate:` prefix before the response is sent.
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

CACHE_PREFIX = "climate"
LIST_TTL_S = 1800


async def invalidate(ctx: AppContext) -> None:
    await ctx.cache.invalidate_prefixes(CACHE_PREFIX)


async def list_observations(ctx: AppContext, filters: schemas.ClimateFilters, page: Page) -> dict[str, Any]:
    cache_key = ctx.cache.key(
        CACHE_PREFIX,
        {"page": page.page, "limit": page.limit, **filters.cache_fields()},
    )
    cached = await ctx.cache.get(cache_key)
    if cached is not None:
        logger.info("climate_list_cache_hit key=%s", cache_key)
        return cached

    query = repository.build_query(filters)
    with store_errors("fetch climate data"):
        items, total = await repository.list_observations(
            ctx.documents,
            query,
            skip=page.skip,
            limit=page.limit,
        )

    result = {"data": to_jsonable(items), "pagination": page.meta(total)}
    await ctx.cache.set(cache_key, result, LIST_TTL_S)
    return result


async def get_observation(ctx: AppContext, raw_id: str) -> dict[str, Any]:
    observation_id = parse_object_id(raw_id)
    with store_errors("fetch climate data"):
        row = await repository.get_observation(ctx.documents, observation_id)
    if row is None:
        raise NotFoundError("Climate data not found")
    return to_jsonable(row)


async def record_observation(ctx: AppContext, doc: dict[str, Any]) -> dict[str, Any]:
    """
    Insert an already-validated observation document and invalidate the cache.
    """
    with store_errors("create climate data"):
        row = await repository.insert_observation(ctx.documents, doc)
    await invalidate(ctx)
    logger.info("climate_created id=%s source=%s", row["_id"], row.get("source"))
    return to_jsonable(row)


async def create_observation(ctx: AppContext, payload: schemas.ClimateCreate) -> dict[str, Any]:
    return await record_observation(ctx, payload.model_dump())


async def update_observation(ctx: AppContext, raw_id: str, payload: schemas.ClimateUpdate) -> dict[str, Any]:
    observation_id = parse_object_id(raw_id)
    fields = update_fields(payload)
    with store_errors("update climate data"):
        row = await repository.update_observation(ctx.documents, observation_id, fields)
    if row is None:
        raise NotFoundError("Climate data not found")

    await invalidate(ctx)
    logger.info("climate_updated id=%s fields=%s", observation_id, ",".join(sorted(fields)))
    return to_jsonable(row)


async def delete_observation(ctx: AppContext, raw_id: str) -> None:
    observation_id = parse_object_id(raw_id)
    with store_errors("delete climate data"):
        deleted = await repository.delete_observation(ctx.documents, observation_id)
    if not deleted:
        raise NotFoundError("Climate data not found")

    await invalidate(ctx)
    logger.info("climate_deleted id=%s", observation_id)
