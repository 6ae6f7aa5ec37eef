"""
Climate observation persistence (document store, `climate_data`).
"""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from ecoinsight.core.documents import CLIMATE_DATA

from .schemas import ClimateFilters


def build_query(filters: ClimateFilters) -> dict[str, Any]:
    """
    Text -> case-insensitive substring, enum -> exact, time range -> bounds
    for whichever of start/end is present.
    """
    query: dict[str, Any] = {}
    if filters.location:
        query["location"] = {"$regex": re.escape(filters.location), "$options": "i"}
    if filters.data_type:
        query["dataType"] = getattr(filters.data_type, "value", filters.data_type)
    if filters.start_date or filters.end_date:
        bounds: dict[str, datetime] = {}
        if filters.start_date:
            bounds["$gte"] = filters.start_date
        if filters.end_date:
            bounds["$lte"] = filters.end_date
        query["timestamp"] = bounds
    return query


async def list_observations(
    database: AsyncDatabase,
    query: dict[str, Any],
    *,
    skip: int,
    limit: int,
) -> tuple[list[dict[str, Any]], int]:
    collection = database[CLIMATE_DATA]
    cursor = collection.find(query).sort("timestamp", DESCENDING).skip(skip).limit(limit)
    items, total = await asyncio.gather(
        cursor.to_list(length=limit),
        collection.count_documents(query),
    )
    return items, int(total)


async def get_observation(database: AsyncDatabase, observation_id: ObjectId) -> dict[str, Any] | None:
    return await database[CLIMATE_DATA].find_one({"_id": observation_id})


async def insert_observation(database: AsyncDatabase, doc: dict[str, Any]) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    row = {**doc, "createdAt": now, "updatedAt": now}
    result = await database[CLIMATE_DATA].insert_one(row)
    row["_id"] = result.inserted_id
    return row


async def update_observation(
    database: AsyncDatabase,
    observation_id: ObjectId,
    fields: dict[str, Any],
) -> dict[str, Any] | None:
    return await database[CLIMATE_DATA].find_one_and_update(
        {"_id": observation_id},
        {"$set": {**fields, "updatedAt": datetime.now(timezone.utc)}},
        return_document=ReturnDocument.AFTER,
    )


async def delete_observation(database: AsyncDatabase, observation_id: ObjectId) -> bool:
    result = await database[CLIMATE_DATA].delete_one({"_id": observation_id})
    return result.deleted_count > 0
