"""
ESG report persistence (document store, `esg_reports`).
"""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from ecoinsight.core.documents import ESG_REPORTS

from .schemas import ESGFilters


def build_query(filters: ESGFilters) -> dict[str, Any]:
    query: dict[str, Any] = {}
    if filters.company:
        query["company"] = {"$regex": re.escape(filters.company), "$options": "i"}
    if filters.year is not None:
        query["year"] = filters.year
    if filters.report_type:
        query["reportType"] = getattr(filters.report_type, "value", filters.report_type)
    return query


async def list_reports(
    database: AsyncDatabase,
    query: dict[str, Any],
    *,
    skip: int,
    limit: int,
) -> tuple[list[dict[str, Any]], int]:
    collection = database[ESG_REPORTS]
    cursor = (
        collection.find(query)
        .sort([("year", DESCENDING), ("company", ASCENDING)])
        .skip(skip)
        .limit(limit)
    )
    items, total = await asyncio.gather(
        cursor.to_list(length=limit),
        collection.count_documents(query),
    )
    return items, int(total)


async def get_report(database: AsyncDatabase, report_id: ObjectId) -> dict[str, Any] | None:
    return await database[ESG_REPORTS].find_one({"_id": report_id})


async def insert_report(database: AsyncDatabase, doc: dict[str, Any]) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    row = {**doc, "createdAt": now, "updatedAt": now}
    result = await database[ESG_REPORTS].insert_one(row)
    row["_id"] = result.inserted_id
    return row


async def update_report(
    database: AsyncDatabase,
    report_id: ObjectId,
    fields: dict[str, Any],
) -> dict[str, Any] | None:
    return await database[ESG_REPORTS].find_one_and_update(
        {"_id": report_id},
        {"$set": {**fields, "updatedAt": datetime.now(timezone.utc)}},
        return_document=ReturnDocument.AFTER,
    )


async def delete_report(database: AsyncDatabase, report_id: ObjectId) -> bool:
    result = await database[ESG_REPORTS].delete_one({"_id": report_id})
    return result.deleted_count > 0


async def summarize(database: AsyncDatabase, query: dict[str, Any]) -> dict[str, Any] | None:
    """
    Average score, report count and the distinct companies/years in scope.
    """
    pipeline = [
        {"$match": query},
        {
            "$group": {
                "_id": None,
                "avgScore": {"$avg": "$score"},
                "totalReports": {"$sum": 1},
                "companies": {"$addToSet": "$company"},
                "years": {"$addToSet": "$year"},
            }
        },
    ]
    cursor = await database[ESG_REPORTS].aggregate(pipeline)
    rows = await cursor.to_list(length=1)
    return rows[0] if rows else None
