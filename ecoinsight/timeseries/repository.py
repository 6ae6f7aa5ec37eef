"""
Time-series SQL (raw, TimescaleDB).

Points are append-only; reads always aggregate through `time_bucket`.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

import asyncpg

from ecoinsight.core import db


def _json_arg(value: dict[str, Any] | None) -> str | None:
    """
    asyncpg does not automatically encode Python dicts for json/jsonb parameters.
    We pass JSON as a string and cast to jsonb in SQL.
    """
    if value is None:
        return None
    return json.dumps(value, ensure_ascii=True)


async def insert_point(
    pool: asyncpg.Pool,
    *,
    location: str,
    data_type: str,
    ts: datetime,
    value: float,
    unit: str,
    source: str,
    metadata: dict[str, Any] | None = None,
    acquire_timeout_s: float = 2.0,
) -> int:
    row = await db.fetch_one(
        pool,
        f"""
        INSERT INTO {db.TIMESERIES_TABLE} (location, data_type, ts, value, unit, source, metadata)
        VALUES ($1, $2, $3, $4, $5, $6, COALESCE($7::jsonb, '{{}}'::jsonb))
        RETURNING id
        """,
        location,
        data_type,
        ts,
        value,
        unit,
        source,
        _json_arg(metadata),
        acquire_timeout_s=acquire_timeout_s,
    )
    if row is None or "id" not in row:
        raise RuntimeError("Failed to insert time-series point.")
    return int(row["id"])


async def query_buckets(
    pool: asyncpg.Pool,
    *,
    location: str,
    data_type: str,
    start: datetime,
    end: datetime,
    bucket: str,
    limit: int,
    acquire_timeout_s: float = 2.0,
) -> list[dict[str, Any]]:
    """
    avg/min/max per bucket, newest bucket first.

    The interval is passed as text and cast in SQL so asyncpg does not expect
    a timedelta for the parameter.
    """
    return await db.fetch_all(
        pool,
        f"""
        SELECT time_bucket($1::text::interval, ts) AS bucket,
               AVG(value) AS value_avg,
               MIN(value) AS value_min,
               MAX(value) AS value_max
        FROM {db.TIMESERIES_TABLE}
        WHERE location = $2
          AND data_type = $3
          AND ts BETWEEN $4 AND $5
        GROUP BY bucket
        ORDER BY bucket DESC
        LIMIT $6
        """,
        bucket,
        location,
        data_type,
        start,
        end,
        limit,
        acquire_timeout_s=acquire_timeout_s,
    )
