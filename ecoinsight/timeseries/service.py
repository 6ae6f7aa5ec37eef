"""
Time-series ingestion and bucketed aggregation.

Queries are capped at MAX_BUCKETS rows to keep wide ranges from turning into
unbounded scans; callers needing more history narrow the range and page by
time. There is no server-side cursor.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any

import asyncpg

from ecoinsight.core.context import AppContext
from ecoinsight.core.errors import InternalError, ValidationError

from . import repository, schemas

logger = logging.getLogger(__name__)

MAX_BUCKETS = 500
DEFAULT_BUCKET = "1 hour"
DEFAULT_WINDOW = timedelta(hours=24)

_BUCKET_RE = re.compile(
    r"^\s*(?P<count>[1-9][0-9]{0,5})\s*(?P<unit>second|minute|hour|day|week)s?\s*$",
    re.IGNORECASE,
)


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_bucket(raw: str | None) -> str:
    """
    Validate a duration expression like "15 minutes" or "1 day".
    """
    raw = (raw or "").strip()
    if not raw:
        return DEFAULT_BUCKET
    match = _BUCKET_RE.match(raw)
    if match is None:
        raise ValidationError(
            "Invalid bucket interval",
            details={"bucket": raw, "expected": "<n> second|minute|hour|day|week"},
        )
    count = int(match.group("count"))
    unit = match.group("unit").lower()
    return f"{count} {unit}{'s' if count != 1 else ''}"


def resolve_range(start: datetime | None, end: datetime | None, *, now: datetime | None = None) -> tuple[datetime, datetime]:
    now = now or datetime.now(timezone.utc)
    resolved_end = _utc(end) if end is not None else now
    resolved_start = _utc(start) if start is not None else now - DEFAULT_WINDOW
    if resolved_start > resolved_end:
        raise ValidationError("start must be before end")
    return resolved_start, resolved_end


async def insert_point(ctx: AppContext, payload: schemas.TimeseriesPointCreate) -> int:
    try:
        point_id = await repository.insert_point(
            ctx.pg_pool,
            location=payload.location,
            data_type=payload.dataType,
            ts=_utc(payload.timestamp),
            value=payload.value,
            unit=payload.unit,
            source=payload.source,
            metadata=payload.metadata,
            acquire_timeout_s=ctx.settings.acquire_timeout_s,
        )
    except asyncpg.PostgresError as exc:
        raise InternalError("Failed to insert timeseries") from exc

    logger.info("timeseries_inserted id=%s location=%s data_type=%s", point_id, payload.location, payload.dataType)
    return point_id


async def query_buckets(
    ctx: AppContext,
    *,
    location: str,
    data_type: str,
    start: datetime | None = None,
    end: datetime | None = None,
    bucket: str | None = None,
) -> list[dict[str, Any]]:
    location = (location or "").strip()
    data_type = (data_type or "").strip()
    if not location or not data_type:
        raise ValidationError("location and dataType are required")

    interval = normalize_bucket(bucket)
    range_start, range_end = resolve_range(start, end)

    try:
        rows = await repository.query_buckets(
            ctx.pg_pool,
            location=location,
            data_type=data_type,
            start=range_start,
            end=range_end,
            bucket=interval,
            limit=MAX_BUCKETS,
            acquire_timeout_s=ctx.settings.acquire_timeout_s,
        )
    except asyncpg.PostgresError as exc:
        raise InternalError("Failed to query timeseries") from exc

    return rows[:MAX_BUCKETS]
