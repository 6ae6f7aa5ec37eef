"""
Async time-series store helpers (raw SQL) using asyncpg.

The pool is owned by the process context (see `core/context.py`); these
helpers take it explicitly. Connection acquisition is bounded by
`STORE_ACQUIRE_TIMEOUT_S` so an exhausted pool fails fast instead of queueing
requests forever.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import asyncpg

from .config import Settings
from .errors import DependencyUnavailableError

logger = logging.getLogger(__name__)

TIMESERIES_TABLE = "climate_timeseries"

_CREATE_TABLE_SQL = f"""
CREATE TABLE IF NOT EXISTS {TIMESERIES_TABLE} (
  id BIGSERIAL NOT NULL,
  location TEXT NOT NULL,
  data_type TEXT NOT NULL,
  ts TIMESTAMPTZ NOT NULL,
  value DOUBLE PRECISION NOT NULL,
  unit TEXT NOT NULL,
  source TEXT NOT NULL,
  metadata JSONB NOT NULL DEFAULT '{{}}'::jsonb,
  PRIMARY KEY (id, ts)
)
"""

_CREATE_HYPERTABLE_SQL = f"SELECT create_hypertable('{TIMESERIES_TABLE}', 'ts', if_not_exists => TRUE)"

_CREATE_INDEX_SQL = f"""
CREATE INDEX IF NOT EXISTS idx_{TIMESERIES_TABLE}_location_type_ts
ON {TIMESERIES_TABLE} (location, data_type, ts DESC)
"""


async def create_pool(settings: Settings) -> asyncpg.Pool:
    return await asyncpg.create_pool(
        dsn=settings.timescaledb_uri,
        min_size=1,
        max_size=settings.pg_pool_max,
        command_timeout=30,
        timeout=10,
    )


async def ensure_schema(pool: asyncpg.Pool, *, reset: bool = False) -> None:
    """
    Create the time-series table, hypertable and index if missing.

    `reset=True` drops the table first. It is destructive and only runs when
    TIMESERIES_RESET_ON_STARTUP is explicitly enabled.
    """
    async with pool.acquire() as conn:  # type: asyncpg.Connection
        if reset:
            logger.warning("timeseries_reset table=%s", TIMESERIES_TABLE)
            await conn.execute(f"DROP TABLE IF EXISTS {TIMESERIES_TABLE}")
        await conn.execute(_CREATE_TABLE_SQL)
        await conn.execute(_CREATE_HYPERTABLE_SQL)
        await conn.execute(_CREATE_INDEX_SQL)


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


async def fetch_one(pool: asyncpg.Pool, sql: str, *args: Any, acquire_timeout_s: float = 2.0) -> dict[str, Any] | None:
    """
    Run a query and return a single row as a dict (or None).
    """
    try:
        async with pool.acquire(timeout=acquire_timeout_s) as conn:
            row = await conn.fetchrow(sql, *args)
    except asyncio.TimeoutError as exc:
        raise DependencyUnavailableError("Time-series store connection pool exhausted.") from exc
    except (OSError, asyncpg.InterfaceError) as exc:
        raise DependencyUnavailableError("Time-series store is unreachable.") from exc
    return _record_to_dict(row) if row is not None else None


async def fetch_all(pool: asyncpg.Pool, sql: str, *args: Any, acquire_timeout_s: float = 2.0) -> list[dict[str, Any]]:
    """
    Run a query and return all rows as a list of dicts.
    """
    try:
        async with pool.acquire(timeout=acquire_timeout_s) as conn:
            rows = await conn.fetch(sql, *args)
    except asyncio.TimeoutError as exc:
        raise DependencyUnavailableError("Time-series store connection pool exhausted.") from exc
    except (OSError, asyncpg.InterfaceError) as exc:
        raise DependencyUnavailableError("Time-series store is unreachable.") from exc
    return [_record_to_dict(r) for r in rows]


async def ping(pool: asyncpg.Pool) -> dict[str, Any]:
    row = await fetch_one(pool, "SELECT now() AS now, version() AS version, current_database() AS database")
    return {
        **(row or {}),
        "poolSize": pool.get_size(),
        "idleCount": pool.get_idle_size(),
    }
