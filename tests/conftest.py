"""
Shared fixtures.

The app runs against an injected AppContext: an in-memory Redis double behind
the real ResultCache, in-memory replacements for the document and time-series
repositories, and an httpx MockTransport standing in for the upstream APIs.
"""

import fnmatch
import re
from datetime import datetime, timezone
from typing import Any, Callable

import httpx
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError

from ecoinsight.auth import repository as auth_repository
from ecoinsight.auth import security
from ecoinsight.climate import repository as climate_repository
from ecoinsight.core.cache import ResultCache
from ecoinsight.core.config import Settings
from ecoinsight.core.context import AppContext
from ecoinsight.main import create_app
from ecoinsight.sustainability import repository as sustainability_repository
from ecoinsight.timeseries import repository as timeseries_repository

TEST_SETTINGS = Settings(
    jwt_secret="test-secret",
    rate_limit_enabled=False,
    openweather_api_key="test-weather-key",
    openweather_base_url="https://weather.test/data/2.5",
    openaq_base_url="https://aq.test/v2",
)


class InMemoryRedis:
    """
    Just enough of redis.asyncio.Redis for ResultCache (decoded responses).
    """

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}
        self.broken = False

    def _check(self) -> None:
        if self.broken:
            raise RedisConnectionError("redis is down")

    async def get(self, key: str) -> str | None:
        self._check()
        return self.data.get(key)

    async def setex(self, key: str, ttl: int, value: str) -> bool:
        self._check()
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                self.ttls.pop(key, None)
                removed += 1
        return removed

    async def exists(self, key: str) -> int:
        self._check()
        return int(key in self.data)

    async def scan_iter(self, match: str | None = None, count: int | None = None):
        self._check()
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key

    async def ping(self) -> bool:
        self._check()
        return True

    async def aclose(self, close_connection_pool: bool = True) -> None:
        return None


def _matches(doc: dict[str, Any], query: dict[str, Any]) -> bool:
    for field, cond in query.items():
        value = doc.get(field)
        if isinstance(cond, dict):
            if "$regex" in cond:
                flags = re.IGNORECASE if "i" in cond.get("$options", "") else 0
                if value is None or not re.search(cond["$regex"], str(value), flags):
                    return False
            if "$gte" in cond and (value is None or value < cond["$gte"]):
                return False
            if "$lte" in cond and (value is None or value > cond["$lte"]):
                return False
        elif value != cond:
            return False
    return True


def _set_path(doc: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    target = doc
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


class InMemoryCollection:
    def __init__(self) -> None:
        self.rows: dict[ObjectId, dict[str, Any]] = {}

    def insert(self, doc: dict[str, Any]) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        row = {"createdAt": now, "updatedAt": now, **doc, "_id": ObjectId()}
        self.rows[row["_id"]] = row
        return dict(row)

    def find(self, query: dict[str, Any]) -> list[dict[str, Any]]:
        return [dict(row) for row in self.rows.values() if _matches(row, query)]

    def get(self, row_id: ObjectId) -> dict[str, Any] | None:
        row = self.rows.get(row_id)
        return dict(row) if row is not None else None

    def update(self, row_id: ObjectId, fields: dict[str, Any]) -> dict[str, Any] | None:
        row = self.rows.get(row_id)
        if row is None:
            return None
        for path, value in fields.items():
            _set_path(row, path, value)
        row["updatedAt"] = datetime.now(timezone.utc)
        return dict(row)

    def delete(self, row_id: ObjectId) -> bool:
        return self.rows.pop(row_id, None) is not None


class InMemoryStores:
    def __init__(self) -> None:
        self.users = InMemoryCollection()
        self.climate = InMemoryCollection()
        self.esg = InMemoryCollection()
        self.timeseries: list[dict[str, Any]] = []
        self.bucket_rows: list[dict[str, Any]] = []
        self.bucket_calls: list[dict[str, Any]] = []


def _install_repositories(monkeypatch: pytest.MonkeyPatch, stores: InMemoryStores) -> None:
    # auth
    async def find_by_email_or_username(database, *, email, username):
        email = auth_repository.normalize_email(email)
        for row in stores.users.rows.values():
            if row["email"] == email or row["username"] == username.strip():
                return dict(row)
        return None

    async def get_user_by_email(database, email):
        found = stores.users.find({"email": auth_repository.normalize_email(email)})
        return found[0] if found else None

    async def create_user(database, *, username, email, password_hash, role="user"):
        return stores.users.insert(
            {
                "username": username.strip(),
                "email": auth_repository.normalize_email(email),
                "password": password_hash,
                "role": role,
            }
        )

    monkeypatch.setattr(auth_repository, "find_by_email_or_username", find_by_email_or_username)
    monkeypatch.setattr(auth_repository, "get_user_by_email", get_user_by_email)
    monkeypatch.setattr(auth_repository, "create_user", create_user)

    # climate
    async def list_observations(database, query, *, skip, limit):
        rows = sorted(stores.climate.find(query), key=lambda r: r["timestamp"], reverse=True)
        return rows[skip : skip + limit], len(rows)

    monkeypatch.setattr(climate_repository, "list_observations", list_observations)
    monkeypatch.setattr(climate_repository, "get_observation", _async(lambda db, oid: stores.climate.get(oid)))
    monkeypatch.setattr(climate_repository, "insert_observation", _async(lambda db, doc: stores.climate.insert(doc)))
    monkeypatch.setattr(
        climate_repository, "update_observation", _async(lambda db, oid, fields: stores.climate.update(oid, fields))
    )
    monkeypatch.setattr(climate_repository, "delete_observation", _async(lambda db, oid: stores.climate.delete(oid)))

    # sustainability
    async def list_reports(database, query, *, skip, limit):
        rows = sorted(stores.esg.find(query), key=lambda r: r["company"])
        rows = sorted(rows, key=lambda r: r["year"], reverse=True)
        return rows[skip : skip + limit], len(rows)

    async def summarize(database, query):
        rows = stores.esg.find(query)
        if not rows:
            return None
        scores = [r["score"] for r in rows if r.get("score") is not None]
        return {
            "avgScore": sum(scores) / len(scores) if scores else None,
            "totalReports": len(rows),
            "companies": list({r["company"] for r in rows}),
            "years": list({r["year"] for r in rows}),
        }

    monkeypatch.setattr(sustainability_repository, "list_reports", list_reports)
    monkeypatch.setattr(sustainability_repository, "summarize", summarize)
    monkeypatch.setattr(sustainability_repository, "get_report", _async(lambda db, rid: stores.esg.get(rid)))
    monkeypatch.setattr(sustainability_repository, "insert_report", _async(lambda db, doc: stores.esg.insert(doc)))
    monkeypatch.setattr(
        sustainability_repository, "update_report", _async(lambda db, rid, fields: stores.esg.update(rid, fields))
    )
    monkeypatch.setattr(sustainability_repository, "delete_report", _async(lambda db, rid: stores.esg.delete(rid)))

    # timeseries
    async def insert_point(pool, **kwargs):
        stores.timeseries.append(kwargs)
        return len(stores.timeseries)

    async def query_buckets(pool, **kwargs):
        stores.bucket_calls.append(kwargs)
        return list(stores.bucket_rows)

    monkeypatch.setattr(timeseries_repository, "insert_point", insert_point)
    monkeypatch.setattr(timeseries_repository, "query_buckets", query_buckets)


def _async(fn: Callable[..., Any]) -> Callable[..., Any]:
    async def wrapper(*args: Any, **kwargs: Any) -> Any:
        return fn(*args, **kwargs)

    return wrapper


class Upstream:
    """
    Routes httpx requests to a per-test handler and records them.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(404, json={})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


@pytest.fixture
def redis_double() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def stores(monkeypatch: pytest.MonkeyPatch) -> InMemoryStores:
    stores = InMemoryStores()
    _install_repositories(monkeypatch, stores)
    return stores


@pytest.fixture
def upstream() -> Upstream:
    return Upstream()


@pytest.fixture
def context(redis_double: InMemoryRedis, stores: InMemoryStores, upstream: Upstream) -> AppContext:
    return AppContext(
        settings=TEST_SETTINGS,
        documents=None,
        pg_pool=None,
        cache=ResultCache(redis_double),
        http=httpx.AsyncClient(transport=httpx.MockTransport(upstream)),
    )


@pytest.fixture
def client(context: AppContext):
    app = create_app(context)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> dict[str, str]:
    token = security.build_access_token(TEST_SETTINGS, user_id=str(ObjectId()), role="user")
    return {"Authorization": f"Bearer {token}"}
