"""
Document store wiring (MongoDB via pymongo's asyncio client).

Collections:
- users         credentials (auth/)
- climate_data  climate observations (climate/, external/)
- esg_reports   ESG reports (sustainability/)
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from bson import ObjectId
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel
from pymongo import ASCENDING, DESCENDING, AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import ConnectionFailure, DuplicateKeyError, PyMongoError

from .config import Settings
from .errors import DependencyUnavailableError, InternalError, ValidationError

USERS = "users"
CLIMATE_DATA = "climate_data"
ESG_REPORTS = "esg_reports"


def create_client(settings: Settings) -> AsyncMongoClient:
    return AsyncMongoClient(
        settings.mongodb_uri,
        maxPoolSize=settings.mongo_pool_max,
        serverSelectionTimeoutMS=5000,
        socketTimeoutMS=45000,
        waitQueueTimeoutMS=int(settings.acquire_timeout_s * 1000),
        tz_aware=True,
    )


async def ensure_indexes(database: AsyncDatabase) -> None:
    await database[USERS].create_index([("email", ASCENDING)], unique=True)
    await database[USERS].create_index([("username", ASCENDING)], unique=True)
    await database[CLIMATE_DATA].create_index(
        [("location", ASCENDING), ("dataType", ASCENDING), ("timestamp", DESCENDING)]
    )
    await database[ESG_REPORTS].create_index(
        [("company", ASCENDING), ("year", ASCENDING), ("reportType", ASCENDING)]
    )


async def ping(database: AsyncDatabase) -> dict[str, Any]:
    await database.command("ping")
    return {"database": database.name}


def parse_object_id(raw: str) -> ObjectId:
    """
    Return an ObjectId for a 24-hex path parameter or raise a 400.
    """
    if not ObjectId.is_valid(raw) or len(raw) != 24:
        raise ValidationError("Invalid ID format")
    return ObjectId(raw)


def to_jsonable(value: Any) -> Any:
    """
    Convert Mongo documents (ObjectId, datetime, nested) into JSON-safe data.
    """
    return jsonable_encoder(value, custom_encoder={ObjectId: str})


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """
    Translate pymongo driver failures raised inside the block into API errors.
    """
    try:
        yield
    except ConnectionFailure as exc:
        raise DependencyUnavailableError(f"Document store unavailable while trying to {action}.") from exc
    except DuplicateKeyError:
        raise
    except PyMongoError as exc:
        raise InternalError(f"Failed to {action}.") from exc


def update_fields(payload: BaseModel) -> dict[str, Any]:
    """
    Return only the fields a client sent in a partial update.

    An empty update or an explicit null is rejected rather than silently
    producing a no-op or wiping a required field.
    """
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise ValidationError("No fields to update")
    nulls = sorted(name for name, value in fields.items() if value is None)
    if nulls:
        raise ValidationError("Fields cannot be null", details={"fields": nulls})
    return fields
