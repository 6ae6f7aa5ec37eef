"""
Credential persistence (document store, `users` collection).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pymongo.asynchronous.database import AsyncDatabase

from ecoinsight.core.documents import USERS


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


async def find_by_email_or_username(
    database: AsyncDatabase, *, email: str, username: str
) -> dict[str, Any] | None:
    return await database[USERS].find_one(
        {"$or": [{"email": normalize_email(email)}, {"username": username.strip()}]}
    )


async def get_user_by_email(database: AsyncDatabase, email: str) -> dict[str, Any] | None:
    return await database[USERS].find_one({"email": normalize_email(email)})


async def create_user(
    database: AsyncDatabase,
    *,
    username: str,
    email: str,
    password_hash: str,
    role: str = "user",
) -> dict[str, Any]:
    doc = {
        "username": username.strip(),
        "email": normalize_email(email),
        "password": password_hash,
        "role": role,
        "createdAt": datetime.now(timezone.utc),
    }
    result = await database[USERS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc
