"""
Auth business logic.
"""

from __future__ import annotations

import logging

from pymongo.errors import DuplicateKeyError

from ecoinsight.core.context import AppContext
from ecoinsight.core.documents import store_errors
from ecoinsight.core.errors import AuthError, ConflictError

from . import repository, schemas, security

logger = logging.getLogger(__name__)


def _to_user_response(user_row: dict) -> schemas.UserResponse:
    return schemas.UserResponse(
        id=str(user_row["_id"]),
        username=str(user_row["username"]),
        email=str(user_row["email"]),
    )


async def register(ctx: AppContext, payload: schemas.RegisterRequest) -> schemas.UserResponse:
    with store_errors("register user"):
        existing = await repository.find_by_email_or_username(
            ctx.documents,
            email=payload.email,
            username=payload.username,
        )
        if existing is not None:
            raise ConflictError("User already exists")

        password_hash = security.hash_password(payload.password)
        try:
            user_row = await repository.create_user(
                ctx.documents,
                username=payload.username,
                email=payload.email,
                password_hash=password_hash,
            )
        except DuplicateKeyError as exc:
            # Lost a race with a concurrent registration; the unique index wins.
            raise ConflictError("User already exists") from exc

    logger.info("user_registered user_id=%s", user_row["_id"])
    return _to_user_response(user_row)


async def login(ctx: AppContext, payload: schemas.LoginRequest) -> schemas.TokenResponse:
    with store_errors("look up user"):
        user_row = await repository.get_user_by_email(ctx.documents, payload.email)
    if user_row is None:
        raise AuthError("Invalid credentials")

    is_valid = security.verify_password(payload.password, str(user_row.get("password") or ""))
    if not is_valid:
        raise AuthError("Invalid credentials")

    token = security.build_access_token(
        ctx.settings,
        user_id=str(user_row["_id"]),
        role=str(user_row.get("role") or "user"),
    )
    return schemas.TokenResponse(token=token)


def get_user_from_access_token(ctx: AppContext, access_token: str) -> dict:
    """
    Verify a bearer token and return its identity claims.

    Tokens are self-contained: id and role come from the signed payload, so no
    store round-trip happens on authenticated requests.
    """
    try:
        payload = security.decode_access_token(ctx.settings, access_token)
    except security.AuthSecurityError as exc:
        raise AuthError(str(exc)) from exc

    subject = str(payload.get("sub") or "").strip()
    if not subject:
        raise AuthError("Invalid access token subject.")

    return {"id": subject, "role": str(payload.get("role") or "user")}
