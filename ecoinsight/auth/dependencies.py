"""
FastAPI dependencies guarding the mutating routes.
"""

from __future__ import annotations

from fastapi import Depends, Header

from ecoinsight.core.context import AppContext, get_context
from ecoinsight.core.errors import AuthError

from . import service

BEARER = "bearer"


def parse_bearer(authorization: str | None) -> str:
    """
    Return the token from an `Authorization: Bearer <token>` header value.
    """
    scheme, _, token = (authorization or "").strip().partition(" ")
    if not scheme:
        raise AuthError("Missing Authorization header.")
    if scheme.lower() != BEARER or not token.strip():
        raise AuthError("Authorization must be: Bearer <token>.")
    return token.strip()


async def get_current_user(
    authorization: str | None = Header(default=None),
    ctx: AppContext = Depends(get_context),
) -> dict:
    return service.get_user_from_access_token(ctx, parse_bearer(authorization))
