"""
Auth API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ecoinsight.core.context import AppContext, get_context

from . import schemas, service

router = APIRouter(prefix="/auth")


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    request: schemas.RegisterRequest,
    ctx: AppContext = Depends(get_context),
) -> dict:
    user = await service.register(ctx, request)
    return {"success": True, "data": user.model_dump()}


@router.post("/login")
async def login(
    request: schemas.LoginRequest,
    ctx: AppContext = Depends(get_context),
) -> dict:
    tokens = await service.login(ctx, request)
    return {"success": True, "data": tokens.model_dump()}
