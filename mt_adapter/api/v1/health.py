"""Liveness endpoint."""

from fastapi import APIRouter, Depends

from mt_adapter.api.deps import get_app_settings
from mt_adapter.core.config import Settings

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health(settings: Settings = Depends(get_app_settings)) -> dict[str, str]:
    return {"status": "ok", "env": settings.app_env}
