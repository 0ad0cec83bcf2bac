"""Model listing endpoint for OpenAI client compatibility."""

from fastapi import APIRouter, Depends

from mt_adapter.api.deps import get_app_settings, require_bearer_token
from mt_adapter.core.config import Settings
from mt_adapter.schemas.chat import ModelCard, ModelList

router = APIRouter(prefix="/models", tags=["models"])


@router.get("", response_model=ModelList)
async def list_models(
    _token: str = Depends(require_bearer_token),
    settings: Settings = Depends(get_app_settings),
) -> ModelList:
    """List the upstream model ids this adapter serves."""
    model_ids = list(settings.served_models)
    override = settings.model_override
    if override and override not in model_ids:
        model_ids.insert(0, override)
    return ModelList(data=[ModelCard(id=model_id) for model_id in model_ids])
