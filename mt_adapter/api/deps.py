"""Shared FastAPI dependencies — auth gate, settings, service injection.

The TranslationProvider is created once during the FastAPI lifespan and
stored on app.state. All downstream code retrieves it via Depends() —
never by direct import.
"""

from fastapi import Depends, Header, Request

from mt_adapter.core.config import Settings, get_settings
from mt_adapter.core.security import extract_bearer_token, verify_access_token
from mt_adapter.services.llm.base import TranslationProvider
from mt_adapter.services.translation.handler import TranslationHandler


# ---------------------------------------------------------------------------
# Singletons — retrieved from app.state (set at app creation / lifespan)
# ---------------------------------------------------------------------------

def get_app_settings(request: Request) -> Settings:
    """Return the settings the app was created with, else the process-wide ones."""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_translation_provider(request: Request) -> TranslationProvider:
    """Return the singleton upstream provider from app state."""
    return request.app.state.translation_provider


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

async def require_bearer_token(
    authorization: str | None = Header(default=None),
    settings: Settings = Depends(get_app_settings),
) -> str:
    """Require ``Authorization: Bearer <token>`` and apply the allow-list."""
    token = extract_bearer_token(authorization)
    verify_access_token(token, settings.access_tokens)
    return token


# ---------------------------------------------------------------------------
# Service constructors — wired via Depends()
# ---------------------------------------------------------------------------

def get_translation_handler(
    provider: TranslationProvider = Depends(get_translation_provider),
    settings: Settings = Depends(get_app_settings),
) -> TranslationHandler:
    """Return a request-scoped TranslationHandler."""
    return TranslationHandler(provider=provider, settings=settings)
