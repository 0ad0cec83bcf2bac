"""FastAPI application entrypoint.

All routes prefixed /v1. Auto-generated OpenAPI docs at /docs.

The OpenAICompatibleProvider is created once during the lifespan (unless one
was injected at app creation) and stored on app.state for injection via
Depends(). Every failure leaves the app as a structured
{"error": {"message", "type", "code"}} body with the matching status.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mt_adapter.api.v1.chat import router as chat_router
from mt_adapter.api.v1.health import router as health_router
from mt_adapter.api.v1.models import router as models_router
from mt_adapter.core.config import Settings, get_settings
from mt_adapter.core.exceptions import AdapterError, ValidationError
from mt_adapter.services.llm.base import TranslationProvider
from mt_adapter.services.llm.openai_compat import OpenAICompatibleProvider


def _configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


_configure_logging(get_settings())

logger = structlog.get_logger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    """Summarize pydantic errors as 'loc: msg' pairs."""
    parts = []
    for error in exc.errors():
        loc = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        msg = error.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Request body does not match the expected schema"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle.

    Builds the upstream provider when none was injected and closes the one
    it built on shutdown.
    """
    # --- Startup ---
    settings: Settings = app.state.settings
    logger.info("app_startup", env=settings.app_env)

    owns_provider = getattr(app.state, "translation_provider", None) is None
    if owns_provider:
        app.state.translation_provider = OpenAICompatibleProvider(
            base_url=settings.upstream_base_url,
            api_key=settings.upstream_api_key,
            timeout_seconds=settings.upstream_timeout_seconds,
        )

    logger.info("app_provider_ready")
    yield

    # --- Shutdown ---
    logger.info("app_shutdown")
    if owns_provider:
        await app.state.translation_provider.aclose()
        app.state.translation_provider = None


def create_app(
    settings: Settings | None = None,
    provider: TranslationProvider | None = None,
) -> FastAPI:
    """Build the FastAPI app. Tests inject settings and a provider."""
    settings = settings or get_settings()

    app = FastAPI(
        title="MT Chat Adapter",
        description="OpenAI chat-completions adapter for an upstream machine translation model.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.translation_provider = provider

    # CORS — permissive for development, closed in production
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if not settings.is_production else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(AdapterError)
    async def adapter_error_handler(request: Request, exc: AdapterError) -> JSONResponse:
        """Structured error response for all adapter exceptions."""
        logger.info(
            "request_failed",
            path=request.url.path,
            status_code=exc.status_code,
            error_type=exc.error_type,
            code=exc.code,
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Schema failures use the same 400 shape as other bad input."""
        error = ValidationError(_validation_message(exc), code="invalid_body")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_error", path=request.url.path, error=str(exc))
        error = AdapterError("Internal server error", code="internal_error")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    # Mount all v1 routers
    app.include_router(health_router, prefix="/v1")
    app.include_router(models_router, prefix="/v1")
    app.include_router(chat_router, prefix="/v1")

    return app


app = create_app()


def run() -> None:
    """Console entrypoint: serve the app with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "mt_adapter.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
