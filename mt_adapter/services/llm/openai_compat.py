"""OpenAI-compatible upstream translation provider.

Talks to the upstream machine translation model through the OpenAI SDK
pointed at UPSTREAM_BASE_URL. Translation settings travel in the
``translation_options`` extension field of the request body.
One bounded wait per call, SDK retries disabled, structured error logging.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import httpx
import openai
import structlog
from openai import AsyncOpenAI, AsyncStream
from openai.types.chat import ChatCompletionChunk

from mt_adapter.core.exceptions import (
    ShapingError,
    UpstreamError,
    UpstreamTimeoutError,
)
from mt_adapter.services.llm.base import TranslationProvider, UpstreamStream
from mt_adapter.services.translation.builder import UpstreamRequest

logger = structlog.get_logger(__name__)

# AsyncOpenAI refuses an empty key; requests then carry the caller's token.
_FORWARDED_KEY_PLACEHOLDER = "forwarded-per-request"


def _status_error_message(error: openai.APIStatusError) -> str:
    body = error.body
    if isinstance(body, dict):
        detail = body.get("error", body)
        if isinstance(detail, dict) and isinstance(detail.get("message"), str):
            return detail["message"]
    return error.message


def _map_sdk_error(error: Exception) -> UpstreamError:
    """Translate SDK and transport failures into UpstreamError."""
    if isinstance(error, (asyncio.TimeoutError, openai.APITimeoutError, httpx.TimeoutException)):
        return UpstreamTimeoutError()
    if isinstance(error, openai.APIStatusError):
        return UpstreamError(
            message=_status_error_message(error),
            status_code=error.status_code,
        )
    if isinstance(error, (openai.APIConnectionError, httpx.HTTPError)):
        return UpstreamError(message="Could not reach upstream translation service")
    return UpstreamError(message=f"Upstream call failed: {error}")


class OpenAICompatibleProvider(TranslationProvider):
    """Upstream translation model behind an OpenAI-compatible API."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout_seconds: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._timeout = timeout_seconds
        self._client = AsyncOpenAI(
            api_key=api_key or _FORWARDED_KEY_PLACEHOLDER,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
            http_client=http_client,
        )
        logger.info(
            "upstream_provider_initialized",
            base_url=base_url,
            forwards_caller_key=not api_key,
        )

    def _request_kwargs(self, request: UpstreamRequest, api_key: str | None) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": request.model,
            "messages": [dict(m) for m in request.messages],
            "stream": request.stream,
            "extra_body": {"translation_options": dict(request.translation_options)},
        }
        if api_key:
            kwargs["extra_headers"] = {"Authorization": f"Bearer {api_key}"}
        return kwargs

    async def complete(
        self,
        request: UpstreamRequest,
        api_key: str | None = None,
    ) -> dict[str, Any]:
        """Single non-streaming upstream call; returns the raw JSON body."""
        try:
            raw = await asyncio.wait_for(
                self._client.chat.completions.with_raw_response.create(
                    **self._request_kwargs(request, api_key)
                ),
                timeout=self._timeout,
            )
        except Exception as e:
            mapped = _map_sdk_error(e)
            logger.error(
                "upstream_call_failed",
                error=str(e),
                status_code=mapped.status_code,
                model=request.model,
                stream=False,
            )
            raise mapped from e

        try:
            body = raw.http_response.json()
        except ValueError as e:
            logger.error("upstream_body_not_json", model=request.model)
            raise ShapingError("Upstream response is not valid JSON") from e
        if not isinstance(body, dict):
            raise ShapingError("Upstream response is not a JSON object")

        logger.debug(
            "upstream_call_ok",
            model=request.model,
            target_language=request.target_language,
        )
        return body

    async def open_stream(
        self,
        request: UpstreamRequest,
        api_key: str | None = None,
    ) -> UpstreamStream:
        """Open the upstream event stream; the caller must aclose() it."""
        kwargs = self._request_kwargs(request, api_key)
        kwargs["stream"] = True
        try:
            stream = await asyncio.wait_for(
                self._client.chat.completions.create(**kwargs),
                timeout=self._timeout,
            )
        except Exception as e:
            mapped = _map_sdk_error(e)
            logger.error(
                "upstream_call_failed",
                error=str(e),
                status_code=mapped.status_code,
                model=request.model,
                stream=True,
            )
            raise mapped from e

        logger.debug(
            "upstream_stream_opened",
            model=request.model,
            target_language=request.target_language,
        )
        return UpstreamStream(self._chunks(stream), close=stream.close)

    async def _chunks(self, stream: AsyncStream[ChatCompletionChunk]) -> AsyncIterator[dict[str, Any]]:
        try:
            async for chunk in stream:
                yield chunk.model_dump(exclude_unset=True)
        except ValueError as e:
            raise ShapingError("Upstream stream chunk is not valid JSON") from e
        except (openai.APIError, httpx.HTTPError) as e:
            raise _map_sdk_error(e) from e

    async def aclose(self) -> None:
        await self._client.close()
