"""Translation request orchestration.

Per-request flow:
  Received → Validated → OptionsResolved → UpstreamCalled → Reshaping → Completed

Any step may end in an error; every error is an AdapterError carrying its
HTTP status so the API layer can render a structured body. Option parsing
never fails the request.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import structlog

from mt_adapter.core.config import Settings
from mt_adapter.core.exceptions import ValidationError
from mt_adapter.schemas.chat import ChatCompletionRequest, ChatCompletionResponse
from mt_adapter.services.language.resolver import collect_user_text, resolve_options
from mt_adapter.services.llm.base import TranslationProvider
from mt_adapter.services.translation.builder import UpstreamRequest, build_upstream_request
from mt_adapter.services.translation.options import parse_translation_options
from mt_adapter.services.translation.reshaper import ResponseReshaper

logger = structlog.get_logger(__name__)


class TranslationHandler:
    """Runs one chat-completion request against the upstream translator."""

    def __init__(self, provider: TranslationProvider, settings: Settings) -> None:
        self._provider = provider
        self._settings = settings

    def _upstream_credential(self, caller_token: str | None) -> str | None:
        # A configured upstream key wins; otherwise the caller's token is forwarded.
        if self._settings.upstream_api_key:
            return None
        return caller_token

    def prepare(self, request: ChatCompletionRequest) -> UpstreamRequest:
        """Validate the request and build the upstream payload."""
        if not request.has_user_message:
            raise ValidationError(
                "At least one message with role 'user' is required",
                code="missing_user_message",
            )

        options = parse_translation_options(request.system_content)
        options = resolve_options(options, collect_user_text(request.messages))

        upstream = build_upstream_request(
            request.messages,
            options,
            stream=request.stream,
            model=request.model,
            model_override=self._settings.model_override,
            default_options=self._settings.default_translation_options,
        )
        logger.info(
            "translation_request",
            model=upstream.model,
            stream=upstream.stream,
            target_language=upstream.target_language,
            message_count=len(upstream.messages),
            passthrough_keys=sorted(options.passthrough),
        )
        return upstream

    async def complete(
        self,
        request: ChatCompletionRequest,
        caller_token: str | None = None,
    ) -> ChatCompletionResponse:
        """Non-streaming translation."""
        upstream = self.prepare(request)
        body = await self._provider.complete(
            upstream, api_key=self._upstream_credential(caller_token)
        )
        return ResponseReshaper(model=request.model).reshape_completion(body)

    async def open_stream(
        self,
        request: ChatCompletionRequest,
        caller_token: str | None = None,
    ) -> AsyncIterator[str]:
        """Streaming translation.

        The upstream call completes before this returns, so validation and
        upstream failures raise here, before any response bytes are sent.
        """
        upstream = self.prepare(request)
        stream = await self._provider.open_stream(
            upstream, api_key=self._upstream_credential(caller_token)
        )
        return ResponseReshaper(model=request.model).relay(stream)
