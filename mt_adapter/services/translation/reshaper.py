"""Reshaping of upstream output into the chat-completion envelope.

Non-streaming: one upstream body → one ChatCompletionResponse with
finish_reason "stop".
Streaming: each upstream chunk → exactly one ChatCompletionChunk event, in
arrival order, followed by the ``[DONE]`` sentinel once the upstream stream
ends after a chunk carrying a finish_reason. An upstream stream that breaks
mid-way ends with one structured error event; chunks already sent stay sent.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import AsyncIterator
from typing import Any

import structlog
from pydantic import BaseModel

from mt_adapter.core.exceptions import AdapterError, ShapingError, UpstreamError
from mt_adapter.schemas.chat import (
    AssistantMessage,
    ChatCompletionChunk,
    ChatCompletionResponse,
    Choice,
    ChunkChoice,
    ChunkDelta,
)
from mt_adapter.services.llm.base import UpstreamStream
from mt_adapter.services.translation.sse import encode_done, encode_event

logger = structlog.get_logger(__name__)


def dump_envelope(model: BaseModel) -> dict[str, Any]:
    """Serialize an envelope, dropping unset top-level extras such as usage."""
    return {k: v for k, v in model.model_dump().items() if v is not None}


def _first_choice(body: dict[str, Any]) -> dict[str, Any] | None:
    choices = body.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        return choices[0]
    return None


def _usage(body: dict[str, Any]) -> dict[str, Any] | None:
    usage = body.get("usage")
    return usage if isinstance(usage, dict) else None


class ResponseReshaper:
    """Request-scoped converter from upstream output to caller envelopes.

    ``response_id`` and ``created`` are fallbacks used only when the
    upstream omits its own values, which keeps reshaping deterministic.
    """

    def __init__(
        self,
        model: str,
        response_id: str | None = None,
        created: int | None = None,
    ) -> None:
        self._model = model
        self._response_id = response_id or f"chatcmpl-{uuid.uuid4().hex}"
        self._created = created if created is not None else int(time.time())

    def _id_for(self, body: dict[str, Any]) -> str:
        upstream_id = body.get("id")
        return upstream_id if isinstance(upstream_id, str) and upstream_id else self._response_id

    def _created_for(self, body: dict[str, Any]) -> int:
        created = body.get("created")
        if isinstance(created, int) and not isinstance(created, bool):
            return created
        return self._created

    def reshape_completion(self, body: Any) -> ChatCompletionResponse:
        """Map a complete upstream body to the caller-facing response."""
        if not isinstance(body, dict):
            raise ShapingError("Upstream response is not a JSON object")
        choice = _first_choice(body)
        if choice is None:
            raise ShapingError("Upstream response has no choices")
        message = choice.get("message")
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise ShapingError("Upstream response has no translated text")

        return ChatCompletionResponse(
            id=self._id_for(body),
            created=self._created_for(body),
            model=self._model,
            choices=[Choice(message=AssistantMessage(content=content))],
            usage=_usage(body),
        )

    def reshape_chunk(self, chunk: Any) -> ChatCompletionChunk:
        """Map one upstream stream chunk to exactly one caller chunk."""
        if not isinstance(chunk, dict):
            raise ShapingError("Upstream stream chunk is not a JSON object")
        choice = _first_choice(chunk) or {}
        delta = choice.get("delta")
        content = delta.get("content") if isinstance(delta, dict) else None
        finish_reason = choice.get("finish_reason")

        return ChatCompletionChunk(
            id=self._id_for(chunk),
            created=self._created_for(chunk),
            model=self._model,
            choices=[
                ChunkChoice(
                    delta=ChunkDelta(content=content if isinstance(content, str) else ""),
                    finish_reason=finish_reason if isinstance(finish_reason, str) else None,
                )
            ],
            usage=_usage(chunk),
        )

    async def relay(self, stream: UpstreamStream) -> AsyncIterator[str]:
        """Relay an upstream event stream as caller-facing SSE events.

        Always closes the upstream stream, including when the caller goes
        away and this generator is closed early.
        """
        finished = False
        forwarded = 0
        try:
            async for upstream_chunk in stream:
                chunk = self.reshape_chunk(upstream_chunk)
                if chunk.choices[0].finish_reason:
                    finished = True
                forwarded += 1
                yield encode_event(dump_envelope(chunk))
            if not finished:
                raise UpstreamError("Upstream stream ended before completion")
            yield encode_done()
        except Exception as e:
            error = e if isinstance(e, AdapterError) else UpstreamError(f"Upstream stream failed: {e}")
            logger.warning(
                "stream_aborted",
                error=str(e),
                error_type=error.error_type,
                chunks_forwarded=forwarded,
            )
            yield encode_event(error.to_dict())
        finally:
            await stream.aclose()
