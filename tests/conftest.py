"""Shared pytest fixtures for the adapter test suite.

Provides:
  - MockTranslationProvider: in-memory upstream with call tracking
  - make_completion_body / make_chunk: upstream payload builders
  - test_settings: Settings isolated from any .env file
  - mock_provider: default MockTranslationProvider
  - app: FastAPI app wired with test_settings + mock_provider

No test talks to a real upstream service.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest
from fastapi import FastAPI

from mt_adapter.core.config import Settings
from mt_adapter.main import create_app
from mt_adapter.services.llm.base import TranslationProvider, UpstreamStream
from mt_adapter.services.translation.builder import UpstreamRequest

UPSTREAM_ID = "chatcmpl-upstream-1"
UPSTREAM_CREATED = 1_700_000_000
AUTH_HEADERS = {"Authorization": "Bearer caller-token"}


# ---------------------------------------------------------------------------
# Upstream payload builders
# ---------------------------------------------------------------------------


def make_completion_body(text: str = "こんにちは") -> dict[str, Any]:
    """Upstream non-streaming body in OpenAI chat.completion shape."""
    return {
        "id": UPSTREAM_ID,
        "object": "chat.completion",
        "created": UPSTREAM_CREATED,
        "model": "qwen-mt-turbo",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": text},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 12, "completion_tokens": 4, "total_tokens": 16},
    }


def make_chunk(content: str | None, finish_reason: str | None = None) -> dict[str, Any]:
    """Upstream stream chunk in OpenAI chat.completion.chunk shape."""
    delta: dict[str, Any] = {}
    if content is not None:
        delta["content"] = content
    return {
        "id": UPSTREAM_ID,
        "object": "chat.completion.chunk",
        "created": UPSTREAM_CREATED,
        "model": "qwen-mt-turbo",
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }


def parse_events(body: str) -> list[Any]:
    """Split an SSE response body into decoded payloads ([DONE] kept as str)."""
    events: list[Any] = []
    for block in body.split("\n\n"):
        block = block.strip()
        if not block:
            continue
        assert block.startswith("data: ")
        data = block[len("data: "):]
        events.append(data if data == "[DONE]" else json.loads(data))
    return events


# ---------------------------------------------------------------------------
# Mock upstream provider
# ---------------------------------------------------------------------------


class MockTranslationProvider(TranslationProvider):
    """Mock upstream provider. Returns configurable bodies and chunks.

    ``chunks`` items are decoded upstream chunks; an exception instance in the
    list is raised at that position to simulate a broken stream.
    """

    def __init__(
        self,
        body: Any = None,
        chunks: list[Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._body = body if body is not None else make_completion_body()
        self._chunks = chunks if chunks is not None else [
            make_chunk("こん"),
            make_chunk("にちは"),
            make_chunk(None, finish_reason="stop"),
        ]
        self._error = error
        self.complete_calls: list[dict[str, Any]] = []
        self.stream_calls: list[dict[str, Any]] = []
        self.streams: list[UpstreamStream] = []
        self.closed = False

    async def complete(
        self,
        request: UpstreamRequest,
        api_key: str | None = None,
    ) -> dict[str, Any]:
        self.complete_calls.append({"request": request, "api_key": api_key})
        if self._error is not None:
            raise self._error
        return self._body

    async def open_stream(
        self,
        request: UpstreamRequest,
        api_key: str | None = None,
    ) -> UpstreamStream:
        self.stream_calls.append({"request": request, "api_key": api_key})
        if self._error is not None:
            raise self._error

        chunks = list(self._chunks)

        async def payloads() -> AsyncIterator[dict[str, Any]]:
            for item in chunks:
                if isinstance(item, BaseException):
                    raise item
                yield item

        stream = UpstreamStream(payloads())
        self.streams.append(stream)
        return stream

    async def aclose(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings() -> Settings:
    """Settings that ignore the project .env file."""
    return Settings(
        _env_file=None,
        upstream_base_url="https://upstream.test/v1",
        upstream_api_key="",
        upstream_model="",
        access_tokens=[],
        default_translation_options={"source_lang": "auto"},
    )


@pytest.fixture
def mock_provider() -> MockTranslationProvider:
    """Default mock upstream provider."""
    return MockTranslationProvider()


@pytest.fixture
def app(test_settings: Settings, mock_provider: MockTranslationProvider) -> FastAPI:
    """App wired with the test settings and mock provider."""
    return create_app(settings=test_settings, provider=mock_provider)


def make_client(app: FastAPI) -> httpx.AsyncClient:
    """In-process ASGI client for the app."""
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    )
