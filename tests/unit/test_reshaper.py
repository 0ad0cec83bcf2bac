"""Unit tests for response reshaping and the streaming relay.

Tests:
  - non-streaming: translated text, finish_reason "stop", upstream id/created/usage kept
  - non-streaming: reshaping the same body twice is byte-identical
  - non-streaming: missing choices / message / content → ShapingError
  - non-streaming: fallback id/created when the upstream omits them
  - chunk: delta content carried, empty when absent, finish_reason carried
  - relay: [c1, c2, c3] → [r(c1), r(c2), r(c3)] then [DONE], no drops or dups
  - relay: mid-stream failure → structured error event, partial output kept
  - relay: premature EOF without finish_reason → error event
  - relay: EOF after finish_reason → [DONE]
  - relay: upstream stream closed on completion, failure, and early caller exit
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest

from mt_adapter.core.exceptions import ShapingError
from mt_adapter.services.llm.base import UpstreamStream
from mt_adapter.services.translation.reshaper import ResponseReshaper, dump_envelope
from tests.conftest import (
    UPSTREAM_CREATED,
    UPSTREAM_ID,
    make_chunk,
    make_completion_body,
    parse_events,
)


def _stream(*items: Any) -> UpstreamStream:
    async def chunks() -> AsyncIterator[dict[str, Any]]:
        for item in items:
            if isinstance(item, BaseException):
                raise item
            yield item

    return UpstreamStream(chunks())


async def _relay_all(reshaper: ResponseReshaper, stream: UpstreamStream) -> list[Any]:
    body = "".join([event async for event in reshaper.relay(stream)])
    return parse_events(body)


class TestReshapeCompletion:
    """Non-streaming reshaping."""

    def test_translated_text_and_stop(self) -> None:
        response = ResponseReshaper(model="qwen-mt-turbo").reshape_completion(
            make_completion_body("こんにちは")
        )
        assert response.object == "chat.completion"
        assert response.id == UPSTREAM_ID
        assert response.created == UPSTREAM_CREATED
        assert response.model == "qwen-mt-turbo"
        assert len(response.choices) == 1
        assert response.choices[0].message.role == "assistant"
        assert response.choices[0].message.content == "こんにちは"
        assert response.choices[0].finish_reason == "stop"
        assert response.usage == {"prompt_tokens": 12, "completion_tokens": 4, "total_tokens": 16}

    def test_finish_reason_always_stop(self) -> None:
        body = make_completion_body("Hi")
        body["choices"][0]["finish_reason"] = "length"
        response = ResponseReshaper(model="m").reshape_completion(body)
        assert response.choices[0].finish_reason == "stop"

    def test_idempotent(self) -> None:
        reshaper = ResponseReshaper(model="m")
        body = make_completion_body("Bonjour")
        first = reshaper.reshape_completion(body).model_dump_json()
        second = reshaper.reshape_completion(body).model_dump_json()
        assert first == second

    def test_idempotent_without_upstream_id(self) -> None:
        reshaper = ResponseReshaper(model="m")
        body = {"choices": [{"message": {"content": "Hola"}}]}
        first = json.dumps(dump_envelope(reshaper.reshape_completion(body)))
        second = json.dumps(dump_envelope(reshaper.reshape_completion(body)))
        assert first == second

    def test_fallback_id_and_created(self) -> None:
        reshaper = ResponseReshaper(model="m", response_id="chatcmpl-local", created=42)
        response = reshaper.reshape_completion({"choices": [{"message": {"content": "x"}}]})
        assert response.id == "chatcmpl-local"
        assert response.created == 42
        assert "usage" not in dump_envelope(response)

    def test_empty_translation_is_valid(self) -> None:
        response = ResponseReshaper(model="m").reshape_completion(make_completion_body(""))
        assert response.choices[0].message.content == ""

    @pytest.mark.parametrize(
        "body",
        [
            [],
            "text",
            {},
            {"choices": []},
            {"choices": ["x"]},
            {"choices": [{"delta": {"content": "x"}}]},
            {"choices": [{"message": {"role": "assistant"}}]},
            {"choices": [{"message": {"content": None}}]},
            {"choices": [{"message": {"content": 5}}]},
        ],
    )
    def test_malformed_body_raises(self, body: Any) -> None:
        with pytest.raises(ShapingError) as exc_info:
            ResponseReshaper(model="m").reshape_completion(body)
        assert exc_info.value.status_code == 500


class TestReshapeChunk:
    """Per-chunk reshaping."""

    def test_delta_content(self) -> None:
        chunk = ResponseReshaper(model="m").reshape_chunk(make_chunk("你好"))
        assert chunk.object == "chat.completion.chunk"
        assert chunk.id == UPSTREAM_ID
        assert chunk.choices[0].delta.content == "你好"
        assert chunk.choices[0].finish_reason is None

    def test_missing_content_is_empty(self) -> None:
        chunk = ResponseReshaper(model="m").reshape_chunk(make_chunk(None, "stop"))
        assert chunk.choices[0].delta.content == ""
        assert chunk.choices[0].finish_reason == "stop"

    def test_chunk_without_choices(self) -> None:
        chunk = ResponseReshaper(model="m").reshape_chunk({"usage": {"total_tokens": 3}})
        assert chunk.choices[0].delta.content == ""
        assert chunk.usage == {"total_tokens": 3}

    def test_non_object_raises(self) -> None:
        with pytest.raises(ShapingError):
            ResponseReshaper(model="m").reshape_chunk(["not", "a", "chunk"])


@pytest.mark.asyncio
class TestRelay:
    """Streaming relay order, termination and cleanup."""

    async def test_order_preserved(self) -> None:
        stream = _stream(make_chunk("c1"), make_chunk("c2"), make_chunk("c3", "stop"))
        events = await _relay_all(ResponseReshaper(model="m"), stream)

        assert [e["choices"][0]["delta"]["content"] for e in events[:-1]] == ["c1", "c2", "c3"]
        assert events[-1] == "[DONE]"
        assert len(events) == 4
        assert stream.closed

    async def test_each_event_matches_reshape_chunk(self) -> None:
        reshaper = ResponseReshaper(model="m")
        raw = [make_chunk("a"), make_chunk("b"), make_chunk(None, "stop")]
        events = await _relay_all(reshaper, _stream(*raw))
        expected = [dump_envelope(reshaper.reshape_chunk(r)) for r in raw]
        assert events[:-1] == expected

    async def test_mid_stream_failure_keeps_partial_output(self) -> None:
        stream = _stream(make_chunk("part"), httpx.ReadError("connection reset"))
        events = await _relay_all(ResponseReshaper(model="m"), stream)

        assert events[0]["choices"][0]["delta"]["content"] == "part"
        assert events[1]["error"]["type"] == "upstream_error"
        assert "[DONE]" not in events
        assert stream.closed

    async def test_malformed_chunk_ends_stream(self) -> None:
        stream = _stream(make_chunk("ok"), ["not", "a", "chunk"], make_chunk("never"))
        events = await _relay_all(ResponseReshaper(model="m"), stream)

        assert len(events) == 2
        assert events[1]["error"]["type"] == "upstream_response_error"
        assert stream.closed

    async def test_premature_eof_is_error(self) -> None:
        events = await _relay_all(ResponseReshaper(model="m"), _stream(make_chunk("half")))
        assert events[-1]["error"]["message"] == "Upstream stream ended before completion"

    async def test_eof_after_finish_reason_completes(self) -> None:
        stream = _stream(make_chunk("done", "stop"))
        events = await _relay_all(ResponseReshaper(model="m"), stream)
        assert events[-1] == "[DONE]"

    async def test_caller_disconnect_closes_upstream(self) -> None:
        stream = _stream(make_chunk("a"), make_chunk("b"), make_chunk("c", "stop"))
        relay = ResponseReshaper(model="m").relay(stream)

        first = await relay.__anext__()
        assert "a" in first
        await relay.aclose()

        assert stream.closed
