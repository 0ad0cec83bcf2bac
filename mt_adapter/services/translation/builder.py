"""Upstream request construction.

The upstream translation model takes its configuration in a
``translation_options`` object rather than a system prompt, so the caller's
system message is consumed here and never forwarded.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from mt_adapter.schemas.chat import ChatMessage
from mt_adapter.services.translation.options import TranslationOptions

UPSTREAM_TARGET_KEY = "target_lang"


@dataclass(frozen=True)
class UpstreamRequest:
    """Wire payload for one upstream call. Owned by a single request."""

    model: str
    messages: tuple[dict[str, str], ...]
    stream: bool
    target_language: str
    translation_options: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [dict(m) for m in self.messages],
            "stream": self.stream,
            "translation_options": dict(self.translation_options),
        }


def build_upstream_request(
    messages: Iterable[ChatMessage],
    options: TranslationOptions,
    stream: bool,
    model: str,
    *,
    model_override: str | None = None,
    default_options: Mapping[str, Any] | None = None,
) -> UpstreamRequest:
    """Merge resolved options with the caller's messages.

    Option precedence, lowest first: configured defaults, caller
    passthrough, resolved target language.
    """
    if not options.target_language:
        raise ValueError("target language must be resolved before building")

    translation_options: dict[str, Any] = dict(default_options or {})
    translation_options.update(options.passthrough)
    translation_options[UPSTREAM_TARGET_KEY] = options.target_language

    forwarded = tuple(
        {"role": m.role, "content": m.content}
        for m in messages
        if m.role != "system"
    )

    return UpstreamRequest(
        model=model_override or model,
        messages=forwarded,
        stream=stream,
        target_language=options.target_language,
        translation_options=translation_options,
    )
