"""Translation options carried in the caller's system message.

The system message is expected to hold a JSON object, optionally wrapped in
prose or a fenced code block:

    {"target_language": "ja", "terms": [{"source": "API", "target": "API"}]}

``target_language`` is the only key with special handling. Every other key is
opaque passthrough forwarded to the upstream request unchanged. Anything that
does not parse degrades to empty options; it never fails the request.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Mapping

import structlog

logger = structlog.get_logger(__name__)

TARGET_LANGUAGE_KEY = "target_language"


def _frozen(mapping: Mapping[str, Any] | None = None) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class TranslationOptions:
    """Resolved per-request translation configuration."""

    target_language: str | None = None
    passthrough: Mapping[str, Any] = field(default_factory=_frozen)

    def __post_init__(self) -> None:
        if not isinstance(self.passthrough, MappingProxyType):
            object.__setattr__(self, "passthrough", _frozen(self.passthrough))

    @property
    def is_empty(self) -> bool:
        return self.target_language is None and not self.passthrough

    def with_target(self, target_language: str) -> TranslationOptions:
        return replace(self, target_language=target_language)


def _load_object(text: str) -> dict[str, Any] | None:
    try:
        value = json.loads(text)
    except (ValueError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


def _extract_json_object(content: str) -> dict[str, Any] | None:
    """Parse the whole content, else the span between the outer braces."""
    stripped = content.strip()
    if not stripped:
        return None
    parsed = _load_object(stripped)
    if parsed is not None:
        return parsed
    start = stripped.find("{")
    end = stripped.rfind("}")
    if start == -1 or end <= start:
        return None
    return _load_object(stripped[start : end + 1])


def parse_translation_options(system_content: str | None) -> TranslationOptions:
    """Build TranslationOptions from the system message content.

    Returns empty options when there is no system message or it does not
    hold a JSON object. A missing or unusable ``target_language`` leaves the
    target unset so the default-language resolver runs.
    """
    if system_content is None:
        return TranslationOptions()

    payload = _extract_json_object(system_content)
    if payload is None:
        logger.debug(
            "translation_options_unparseable",
            content_len=len(system_content),
        )
        return TranslationOptions()

    raw_target = payload.pop(TARGET_LANGUAGE_KEY, None)
    target = raw_target.strip() if isinstance(raw_target, str) else ""
    if raw_target is not None and not target:
        logger.debug("target_language_ignored", value_type=type(raw_target).__name__)

    return TranslationOptions(
        target_language=target or None,
        passthrough=payload,
    )
