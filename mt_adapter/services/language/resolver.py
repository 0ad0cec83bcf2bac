"""Default target-language resolution.

Two-bucket policy applied to the user's text when the caller did not
name a target language:
  more CJK ideographs than Latin letters → "en"
  anything else, ties and empty text included → "zh"

Changing the tie or empty-text outcome changes the adapter's contract.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from mt_adapter.schemas.chat import ChatMessage
from mt_adapter.services.language.classifier import count_characters
from mt_adapter.services.translation.options import TranslationOptions

logger = structlog.get_logger(__name__)

ENGLISH = "en"
CHINESE = "zh"


def resolve_target_language(text: str | None) -> str:
    """Pick the default target language for ``text``."""
    counts = count_characters(text)
    if counts.cjk > counts.letters:
        return ENGLISH
    return CHINESE


def collect_user_text(messages: Iterable[ChatMessage]) -> str:
    """Join the content of every user message, in order."""
    return "\n".join(m.content for m in messages if m.role == "user")


def resolve_options(options: TranslationOptions, user_text: str) -> TranslationOptions:
    """Return options with a target language, inferring one if missing."""
    if options.target_language:
        return options
    target = resolve_target_language(user_text)
    logger.debug("target_language_inferred", target_language=target)
    return options.with_target(target)
