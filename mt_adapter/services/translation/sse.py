"""Server-sent event framing for the streaming relay."""

from __future__ import annotations

import json
from typing import Any

DONE_SENTINEL = "[DONE]"


def encode_event(payload: dict[str, Any] | str) -> str:
    """Frame one outgoing event."""
    data = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False)
    return f"data: {data}\n\n"


def encode_done() -> str:
    return encode_event(DONE_SENTINEL)
