"""Chat completion endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, StreamingResponse

from mt_adapter.api.deps import get_translation_handler, require_bearer_token
from mt_adapter.schemas.chat import ChatCompletionRequest
from mt_adapter.services.translation.handler import TranslationHandler
from mt_adapter.services.translation.reshaper import dump_envelope

router = APIRouter(prefix="/chat", tags=["chat"])

_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


@router.post("/completions", response_model=None)
async def create_chat_completion(
    body: ChatCompletionRequest,
    token: str = Depends(require_bearer_token),
    handler: TranslationHandler = Depends(get_translation_handler),
) -> JSONResponse | StreamingResponse:
    """Translate the user messages through the upstream model.

    Returns one chat.completion object, or a text/event-stream of
    chat.completion.chunk events ending in ``data: [DONE]`` when
    ``stream`` is true.
    """
    if body.stream:
        events = await handler.open_stream(body, caller_token=token)
        return StreamingResponse(
            events,
            media_type="text/event-stream",
            headers=_STREAM_HEADERS,
        )

    response = await handler.complete(body, caller_token=token)
    return JSONResponse(content=dump_envelope(response))
