"""Chat completion request/response schemas (OpenAI-compatible)."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant"]


class ChatMessage(BaseModel):
    """A single chat message."""

    role: Role
    content: str


class ChatCompletionRequest(BaseModel):
    """POST /v1/chat/completions request body.

    Sampling knobs such as temperature or max_tokens are accepted for client
    compatibility and ignored.
    """

    model_config = ConfigDict(extra="ignore")

    model: str = Field(..., min_length=1)
    messages: list[ChatMessage]
    stream: bool = False

    @property
    def system_content(self) -> str | None:
        """Content of the first system message, if any."""
        for message in self.messages:
            if message.role == "system":
                return message.content
        return None

    @property
    def has_user_message(self) -> bool:
        return any(m.role == "user" for m in self.messages)


class AssistantMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str


class Choice(BaseModel):
    index: int = 0
    message: AssistantMessage
    finish_reason: Literal["stop"] = "stop"


class ChatCompletionResponse(BaseModel):
    """Non-streaming response body."""

    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int
    model: str
    choices: list[Choice]
    usage: dict[str, Any] | None = None


class ChunkDelta(BaseModel):
    role: Literal["assistant"] | None = None
    content: str = ""


class ChunkChoice(BaseModel):
    index: int = 0
    delta: ChunkDelta
    finish_reason: str | None = None


class ChatCompletionChunk(BaseModel):
    """One server-sent event in a streaming response."""

    id: str
    object: Literal["chat.completion.chunk"] = "chat.completion.chunk"
    created: int
    model: str
    choices: list[ChunkChoice]
    usage: dict[str, Any] | None = None


class ModelCard(BaseModel):
    id: str
    object: Literal["model"] = "model"
    owned_by: str = "upstream"


class ModelList(BaseModel):
    """GET /v1/models response body."""

    object: Literal["list"] = "list"
    data: list[ModelCard]
