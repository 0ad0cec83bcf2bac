"""Abstract upstream translation provider interface.

Business logic never imports a concrete provider directly.
The concrete provider is instantiated once in the FastAPI lifespan
and injected everywhere via Depends().
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from mt_adapter.services.translation.builder import UpstreamRequest


class UpstreamStream:
    """An open upstream event stream.

    Iterating yields each decoded upstream chunk in arrival order and ends
    when the upstream does. aclose() stops the read and releases the
    upstream connection; it is safe to call more than once.
    """

    def __init__(
        self,
        chunks: AsyncIterator[dict[str, Any]],
        close: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self._chunks = chunks
        self._close = close
        self._closed = False

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        return self._chunks

    @property
    def closed(self) -> bool:
        return self._closed

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._chunks, "aclose", None)
        try:
            if aclose is not None:
                await aclose()
        finally:
            if self._close is not None:
                await self._close()


class TranslationProvider(ABC):
    """Abstract base class for the upstream translation endpoint."""

    @abstractmethod
    async def complete(
        self,
        request: UpstreamRequest,
        api_key: str | None = None,
    ) -> dict[str, Any]:
        """Send a non-streaming request and return the decoded JSON body.

        Args:
            request: The fully built upstream request.
            api_key: Per-request upstream credential. None uses the
                provider's configured key.

        Returns:
            The upstream response body as a dict.

        Raises:
            UpstreamError: Network failure, timeout, or non-2xx status.
            ShapingError: The body is not a JSON object.
        """
        ...

    @abstractmethod
    async def open_stream(
        self,
        request: UpstreamRequest,
        api_key: str | None = None,
    ) -> UpstreamStream:
        """Send a streaming request and return the open event stream.

        Returns only after the upstream accepted the request, so status
        and connection failures surface here rather than mid-stream.

        Raises:
            UpstreamError: Network failure, timeout, or non-2xx status.
        """
        ...

    async def aclose(self) -> None:
        """Release pooled connections. Called once at shutdown."""
        return None
