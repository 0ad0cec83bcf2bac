"""Custom exception classes for structured error handling.

Every exception carries the HTTP status it maps to and renders the stable
OpenAI-style error body via to_dict().
"""

from typing import Any


class AdapterError(Exception):
    """Base exception for all adapter errors."""

    def __init__(
        self,
        message: str,
        error_type: str = "internal_error",
        code: str | None = None,
        status_code: int = 500,
    ) -> None:
        self.message = message
        self.error_type = error_type
        self.code = code
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "message": self.message,
                "type": self.error_type,
                "code": self.code,
            }
        }


class ValidationError(AdapterError):
    """Malformed or incomplete caller input. Never retried."""

    def __init__(self, message: str = "Invalid request", code: str = "invalid_request") -> None:
        super().__init__(
            message=message,
            error_type="invalid_request_error",
            code=code,
            status_code=400,
        )


class InvalidAPIKeyError(AdapterError):
    def __init__(self, message: str = "Invalid API key") -> None:
        super().__init__(
            message=message,
            error_type="authentication_error",
            code="invalid_api_key",
            status_code=401,
        )


class UpstreamError(AdapterError):
    """Upstream network failure, timeout, or non-2xx status.

    The upstream's own status code is passed through when it sent one.
    """

    def __init__(
        self,
        message: str = "Upstream translation service failed",
        status_code: int = 500,
        code: str = "upstream_error",
    ) -> None:
        super().__init__(
            message=message,
            error_type="upstream_error",
            code=code,
            status_code=status_code,
        )


class UpstreamTimeoutError(UpstreamError):
    def __init__(self, message: str = "Upstream translation service timed out") -> None:
        super().__init__(message=message, status_code=500, code="upstream_timeout")


class ShapingError(AdapterError):
    """Upstream payload is missing the fields needed to build a response."""

    def __init__(self, message: str = "Malformed upstream response") -> None:
        super().__init__(
            message=message,
            error_type="upstream_response_error",
            code="malformed_upstream_response",
            status_code=500,
        )
