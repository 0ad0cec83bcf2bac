"""Bearer token parsing and the optional access-token gate."""

import secrets
from collections.abc import Iterable

from mt_adapter.core.exceptions import InvalidAPIKeyError, ValidationError

_BEARER_SCHEME = "bearer"


def extract_bearer_token(authorization: str | None) -> str:
    """Return the token from an ``Authorization: Bearer <token>`` header.

    Raises ValidationError when the header is absent or not a bearer
    credential with exactly one non-empty token.
    """
    if not authorization:
        raise ValidationError(
            "Missing Authorization header", code="missing_authorization"
        )
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != _BEARER_SCHEME:
        raise ValidationError(
            "Authorization header must be 'Bearer <token>'",
            code="invalid_authorization",
        )
    return parts[1]


def verify_access_token(token: str, allowed_tokens: Iterable[str]) -> None:
    """Check the token against the configured allow-list.

    An empty allow-list accepts every token; verification is then left to
    the upstream service.
    """
    allowed = [t for t in allowed_tokens if t]
    if not allowed:
        return
    supplied = token.encode("utf-8")
    if not any(
        secrets.compare_digest(supplied, candidate.encode("utf-8"))
        for candidate in allowed
    ):
        raise InvalidAPIKeyError()
