"""Guards for the workflow REST endpoints."""

from __future__ import annotations

import hmac
from typing import TYPE_CHECKING

from litestar.exceptions import NotAuthorizedException

if TYPE_CHECKING:
    from litestar.connection import ASGIConnection
    from litestar.handlers.base import BaseRouteHandler
    from litestar.types import Guard

__all__ = ["bearer_token_guard"]


def bearer_token_guard(token: str) -> Guard:
    """Build a guard that admits requests carrying ``Authorization: Bearer <token>``.

    Args:
        token: The expected API token. Must not be empty.

    Returns:
        A Litestar guard.

    Example:
        >>> OpsAssistantPluginConfig(services=services, api_guards=[bearer_token_guard("s3cret")])
    """
    if not token:
        msg = "bearer_token_guard needs a non-empty token"
        raise ValueError(msg)
    expected = f"Bearer {token}".encode()

    def guard(connection: ASGIConnection, _: BaseRouteHandler) -> None:
        supplied = connection.headers.get("authorization", "").encode()
        if not hmac.compare_digest(supplied, expected):
            raise NotAuthorizedException(detail="Missing or invalid API token")

    return guard
