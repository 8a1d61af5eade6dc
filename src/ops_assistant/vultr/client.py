"""Vultr instance directory client.

Lists the account's virtual machines and reboots them through the Vultr v2 REST
API. Pure request/response: no caching, no retry and no rate limiting.
"""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError

from ops_assistant.exceptions import RebootFailedError, UpstreamMalformedError, UpstreamUnavailableError

__all__ = ["DEFAULT_API_URL", "InstanceDirectoryClient", "InstanceRecord"]

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.vultr.com/v2"
PAGE_SIZE = 100
INSTANCE_ID_PATTERN = re.compile(r"[A-Za-z0-9-]+")


class InstanceRecord(BaseModel):
    """A managed virtual machine."""

    id: str = Field(..., description="Virtual machine ID")
    label: str = Field("", description="Virtual machine label")
    power_status: str = Field("", description="Power status (running, stopped)")
    server_status: str = Field("", description="Server status (ok, none, locked, installing, booting)")
    status: str = Field("", description="Subscription status (active, pending, suspended)")
    tags: list[str] = Field(default_factory=list, description="Tags associated with the virtual machine")


class InstanceDirectoryClient:
    """Async client for the instance endpoints of the Vultr API.

    Usable as an async context manager; an injected ``client`` is left open.

    Example:
        >>> async with InstanceDirectoryClient(api_key) as directory:
        ...     instances = await directory.list_instances()
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_API_URL,
        timeout: float = 20.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Vultr API key, sent as a bearer token.
            base_url: API root.
            timeout: Per-request timeout in seconds.
            client: Pre-configured HTTP client, mainly for tests.
        """
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {"Authorization": f"Bearer {api_key}"}

    async def __aenter__(self) -> InstanceDirectoryClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def list_instances(self) -> list[InstanceRecord]:
        """List every instance in the account, following pagination.

        Returns:
            The instances; empty when the account has none.

        Raises:
            UpstreamUnavailableError: On transport errors or non-2xx responses.
            UpstreamMalformedError: If a page lacks the ``instances`` collection or
                holds an invalid record.
        """
        instances: list[InstanceRecord] = []
        cursor: str | None = None

        while True:
            params: dict[str, Any] = {"per_page": PAGE_SIZE}
            if cursor:
                params["cursor"] = cursor

            body = await self._get_json("/instances", params)
            raw_instances = body.get("instances")
            if not isinstance(raw_instances, list):
                raise UpstreamMalformedError("list_instances", "response has no 'instances' list")

            try:
                instances.extend(InstanceRecord.model_validate(item) for item in raw_instances)
            except ValidationError as e:
                raise UpstreamMalformedError("list_instances", f"invalid instance record: {e}") from e

            cursor = _next_cursor(body)
            if not cursor:
                break

        logger.debug("Listed %d instances", len(instances))
        return instances

    async def reboot(self, instance_id: str) -> None:
        """Reboot an instance.

        Args:
            instance_id: The instance to reboot.

        Raises:
            RebootFailedError: If the ID is not a plain instance ID, or the request
                fails or is not acknowledged.
        """
        if not INSTANCE_ID_PATTERN.fullmatch(instance_id):
            logger.warning("Refusing to reboot malformed instance ID %r", instance_id)
            raise RebootFailedError(instance_id, "malformed instance ID")

        url = f"{self.base_url}/instances/{instance_id}/reboot"
        try:
            response = await self._client.post(url, headers=self._headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning("Reboot of %s rejected with HTTP %s", instance_id, e.response.status_code)
            raise RebootFailedError(instance_id, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.warning("Reboot of %s failed: %s", instance_id, e)
            raise RebootFailedError(instance_id, e) from e

        logger.info("Rebooted instance %s", instance_id)

    async def _get_json(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        operation = "list_instances"
        try:
            response = await self._client.get(f"{self.base_url}{path}", params=params, headers=self._headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailableError(operation, e.response.status_code, e) from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(operation, cause=e) from e

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamMalformedError(operation, "response is not JSON") from e

        if not isinstance(body, dict):
            raise UpstreamMalformedError(operation, "response is not an object")
        return body


def _next_cursor(body: dict[str, Any]) -> str | None:
    meta = body.get("meta")
    if not isinstance(meta, dict):
        return None
    links = meta.get("links")
    if not isinstance(links, dict):
        return None
    cursor = links.get("next")
    return cursor if isinstance(cursor, str) and cursor else None
