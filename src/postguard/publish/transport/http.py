"""HTTP transport via httpx with connection pooling."""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from postguard.errors import TransportError
from postguard.publish.transport.base import TransportBase, TransportResponse

logger = logging.getLogger(__name__)


class HTTPTransport(TransportBase):
    """Transport backed by a shared ``httpx.AsyncClient``.

    The client is created on first use and reused for every request
    (connection pooling).  Call :meth:`aclose` to close it.  An existing
    client can be injected, e.g. one built on ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url
        self._timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout, connect=10.0),
                follow_redirects=False,
            )
        return self._client

    async def send(
        self,
        endpoint: str,
        method: str = "POST",
        headers: Mapping[str, str] | None = None,
        body: Any = None,
    ) -> TransportResponse:
        client = self._get_client()
        try:
            resp = await client.request(
                method,
                endpoint,
                headers=dict(headers or {}),
                json=body,
            )
        except httpx.HTTPError as exc:
            # No status received; the request may or may not have arrived.
            logger.debug("%s %s failed: %s", method, endpoint, type(exc).__name__)
            raise TransportError(f"{type(exc).__name__}: {exc}") from exc

        try:
            json_body = resp.json() if resp.content else None
        except ValueError:
            json_body = None
        return TransportResponse(
            status=resp.status_code,
            headers={key.lower(): value for key, value in resp.headers.items()},
            json_body=json_body,
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
