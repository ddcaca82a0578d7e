"""Async HTTP transport used by every provider."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from .config import request_timeout
from .exceptions import NetworkError

logger = logging.getLogger(__name__)


class HttpTransport:
    """Thin wrapper around ``httpx.AsyncClient`` for JSON POST requests.

    The response body is returned whatever the HTTP status so that backend
    error payloads reach the provider's own error handling.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._timeout = timeout if timeout is not None else request_timeout()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._timeout)

    async def post(
        self, url: str, headers: Mapping[str, str], body: Mapping[str, Any]
    ) -> str:
        request_headers = {"Content-Type": "application/json", **headers}
        logger.debug("POST %s", url)
        try:
            response = await self._client.post(
                url, headers=request_headers, json=body, timeout=self._timeout
            )
        # Non-ASCII header values (e.g. a pasted key) fail while encoding.
        except (httpx.HTTPError, httpx.InvalidURL, UnicodeEncodeError) as e:
            detail = str(e) or type(e).__name__
            raise NetworkError(f"HTTP request failed: {detail}") from e
        logger.debug("POST %s -> %s (%d bytes)", url, response.status_code, len(response.content))
        return response.text

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
