"""
HTTP transport adapter backed by httpx.
"""

import logging
from typing import Any, Mapping

import httpx

from authflow.core.exceptions import TransportError
from authflow.core.ports import TransportResponse


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class HttpxTransport:
    """
    HttpTransport implementation using httpx.AsyncClient.

    When no client is given, a short-lived client is created per request.
    A shared client is reused across requests and closed by aclose().
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._client = client
        self._timeout = timeout

    @staticmethod
    def _to_response(response: httpx.Response) -> TransportResponse:
        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None
        return TransportResponse(
            status_code=response.status_code,
            body=body,
            text=response.text,
        )

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
        data: Mapping[str, str] | None = None,
        json: Any = None,
    ) -> TransportResponse:
        """
        Perform an HTTP request.

        Non-2xx responses are returned, not raised: the caller classifies them.

        Raises:
            TransportError: On network errors and timeouts
        """
        kwargs: dict[str, Any] = {"headers": dict(headers or {})}
        if params:
            kwargs["params"] = dict(params)
        if data is not None:
            kwargs["data"] = dict(data)
        if json is not None:
            kwargs["json"] = json

        try:
            if self._client is not None:
                response = await self._client.request(method, url, **kwargs)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Timeout calling {method} {url}: {e}")
            raise TransportError(f"Timeout calling {url}", cause=e) from e
        except httpx.RequestError as e:
            logger.error(f"Network error calling {method} {url}: {e}")
            raise TransportError(f"Network error calling {url}: {e}", cause=e) from e

        return self._to_response(response)

    async def aclose(self) -> None:
        """Close the shared client, if any."""
        if self._client is not None:
            await self._client.aclose()
