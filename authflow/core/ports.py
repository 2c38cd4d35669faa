"""
Port definitions (interfaces) for the core domain.

Ports define the contracts between the OAuth2 flow engine and external
systems. Infrastructure adapters implement these ports.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Protocol


@dataclass(frozen=True)
class TransportResponse:
    """
    Response returned by an HttpTransport.

    ``body`` is the parsed JSON payload, or None when the body is empty or
    not valid JSON. ``text`` always holds the raw body.
    """

    status_code: int
    body: Any = None
    text: str = ""

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300


class HttpTransport(Protocol):
    """
    Port (interface) for outbound HTTP requests.

    Implemented by infrastructure adapters (e.g., HttpxTransport). Network
    failures and timeouts must be raised as TransportError.
    """

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
        Perform a request.

        Args:
            method: HTTP method
            url: Absolute URL
            headers: Request headers
            params: Query parameters
            data: Form-encoded body
            json: JSON body

        Returns:
            Status code and parsed body

        Raises:
            TransportError: On network errors or timeouts
        """
        ...


class ConfigProvider(Protocol):
    """Port (interface) for reading provider configuration."""

    def get(self, key: str) -> Mapping[str, Any] | None:
        """
        Return the configuration mapping for a provider key.

        The mapping holds client_id, client_secret, redirect_uri and
        optionally headers. Returns None if nothing is configured.
        """
        ...
