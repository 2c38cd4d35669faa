"""
FastAPI dependencies for OAuth endpoints.

Provides dependency injection for provider validation and flow services.
"""

import logging
from functools import lru_cache
from typing import Annotated

import httpx
from fastapi import Depends, HTTPException, status

from authflow.core.oauth_service import OAuth2FlowService
from authflow.core.ports import ConfigProvider, HttpTransport
from authflow.infrastructure.http_transport import HttpxTransport
from authflow.infrastructure.oauth_providers import SUPPORTED_PROVIDERS
from authflow.oauth.config import (
    OAuthSettings,
    create_flow_service,
    get_config_provider,
    get_oauth_settings,
    is_provider_configured,
)


logger = logging.getLogger(__name__)


@lru_cache()
def get_transport() -> HttpTransport:
    """
    Provide the HTTP transport dependency.

    Uses lru_cache for singleton behavior - same instance across requests.
    The shared httpx client is closed on application shutdown.
    """
    timeout = get_oauth_settings().timeout
    return HttpxTransport(client=httpx.AsyncClient(timeout=timeout), timeout=timeout)


Settings = Annotated[OAuthSettings, Depends(get_oauth_settings)]
Config = Annotated[ConfigProvider, Depends(get_config_provider)]


async def validate_provider(
    provider: str,
    settings: Settings,
    config_provider: Config,
) -> str:
    """
    Validate that the provider is supported, enabled and configured.

    Args:
        provider: OAuth provider name from path

    Returns:
        Validated provider name

    Raises:
        HTTPException: If provider is invalid or not configured
    """
    if provider not in SUPPORTED_PROVIDERS or provider not in settings.providers:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown provider: {provider}. Supported: {settings.providers}",
        )

    if not is_provider_configured(provider, config_provider):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Provider '{provider}' is not configured",
        )

    return provider


ValidProvider = Annotated[str, Depends(validate_provider)]


def get_flow_service(
    provider: ValidProvider,
    config_provider: Config,
    transport: Annotated[HttpTransport, Depends(get_transport)],
) -> OAuth2FlowService:
    """Provide the flow service for the requested provider."""
    return create_flow_service(provider, config_provider, transport)


# Type alias for cleaner dependency injection
FlowService = Annotated[OAuth2FlowService, Depends(get_flow_service)]
