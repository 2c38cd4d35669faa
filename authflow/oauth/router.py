"""
OAuth2 login API endpoints.

- GET /oauth/providers - List configured providers
- GET /oauth/{provider}/connect - Redirect to the provider
- GET /oauth/{provider}/callback - Complete login, return the identity
- POST /oauth/{provider}/identity - Resolve an identity from an access token

Flow errors are not handled here; they propagate to the exception handler
in authflow/main.py.
"""

import logging
from typing import Annotated

from authlib.common.security import generate_token
from fastapi import APIRouter, Query, Request, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, Field

from authflow.core.domain import CallbackParams
from authflow.oauth.config import get_configured_providers
from authflow.oauth.dependencies import Config, FlowService, Settings, ValidProvider


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/oauth", tags=["oauth"])

STATE_LENGTH = 32


def state_session_key(provider: str) -> str:
    """Session key holding the pending state for a provider."""
    return f"oauth_state:{provider}"


class TokenIdentityRequest(BaseModel):
    """Request body for resolving an identity from an access token."""

    access_token: str = Field(min_length=1, description="Provider access token")


@router.get("/providers")
async def list_providers(settings: Settings, config_provider: Config):
    """List providers that are enabled and configured."""
    return {
        "status": "success",
        "providers": get_configured_providers(settings, config_provider),
    }


@router.get("/{provider}/connect")
async def connect(
    provider: ValidProvider,
    request: Request,
    flow: FlowService,
    scopes: Annotated[list[str] | None, Query()] = None,
):
    """
    Start the OAuth2 authorization flow.

    Generates a one-shot state (when the provider supports it), keeps it in
    the session and redirects to the provider's authorization page.

    Args:
        provider: OAuth provider name
        request: Starlette request (for the session)
        flow: Flow service for the provider
        scopes: Scopes to request (provider defaults if omitted)

    Returns:
        Redirect to provider's authorization page
    """
    state = None
    if flow.config.supports_state:
        state = generate_token(STATE_LENGTH)
        request.session[state_session_key(provider)] = state

    logger.info(
        f"Starting OAuth flow for provider: {provider}",
        extra={"provider": provider},
    )

    return RedirectResponse(
        url=flow.get_redirect_url(state=state, scopes=scopes),
        status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    )


@router.get("/{provider}/callback")
async def callback(
    provider: ValidProvider,
    request: Request,
    flow: FlowService,
    settings: Settings,
):
    """
    Handle the OAuth2 callback from the provider.

    The pending state is removed from the session whatever the outcome.

    Returns:
        The normalized identity
    """
    original_state = request.session.pop(state_session_key(provider), None)
    params = CallbackParams.from_query(request.query_params)

    identity = await flow.handle_callback(
        params, original_state, timeout=settings.timeout
    )

    return {"status": "success", "identity": identity.to_public_dict()}


@router.post("/{provider}/identity")
async def identity_by_token(
    provider: ValidProvider,
    body: TokenIdentityRequest,
    flow: FlowService,
    settings: Settings,
):
    """
    Resolve an identity from an existing access token.

    Only the provider profile endpoint is called.
    """
    identity = await flow.get_identity_by_token(
        body.access_token, timeout=settings.timeout
    )
    return {"status": "success", "identity": identity.to_public_dict()}
