"""
Core service for the OAuth 2.0 authorization code flow.

One OAuth2FlowService serves one provider configuration. It holds no
per-login state, so a single instance can run any number of concurrent
flows.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Mapping, Sequence

from authlib.common.urls import add_params_to_uri

from authflow.core.domain import (
    AuthorizationRequest,
    CallbackParams,
    Identity,
    ProviderConfig,
    TokenResponse,
)
from authflow.core.error_classifier import (
    classify_profile_response,
    classify_token_response,
    parse_redirect_error,
)
from authflow.core.exceptions import (
    InvalidStateError,
    RedirectError,
    TokenExchangeError,
    TransportError,
)
from authflow.core.normalizer import IdentityNormalizer, resolve_path
from authflow.core.ports import HttpTransport, TransportResponse


logger = logging.getLogger(__name__)


def coerce_epoch(value: Any) -> int | None:
    """
    Coerce a provider expiry value to integer seconds.

    Accepts ints, floats and numeric strings. Anything else is None.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            return int(value)
        if isinstance(value, str):
            text = value.strip()
            try:
                return int(text)
            except ValueError:
                return int(float(text))
    except (ValueError, OverflowError):
        return None
    return None


class OAuth2FlowService:
    """
    OAuth 2.0 authorization code flow for a single provider.

    Builds the authorize redirect, exchanges the code for a token, fetches
    the profile and normalizes it into an Identity.
    """

    def __init__(
        self,
        config: ProviderConfig,
        transport: HttpTransport,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.transport = transport
        self._clock = clock
        self._normalizer = IdentityNormalizer(config.provider.profile_mapping)

        logger.debug(
            f"Configured OAuth flow for provider: {config.provider.name}",
            extra={"config": config.redacted()},
        )

    @property
    def provider_name(self) -> str:
        return self.config.provider.name

    # ------------------------------------------------------------------
    # Authorization redirect
    # ------------------------------------------------------------------

    def build_redirect_url(
        self,
        scopes: Sequence[str],
        state: str | None = None,
        extra_options: Mapping[str, str] | None = None,
    ) -> str:
        """
        Build the provider authorization URL.

        State is only included when the provider supports it. Extra options
        are merged last and override the defaults.

        Args:
            scopes: Requested scopes, in order
            state: Opaque anti-CSRF value to round-trip
            extra_options: Additional query parameters

        Returns:
            Authorization URL to redirect the user to
        """
        params: dict[str, str] = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "response_type": "code",
            "scope": self.config.scope_separator.join(scopes),
        }
        if state is not None and self.config.supports_state:
            params["state"] = state
        if extra_options:
            params.update(extra_options)

        return add_params_to_uri(self.config.provider.authorize_url, params)

    def build_authorization_url(self, request: AuthorizationRequest) -> str:
        """Build the authorization URL for a login attempt."""
        return self.build_redirect_url(
            request.scopes, request.state, request.extra_params
        )

    def get_redirect_url(
        self,
        state: str | None = None,
        scopes: Sequence[str] | None = None,
        options: Mapping[str, str] | None = None,
    ) -> str:
        """Build the authorization URL, defaulting to the provider's scopes."""
        if scopes is None:
            scopes = self.config.provider.default_scopes
        return self.build_redirect_url(scopes, state, options)

    # ------------------------------------------------------------------
    # Outbound requests
    # ------------------------------------------------------------------

    def _deadline(self, timeout: float | None) -> float | None:
        if timeout is None:
            return None
        return asyncio.get_running_loop().time() + timeout

    async def _send(
        self, deadline: float | None, method: str, url: str, **kwargs: Any
    ) -> TransportResponse:
        """Send a request through the transport within the flow deadline."""
        if deadline is None:
            return await self.transport.request(method, url, **kwargs)

        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            raise TransportError(f"Deadline exceeded before request to {url}")

        try:
            async with asyncio.timeout(remaining):
                return await self.transport.request(method, url, **kwargs)
        except TimeoutError as e:
            raise TransportError(f"Request to {url} timed out", cause=e) from e

    # ------------------------------------------------------------------
    # Token exchange
    # ------------------------------------------------------------------

    async def exchange_code(
        self,
        code: str,
        redirect_uri: str | None = None,
        extra_grant_params: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> TokenResponse:
        """
        Exchange an authorization code for an access token.

        Args:
            code: Authorization code from the callback
            redirect_uri: Redirect URI used for the authorize request
                (defaults to the configured one)
            extra_grant_params: Parameters merged into the grant body
            timeout: Deadline in seconds for the request

        Returns:
            Parsed token response

        Raises:
            TokenExchangeError: Provider error or unusable token payload
            TransportError: Network failure, timeout or empty error response
        """
        return await self._exchange_code(
            code, redirect_uri, extra_grant_params, self._deadline(timeout)
        )

    async def _exchange_code(
        self,
        code: str,
        redirect_uri: str | None,
        extra_grant_params: Mapping[str, str] | None,
        deadline: float | None,
    ) -> TokenResponse:
        provider = self.config.provider
        grant: dict[str, str] = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": redirect_uri or self.config.redirect_uri,
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret.get_secret_value(),
        }
        if extra_grant_params:
            grant.update(extra_grant_params)

        headers = {"Accept": "application/json", **self.config.headers}
        kwargs: dict[str, Any] = {"headers": headers}
        if provider.token_method == "GET":
            kwargs["params"] = grant
        elif provider.token_encoding == "json":
            kwargs["json"] = grant
        else:
            kwargs["data"] = grant

        logger.info(
            f"Exchanging authorization code with provider: {provider.name}",
            extra={"provider": provider.name},
        )

        response = await self._send(
            deadline, provider.token_method, provider.token_url, **kwargs
        )
        body = classify_token_response(response)
        return self._parse_token(body, response.status_code)

    def _parse_token(self, body: dict[str, Any], status_code: int) -> TokenResponse:
        provider = self.config.provider

        access_token = None
        for field in provider.access_token_fields:
            value = body.get(field)
            if isinstance(value, str) and value:
                access_token = value
                break

        if access_token is None:
            raise TokenExchangeError(
                "Token response did not include an access token",
                status_code=status_code,
                raw=body,
            )

        refresh_token = body.get("refresh_token")
        if not isinstance(refresh_token, str) or not refresh_token:
            refresh_token = None

        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=self._parse_expiry(body),
            raw=body,
        )

    def _parse_expiry(self, body: dict[str, Any]) -> int | None:
        provider = self.config.provider

        expires_at = coerce_epoch(resolve_path(body, provider.expiry_path))
        if expires_at is not None:
            return expires_at

        expires_in = coerce_epoch(resolve_path(body, provider.expires_in_path))
        if expires_in is not None:
            return int(self._clock()) + expires_in

        return None

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    async def fetch_profile(
        self, access_token: str, timeout: float | None = None
    ) -> dict[str, Any]:
        """
        Fetch the provider profile for an access token.

        Raises:
            ProfileFetchError: Provider error or unusable profile payload
            TransportError: Network failure or timeout
        """
        return await self._fetch_profile(access_token, self._deadline(timeout))

    async def _fetch_profile(
        self, access_token: str, deadline: float | None
    ) -> dict[str, Any]:
        provider = self.config.provider
        params = dict(provider.profile_params)
        headers = {"Accept": "application/json"}

        if provider.profile_token_location == "query":
            params[provider.profile_token_param] = access_token
        else:
            headers["Authorization"] = f"Bearer {access_token}"

        response = await self._send(
            deadline,
            "GET",
            provider.resolved_profile_url,
            headers=headers,
            params=params,
        )
        return classify_profile_response(response)

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    def _validate_state(self, callback: CallbackParams, original_state: str | None):
        if not self.config.supports_state:
            return
        if not callback.state:
            if self.config.provider.require_state:
                raise InvalidStateError("Missing oauth state")
            return
        if callback.state != original_state:
            raise InvalidStateError()

    async def handle_callback(
        self,
        callback: CallbackParams | Mapping[str, Any],
        original_state: str | None = None,
        timeout: float | None = None,
    ) -> Identity:
        """
        Complete a login from the provider's redirect.

        Validates the callback, exchanges the code, fetches the profile and
        returns the normalized identity. The first failure propagates as is.

        Args:
            callback: Callback query parameters
            original_state: State issued with the authorization redirect
            timeout: Deadline in seconds for the whole flow

        Returns:
            Normalized identity with its token

        Raises:
            RedirectError: Callback has no code
            InvalidStateError: Callback state does not match
            TokenExchangeError: Token endpoint reported an error
            ProfileFetchError: Profile endpoint returned an unusable payload
            TransportError: Network failure or deadline exceeded
        """
        if not isinstance(callback, CallbackParams):
            callback = CallbackParams.from_query(callback)

        if not callback.code:
            message = parse_redirect_error(callback)
            logger.warning(
                f"OAuth redirect without code for provider: {self.provider_name}",
                extra={"provider": self.provider_name, "error": callback.error},
            )
            raise RedirectError(
                message, error=callback.error, error_uri=callback.error_uri
            )

        self._validate_state(callback, original_state)

        deadline = self._deadline(timeout)
        token = await self._exchange_code(
            callback.code,
            self.config.redirect_uri,
            {"grant_type": "authorization_code"},
            deadline,
        )
        profile = await self._fetch_profile(token.access_token, deadline)
        identity = self._normalizer.normalize(profile, token)

        logger.info(
            f"OAuth login completed for provider: {self.provider_name}",
            extra={"provider": self.provider_name, "identity_id": identity.id},
        )
        return identity

    async def get_identity_by_token(
        self, access_token: str, timeout: float | None = None
    ) -> Identity:
        """
        Resolve an identity from an existing access token.

        No state or code is involved and no token exchange is performed.
        Refresh token and expiry are unknown and left as None.
        """
        profile = await self.fetch_profile(access_token, timeout)
        token = TokenResponse(access_token=access_token)
        return self._normalizer.normalize(profile, token)
