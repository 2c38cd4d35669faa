"""
Classification of provider output into the flow error taxonomy.

Providers disagree on how they report failures: some use 4xx statuses,
others return HTTP 200 with an ``error`` field in the body. Every response
the flow engine receives goes through this module so that a provider error
is never mistaken for success.
"""

import logging
from typing import Any

from authflow.core.domain import CallbackParams
from authflow.core.exceptions import (
    ProfileFetchError,
    TokenExchangeError,
    TransportError,
)
from authflow.core.ports import TransportResponse


logger = logging.getLogger(__name__)

REDIRECT_FALLBACK_MESSAGE = "Oauth failed during redirect"

ERROR_KEYS = ("error", "error_description")


def has_provider_error(body: Any) -> bool:
    """Check whether a parsed payload carries a provider error, whatever its status."""
    return isinstance(body, dict) and any(key in body for key in ERROR_KEYS)


def provider_error_code(body: dict[str, Any]) -> str | None:
    """
    Extract the machine-readable error code.

    Handles both ``{"error": "invalid_grant"}`` and the nested
    ``{"error": {"code": 498, ...}}`` form.
    """
    error = body.get("error")
    if isinstance(error, dict):
        code = error.get("code") or error.get("error")
        return str(code) if code is not None else None
    if error is None or error == "":
        return None
    return str(error)


def provider_error_message(body: dict[str, Any]) -> str:
    """
    Extract a human-readable message from a provider error payload.

    Prefers ``error_description``, then a string ``error``, then the
    ``message`` of a nested error object.
    """
    description = body.get("error_description")
    if description:
        return str(description)

    error = body.get("error")
    if isinstance(error, dict):
        nested = error.get("message") or error.get("error_description")
        if nested:
            return str(nested)
        code = error.get("code")
        if code is not None:
            return f"Provider error {code}"
    elif error:
        return str(error)

    return "Unknown provider error"


def parse_redirect_error(callback: CallbackParams) -> str:
    """
    Build the message for a callback that arrived without a code.

    Args:
        callback: Query parameters from the provider redirect

    Returns:
        "<description>. Learn more: <uri>" when both are present,
        otherwise a generic fallback message
    """
    if callback.error_description and callback.error_uri:
        return f"{callback.error_description}. Learn more: {callback.error_uri}"
    return REDIRECT_FALLBACK_MESSAGE


def classify_token_response(response: TransportResponse) -> dict[str, Any]:
    """
    Classify a token endpoint response.

    Args:
        response: Raw transport response from the token endpoint

    Returns:
        The parsed token payload

    Raises:
        TokenExchangeError: Provider reported an error (any status) or the
            payload is not a JSON object
        TransportError: Non-2xx status with no parseable body
    """
    body = response.body

    if has_provider_error(body):
        message = provider_error_message(body)
        logger.warning(
            f"Token endpoint returned provider error: {message}",
            extra={"status_code": response.status_code},
        )
        raise TokenExchangeError(
            message,
            status_code=response.status_code,
            raw=body,
            error=provider_error_code(body),
        )

    if not response.is_success:
        if body is None:
            raise TransportError(
                f"Token endpoint returned HTTP {response.status_code} "
                "with no parseable body"
            )
        raise TokenExchangeError(
            f"Token endpoint returned HTTP {response.status_code}",
            status_code=response.status_code,
            raw=body,
        )

    if not isinstance(body, dict):
        raise TokenExchangeError(
            "Token endpoint returned an unparseable body",
            status_code=response.status_code,
            raw=response.text,
        )

    return body


def classify_profile_response(response: TransportResponse) -> dict[str, Any]:
    """
    Classify a profile endpoint response.

    Args:
        response: Raw transport response from the profile endpoint

    Returns:
        The parsed profile payload

    Raises:
        ProfileFetchError: Provider reported an error or the payload is
            not a JSON object
        TransportError: Non-2xx status with no parseable body
    """
    body = response.body

    if has_provider_error(body):
        raise ProfileFetchError(
            provider_error_message(body),
            status_code=response.status_code,
            raw=body,
        )

    if not response.is_success:
        if body is None:
            raise TransportError(
                f"Profile endpoint returned HTTP {response.status_code} "
                "with no parseable body"
            )
        raise ProfileFetchError(
            f"Profile endpoint returned HTTP {response.status_code}",
            status_code=response.status_code,
            raw=body,
        )

    if not isinstance(body, dict):
        raise ProfileFetchError(
            "Profile endpoint returned an unparseable body",
            status_code=response.status_code,
            raw=response.text,
        )

    return body
