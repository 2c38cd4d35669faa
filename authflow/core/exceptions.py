"""
Domain exceptions for the OAuth2 login flow.

Every step of the flow either returns a typed value or raises exactly one
of these. They are caught by the centralized exception handler in
authflow/main.py and rendered using their ``kind`` tag.
"""

from typing import Any


class FlowError(Exception):
    """Base exception for every OAuth2 flow failure."""

    kind = "flow"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(FlowError):
    """
    Raised when provider configuration is missing or invalid.

    Raised at construction time so no flow is ever attempted with a
    broken configuration.
    """

    kind = "config"


class RedirectError(FlowError):
    """
    Raised when the provider redirected back without an authorization code.

    The user denied access or the provider failed. The caller can show the
    message and let the user retry.
    """

    kind = "redirect"

    def __init__(
        self,
        message: str,
        error: str | None = None,
        error_uri: str | None = None,
    ):
        super().__init__(message)
        self.error = error
        self.error_uri = error_uri


class InvalidStateError(FlowError):
    """
    Raised when the callback state does not match the original state.

    Treated as a potential CSRF attempt: no token exchange is performed.
    """

    kind = "invalid_state"

    def __init__(self, message: str = "Invalid oauth state"):
        super().__init__(message)


class TokenExchangeError(FlowError):
    """
    Raised when the token endpoint reported an error or returned an
    unusable payload.

    Carries the raw provider response for diagnostics.
    """

    kind = "token_exchange"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        raw: Any = None,
        error: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.raw = raw
        self.error = error


class TransportError(FlowError):
    """
    Raised on network failure, timeout or an empty non-2xx response.

    Retryable by the caller. The underlying exception (if any) is kept on
    ``cause`` and chained as ``__cause__``.
    """

    kind = "transport"

    def __init__(self, message: str, cause: BaseException | None = None):
        super().__init__(message)
        self.cause = cause


class ProfileFetchError(FlowError):
    """Raised when the profile endpoint returned an unusable payload."""

    kind = "profile_fetch"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        raw: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.raw = raw
