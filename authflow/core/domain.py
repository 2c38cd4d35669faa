"""
Core domain models for the OAuth2 authorization code flow.

These models represent providers, configuration and login results and are
independent of any HTTP client or web framework.
"""

from typing import Any, Literal, Mapping
from urllib.parse import urlparse

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
)


def _is_absolute_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme in ("http", "https") and parsed.netloc)


def join_url(base_url: str, path: str) -> str:
    """
    Join a provider base URL and an endpoint path.

    Absolute paths (full URLs) are returned unchanged so a provider can host
    its profile endpoint outside of the OAuth base URL.
    """
    if _is_absolute_url(path):
        return path
    if not path:
        return base_url
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


class ProviderDefinition(BaseModel):
    """
    Declarative description of one OAuth2 identity provider.

    One record per provider replaces one class per provider: the flow
    engine reads everything provider-specific from here.
    """

    name: str = Field(description="Provider key (arcgis, github)")
    base_url: str = Field(description="Absolute base URL of the OAuth2 endpoints")
    authorize_path: str = Field(default="authorize")
    token_path: str = Field(default="token")
    profile_url: str = Field(
        description="Profile endpoint, absolute or relative to base_url"
    )
    profile_token_location: Literal["query", "header"] = "header"
    profile_token_param: str = "token"
    profile_params: dict[str, str] = Field(default_factory=dict)
    profile_mapping: dict[str, str] = Field(
        default_factory=dict,
        description="Canonical identity field -> dotted profile path",
    )
    scope_separator: str = " "
    supports_state: bool = True
    require_state: bool = Field(
        default=False,
        description="Reject callbacks that omit state (only a mismatch fails otherwise)",
    )
    token_method: Literal["POST", "GET"] = "POST"
    token_encoding: Literal["form", "json"] = "form"
    access_token_fields: tuple[str, ...] = ("access_token", "token")
    expiry_path: str | None = Field(
        default=None, description="Dotted path to an absolute epoch expiry"
    )
    expires_in_path: str | None = Field(
        default=None, description="Dotted path to a lifetime in seconds"
    )
    default_scopes: tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure the base URL is absolute."""
        if not _is_absolute_url(v):
            raise ValueError(f"base_url must be an absolute URL, got {v!r}")
        return v

    @property
    def authorize_url(self) -> str:
        return join_url(self.base_url, self.authorize_path)

    @property
    def token_url(self) -> str:
        return join_url(self.base_url, self.token_path)

    @property
    def resolved_profile_url(self) -> str:
        return join_url(self.base_url, self.profile_url)


class ProviderConfig(BaseModel):
    """
    Client configuration for one provider.

    Immutable and owned by a single OAuth2FlowService. Safe to share across
    concurrent login attempts.
    """

    client_id: str = Field(description="OAuth2 client id")
    client_secret: SecretStr = Field(description="OAuth2 client secret")
    redirect_uri: str = Field(description="Callback URL registered with the provider")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra headers for token requests"
    )
    provider: ProviderDefinition

    model_config = ConfigDict(frozen=True)

    @field_validator("client_id")
    @classmethod
    def validate_client_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("client_id must not be empty")
        return v

    @field_validator("client_secret")
    @classmethod
    def validate_client_secret(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value().strip():
            raise ValueError("client_secret must not be empty")
        return v

    @field_validator("redirect_uri")
    @classmethod
    def validate_redirect_uri(cls, v: str) -> str:
        if not _is_absolute_url(v):
            raise ValueError(f"redirect_uri must be an absolute URL, got {v!r}")
        return v

    @property
    def base_url(self) -> str:
        return self.provider.base_url

    @property
    def authorize_path(self) -> str:
        return self.provider.authorize_path

    @property
    def token_path(self) -> str:
        return self.provider.token_path

    @property
    def scope_separator(self) -> str:
        return self.provider.scope_separator

    @property
    def supports_state(self) -> bool:
        return self.provider.supports_state

    def redacted(self) -> dict[str, Any]:
        """Configuration as a dict safe for logging (secret masked)."""
        return {
            "provider": self.provider.name,
            "client_id": self.client_id,
            "client_secret": "***",
            "redirect_uri": self.redirect_uri,
            "headers": sorted(self.headers),
        }


class AuthorizationRequest(BaseModel):
    """A single login attempt's authorization parameters."""

    scopes: list[str] = Field(default_factory=list)
    state: str | None = None
    extra_params: dict[str, str] = Field(default_factory=dict)


class CallbackParams(BaseModel):
    """Raw query parameters from the provider's redirect back to us."""

    code: str | None = None
    state: str | None = None
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    @classmethod
    def from_query(cls, query: Mapping[str, Any]) -> "CallbackParams":
        """
        Build callback params from a query string mapping.

        Empty values are treated as absent.
        """

        def _value(key: str) -> str | None:
            value = query.get(key)
            if value is None or value == "":
                return None
            return str(value)

        return cls(
            code=_value("code"),
            state=_value("state"),
            error=_value("error"),
            error_description=_value("error_description"),
            error_uri=_value("error_uri"),
        )


class TokenResponse(BaseModel):
    """Result of a successful authorization code exchange."""

    access_token: str
    refresh_token: str | None = None
    expires_at: int | None = Field(
        default=None,
        description="Expiry as Unix epoch seconds, None when unknown",
    )
    raw: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class Identity(BaseModel):
    """Canonical, provider-agnostic user identity."""

    id: str = ""
    name: str = ""
    email: str | None = None
    nickname: str = ""
    avatar_url: str | None = None
    original: dict[str, Any] = Field(default_factory=dict)
    token: TokenResponse

    model_config = ConfigDict(frozen=True)

    def to_public_dict(self) -> dict[str, Any]:
        """Serialize for API responses, without the raw token payload."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "nickname": self.nickname,
            "avatar_url": self.avatar_url,
            "original": self.original,
            "token": {
                "access_token": self.token.access_token,
                "refresh_token": self.token.refresh_token,
                "expires_at": self.token.expires_at,
            },
        }
