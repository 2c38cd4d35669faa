"""
OAuth 2.0 provider definitions.

Each provider is a declarative ProviderDefinition record. Adding a
provider means adding a record here, not a class.
"""

from authflow.core.domain import ProviderDefinition


ARCGIS = ProviderDefinition(
    name="arcgis",
    base_url="https://www.arcgis.com/sharing/rest/oauth2",
    authorize_path="authorize",
    token_path="token",
    profile_url="https://www.arcgis.com/sharing/rest/community/self",
    profile_token_location="query",
    profile_token_param="token",
    profile_params={"f": "json"},
    profile_mapping={
        "id": "username",
        "name": "fullName",
        "email": "email",
        "nickname": "username",
        "avatar_url": "thumbnail",
    },
    scope_separator=" ",
    # ArcGIS does not round-trip state
    supports_state=False,
    expiry_path="result.expires",
)

GITHUB = ProviderDefinition(
    name="github",
    base_url="https://github.com/login/oauth",
    authorize_path="authorize",
    token_path="access_token",
    profile_url="https://api.github.com/user",
    profile_token_location="header",
    profile_mapping={
        "id": "id",
        "name": "name",
        "email": "email",
        "nickname": "login",
        "avatar_url": "avatar_url",
    },
    scope_separator=" ",
    supports_state=True,
    require_state=True,
    expires_in_path="expires_in",
    default_scopes=("read:user", "user:email"),
)


PROVIDERS: dict[str, ProviderDefinition] = {
    ARCGIS.name: ARCGIS,
    GITHUB.name: GITHUB,
}

# List of supported providers (for validation)
SUPPORTED_PROVIDERS = list(PROVIDERS)


def get_provider_definition(name: str) -> ProviderDefinition | None:
    """Look up a provider definition by name."""
    return PROVIDERS.get(name)
