"""
OAuth2 configuration loading.

Provider credentials come from a ConfigProvider (environment variables by
default). A provider's configuration is validated when its flow service is
built, so a misconfigured provider fails at startup, not mid-login.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Mapping

from pydantic import ValidationError

from authflow.core.domain import ProviderConfig, ProviderDefinition
from authflow.core.exceptions import ConfigError
from authflow.core.oauth_service import OAuth2FlowService
from authflow.core.ports import ConfigProvider, HttpTransport
from authflow.infrastructure.oauth_providers import (
    SUPPORTED_PROVIDERS,
    get_provider_definition,
)


logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("client_id", "client_secret", "redirect_uri")

DEFAULT_TIMEOUT = 10.0


@dataclass
class OAuthSettings:
    """
    Application-level OAuth settings.

    Loaded from environment variables.
    """

    base_url: str
    providers: list[str] = field(default_factory=lambda: list(SUPPORTED_PROVIDERS))
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls) -> "OAuthSettings":
        """Load settings from environment variables."""
        providers_env = os.getenv("OAUTH_PROVIDERS")
        if providers_env:
            providers = [p.strip() for p in providers_env.split(",") if p.strip()]
        else:
            providers = list(SUPPORTED_PROVIDERS)

        timeout_env = os.getenv("OAUTH_TIMEOUT")
        try:
            timeout = float(timeout_env) if timeout_env else DEFAULT_TIMEOUT
        except ValueError as e:
            raise ConfigError(f"OAUTH_TIMEOUT must be a number, got {timeout_env!r}") from e

        return cls(
            base_url=os.getenv("BASE_URL", ""),
            providers=providers,
            timeout=timeout,
        )

    def get_callback_url(self, provider: str) -> str:
        """Generate callback URL for a provider."""
        return f"{self.base_url}/oauth/{provider}/callback"


class EnvConfigProvider:
    """
    ConfigProvider reading provider credentials from the environment.

    For provider ``arcgis`` it reads ARCGIS_CLIENT_ID, ARCGIS_CLIENT_SECRET,
    ARCGIS_REDIRECT_URI and ARCGIS_HEADERS (a JSON object). The redirect URI
    defaults to the provider callback under BASE_URL when that is set.
    """

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        base_url: str | None = None,
    ):
        self._environ = environ if environ is not None else os.environ
        self._base_url = base_url

    def get(self, key: str) -> dict[str, Any] | None:
        prefix = key.upper()
        client_id = self._environ.get(f"{prefix}_CLIENT_ID")
        client_secret = self._environ.get(f"{prefix}_CLIENT_SECRET")
        redirect_uri = self._environ.get(f"{prefix}_REDIRECT_URI")
        headers_raw = self._environ.get(f"{prefix}_HEADERS")

        if not any([client_id, client_secret, redirect_uri, headers_raw]):
            return None

        if not redirect_uri and self._base_url:
            redirect_uri = f"{self._base_url}/oauth/{key}/callback"

        headers: dict[str, str] = {}
        if headers_raw:
            try:
                parsed = json.loads(headers_raw)
            except json.JSONDecodeError as e:
                raise ConfigError(f"{prefix}_HEADERS is not valid JSON: {e}") from e
            if not isinstance(parsed, dict):
                raise ConfigError(f"{prefix}_HEADERS must be a JSON object")
            headers = {str(k): str(v) for k, v in parsed.items()}

        return {
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uri": redirect_uri,
            "headers": headers,
        }


class StaticConfigProvider:
    """ConfigProvider backed by an in-memory mapping of provider -> settings."""

    def __init__(self, values: Mapping[str, Mapping[str, Any]]):
        self._values = {k: dict(v) for k, v in values.items()}

    def get(self, key: str) -> dict[str, Any] | None:
        return self._values.get(key)


def load_provider_config(
    provider: str,
    config_provider: ConfigProvider,
    definition: ProviderDefinition | None = None,
) -> ProviderConfig:
    """
    Load and validate the configuration for a provider.

    Args:
        provider: Provider name
        config_provider: Source of credentials
        definition: Provider record (looked up by name if not given)

    Returns:
        Validated, immutable provider configuration

    Raises:
        ConfigError: Unknown provider, missing keys or invalid values
    """
    if definition is None:
        definition = get_provider_definition(provider)
    if definition is None:
        raise ConfigError(
            f"Unknown provider: {provider}. Supported: {SUPPORTED_PROVIDERS}"
        )

    values = config_provider.get(provider)
    if not values:
        raise ConfigError(f"Provider '{provider}' is not configured")

    missing = [key for key in REQUIRED_KEYS if not values.get(key)]
    if missing:
        raise ConfigError(
            f"Missing required configuration for '{provider}': {', '.join(missing)}"
        )

    try:
        config = ProviderConfig(
            client_id=values["client_id"],
            client_secret=values["client_secret"],
            redirect_uri=values["redirect_uri"],
            headers=dict(values.get("headers") or {}),
            provider=definition,
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration for '{provider}': {e}") from e

    logger.debug(f"Loaded OAuth config for {provider}", extra=config.redacted())
    return config


def create_flow_service(
    provider: str,
    config_provider: ConfigProvider,
    transport: HttpTransport,
) -> OAuth2FlowService:
    """Build a flow service for a provider, failing fast on bad configuration."""
    return OAuth2FlowService(load_provider_config(provider, config_provider), transport)


def is_provider_configured(provider: str, config_provider: ConfigProvider) -> bool:
    """Check if a provider has a valid configuration."""
    try:
        load_provider_config(provider, config_provider)
    except ConfigError:
        return False
    return True


def get_configured_providers(
    settings: OAuthSettings, config_provider: ConfigProvider
) -> list[str]:
    """List enabled providers with a valid configuration."""
    return [
        provider
        for provider in settings.providers
        if is_provider_configured(provider, config_provider)
    ]


@lru_cache()
def get_oauth_settings() -> OAuthSettings:
    """Get OAuth settings singleton."""
    return OAuthSettings.from_env()


@lru_cache()
def get_config_provider() -> ConfigProvider:
    """Get the environment-backed config provider singleton."""
    return EnvConfigProvider(base_url=get_oauth_settings().base_url or None)


def reset_oauth_config() -> None:
    """
    Reset cached settings and config provider.

    Useful for testing with different configurations.
    """
    get_oauth_settings.cache_clear()
    get_config_provider.cache_clear()
