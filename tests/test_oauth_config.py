"""
Tests for OAuth configuration loading.
"""

import os
from unittest.mock import AsyncMock, patch

import pytest

from authflow.core.exceptions import ConfigError
from authflow.core.oauth_service import OAuth2FlowService
from authflow.infrastructure.oauth_providers import ARCGIS, SUPPORTED_PROVIDERS
from authflow.oauth.config import (
    EnvConfigProvider,
    OAuthSettings,
    StaticConfigProvider,
    create_flow_service,
    get_config_provider,
    get_configured_providers,
    get_oauth_settings,
    is_provider_configured,
    load_provider_config,
    reset_oauth_config,
)


VALID_ARCGIS = {
    "client_id": "arcgis-id",
    "client_secret": "arcgis-secret",
    "redirect_uri": "https://example.com/oauth/arcgis/callback",
}


class TestOAuthSettings:
    """Tests for OAuthSettings."""

    def test_from_env_loads_variables(self):
        env = {
            "BASE_URL": "https://example.com",
            "OAUTH_PROVIDERS": "arcgis, github",
            "OAUTH_TIMEOUT": "2.5",
        }

        with patch.dict(os.environ, env, clear=False):
            settings = OAuthSettings.from_env()

        assert settings.base_url == "https://example.com"
        assert settings.providers == ["arcgis", "github"]
        assert settings.timeout == 2.5

    def test_from_env_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = OAuthSettings.from_env()

        assert settings.base_url == ""
        assert settings.providers == SUPPORTED_PROVIDERS
        assert settings.timeout == 10.0

    def test_from_env_invalid_timeout_raises_config_error(self):
        with patch.dict(os.environ, {"OAUTH_TIMEOUT": "soon"}, clear=True):
            with pytest.raises(ConfigError, match="OAUTH_TIMEOUT"):
                OAuthSettings.from_env()

    def test_get_callback_url(self):
        settings = OAuthSettings(base_url="https://example.com")

        assert settings.get_callback_url("arcgis") == (
            "https://example.com/oauth/arcgis/callback"
        )

    def test_cached_settings_reset(self):
        with patch.dict(os.environ, {"BASE_URL": "https://one.example.com"}):
            reset_oauth_config()
            assert get_oauth_settings().base_url == "https://one.example.com"

        with patch.dict(os.environ, {"BASE_URL": "https://two.example.com"}):
            assert get_oauth_settings().base_url == "https://one.example.com"
            reset_oauth_config()
            assert get_oauth_settings().base_url == "https://two.example.com"
            assert isinstance(get_config_provider(), EnvConfigProvider)

        reset_oauth_config()


class TestEnvConfigProvider:
    """Tests for reading provider credentials from the environment."""

    def test_reads_provider_variables(self):
        provider = EnvConfigProvider(
            {
                "ARCGIS_CLIENT_ID": "id",
                "ARCGIS_CLIENT_SECRET": "secret",
                "ARCGIS_REDIRECT_URI": "https://example.com/cb",
                "ARCGIS_HEADERS": '{"X-Test": "1"}',
            }
        )

        assert provider.get("arcgis") == {
            "client_id": "id",
            "client_secret": "secret",
            "redirect_uri": "https://example.com/cb",
            "headers": {"X-Test": "1"},
        }

    def test_unconfigured_provider_returns_none(self):
        assert EnvConfigProvider({}).get("arcgis") is None

    def test_redirect_uri_defaults_to_base_url(self):
        provider = EnvConfigProvider(
            {"ARCGIS_CLIENT_ID": "id", "ARCGIS_CLIENT_SECRET": "secret"},
            base_url="https://example.com",
        )

        values = provider.get("arcgis")

        assert values["redirect_uri"] == "https://example.com/oauth/arcgis/callback"

    def test_invalid_headers_json(self):
        provider = EnvConfigProvider({"ARCGIS_HEADERS": "{not json"})

        with pytest.raises(ConfigError, match="ARCGIS_HEADERS"):
            provider.get("arcgis")

    def test_headers_must_be_object(self):
        provider = EnvConfigProvider({"ARCGIS_HEADERS": '["a"]'})

        with pytest.raises(ConfigError, match="JSON object"):
            provider.get("arcgis")


class TestLoadProviderConfig:
    """Tests for fail-fast configuration validation."""

    def test_valid_config(self):
        config = load_provider_config(
            "arcgis", StaticConfigProvider({"arcgis": VALID_ARCGIS})
        )

        assert config.client_id == "arcgis-id"
        assert config.provider is ARCGIS
        assert config.headers == {}

    def test_unknown_provider(self):
        with pytest.raises(ConfigError, match="Unknown provider"):
            load_provider_config("myspace", StaticConfigProvider({}))

    def test_unconfigured_provider(self):
        with pytest.raises(ConfigError, match="not configured"):
            load_provider_config("arcgis", StaticConfigProvider({}))

    @pytest.mark.parametrize("missing", ["client_id", "client_secret", "redirect_uri"])
    def test_missing_required_key(self, missing):
        values = {k: v for k, v in VALID_ARCGIS.items() if k != missing}

        with pytest.raises(ConfigError, match=missing):
            load_provider_config("arcgis", StaticConfigProvider({"arcgis": values}))

    def test_invalid_value(self):
        values = {**VALID_ARCGIS, "redirect_uri": "not-a-url"}

        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_provider_config("arcgis", StaticConfigProvider({"arcgis": values}))

    def test_create_flow_service_fails_fast(self):
        transport = AsyncMock()

        with pytest.raises(ConfigError):
            create_flow_service("arcgis", StaticConfigProvider({}), transport)

        transport.request.assert_not_called()

    def test_create_flow_service(self):
        service = create_flow_service(
            "arcgis", StaticConfigProvider({"arcgis": VALID_ARCGIS}), AsyncMock()
        )

        assert isinstance(service, OAuth2FlowService)
        assert service.provider_name == "arcgis"


class TestConfiguredProviders:
    """Tests for provider availability checks."""

    def test_is_provider_configured(self):
        config_provider = StaticConfigProvider({"arcgis": VALID_ARCGIS})

        assert is_provider_configured("arcgis", config_provider) is True
        assert is_provider_configured("github", config_provider) is False
        assert is_provider_configured("unknown", config_provider) is False

    def test_get_configured_providers_respects_enabled_list(self):
        config_provider = StaticConfigProvider(
            {
                "arcgis": VALID_ARCGIS,
                "github": {
                    "client_id": "g-id",
                    "client_secret": "g-secret",
                    "redirect_uri": "https://example.com/oauth/github/callback",
                },
            }
        )

        both = OAuthSettings(base_url="https://example.com")
        only_github = OAuthSettings(base_url="https://example.com", providers=["github"])

        assert set(get_configured_providers(both, config_provider)) == {"arcgis", "github"}
        assert get_configured_providers(only_github, config_provider) == ["github"]
