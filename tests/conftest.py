"""
Shared test configuration and fixtures.
"""

import os
from unittest.mock import AsyncMock, patch

import pytest

# Session middleware needs its secret before importing app
with patch.dict(
    os.environ,
    {
        "SESSION_SECRET_KEY": "test-secret",
        "BASE_URL": "http://testserver",
    },
):
    from authflow.main import app  # noqa: F401

from authflow.core.domain import ProviderConfig
from authflow.core.oauth_service import OAuth2FlowService
from authflow.core.ports import TransportResponse
from authflow.infrastructure.oauth_providers import ARCGIS, GITHUB


@pytest.fixture
def arcgis_config():
    """ArcGIS provider configuration (no state support)."""
    return ProviderConfig(
        client_id="arcgis-client",
        client_secret="arcgis-secret",
        redirect_uri="http://testserver/oauth/arcgis/callback",
        provider=ARCGIS,
    )


@pytest.fixture
def github_config():
    """GitHub provider configuration (state supported)."""
    return ProviderConfig(
        client_id="github-client",
        client_secret="github-secret",
        redirect_uri="http://testserver/oauth/github/callback",
        headers={"X-Client": "authflow-tests"},
        provider=GITHUB,
    )


@pytest.fixture
def mock_transport():
    """Transport whose request() is an AsyncMock; set side_effect per test."""
    transport = AsyncMock()
    transport.request.return_value = TransportResponse(status_code=200, body={})
    return transport


@pytest.fixture
def arcgis_service(arcgis_config, mock_transport):
    return OAuth2FlowService(arcgis_config, mock_transport, clock=lambda: 1_000_000)


@pytest.fixture
def github_service(github_config, mock_transport):
    return OAuth2FlowService(github_config, mock_transport, clock=lambda: 1_000_000)


@pytest.fixture
def sample_arcgis_profile():
    """Sample ArcGIS community/self payload."""
    return {
        "username": "jdoe_geo",
        "fullName": "Jane Doe",
        "email": "jane@example.com",
        "thumbnail": "jane.png",
        "orgId": "org-123",
        "role": "org_user",
    }
