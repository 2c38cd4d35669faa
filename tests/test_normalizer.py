"""
Tests for identity normalization.
"""

import pytest
from pydantic import ValidationError

from authflow.core.domain import TokenResponse
from authflow.core.normalizer import IdentityNormalizer, normalize, resolve_path
from authflow.infrastructure.oauth_providers import ARCGIS, GITHUB


@pytest.fixture
def token():
    return TokenResponse(access_token="tok")


class TestResolvePath:
    """Tests for dotted path lookup."""

    def test_top_level(self):
        assert resolve_path({"a": 1}, "a") == 1

    def test_nested(self):
        assert resolve_path({"result": {"expires": "17"}}, "result.expires") == "17"

    @pytest.mark.parametrize(
        "data, path",
        [
            ({}, "a"),
            ({"a": 1}, "a.b"),
            ({"a": {"b": 1}}, "a.c"),
            ({"a": 1}, None),
            ({"a": 1}, ""),
            (None, "a"),
        ],
    )
    def test_missing(self, data, path):
        assert resolve_path(data, path) is None


class TestNormalize:
    """Tests for profile -> identity mapping."""

    def test_arcgis_mapping(self, token, sample_arcgis_profile):
        identity = normalize(sample_arcgis_profile, token, ARCGIS.profile_mapping)

        assert identity.id == "jdoe_geo"
        assert identity.name == "Jane Doe"
        assert identity.email == "jane@example.com"
        assert identity.nickname == "jdoe_geo"
        assert identity.avatar_url == "jane.png"
        assert identity.token is token

    def test_unmapped_fields_preserved(self, token, sample_arcgis_profile):
        identity = normalize(sample_arcgis_profile, token, ARCGIS.profile_mapping)

        assert identity.original["orgId"] == "org-123"
        assert identity.original["role"] == "org_user"

    def test_empty_profile_never_fails(self, token):
        identity = normalize({}, token, ARCGIS.profile_mapping)

        assert identity.id == ""
        assert identity.name == ""
        assert identity.nickname == ""
        assert identity.email is None
        assert identity.avatar_url is None
        assert identity.original == {}

    def test_null_and_nested_values(self, token):
        profile = {"username": None, "fullName": {"first": "J"}, "email": ""}

        identity = normalize(profile, token, ARCGIS.profile_mapping)

        assert identity.id == ""
        assert identity.name == ""
        assert identity.email is None

    def test_numeric_ids_are_stringified(self, token):
        profile = {"id": 583231, "login": "octocat", "name": None}

        identity = normalize(profile, token, GITHUB.profile_mapping)

        assert identity.id == "583231"
        assert identity.nickname == "octocat"
        assert identity.name == ""

    def test_empty_mapping(self, token):
        identity = normalize({"username": "x"}, token, {})

        assert identity.id == ""
        assert identity.original == {"username": "x"}

    def test_original_is_a_copy(self, token):
        profile = {"username": "x"}

        identity = normalize(profile, token, ARCGIS.profile_mapping)
        profile["username"] = "changed"

        assert identity.original == {"username": "x"}

    def test_identity_is_immutable(self, token):
        identity = normalize({"username": "x"}, token, ARCGIS.profile_mapping)

        with pytest.raises(ValidationError):
            identity.id = "other"


def test_identity_normalizer_binds_mapping(token, sample_arcgis_profile):
    normalizer = IdentityNormalizer(ARCGIS.profile_mapping)

    identity = normalizer.normalize(sample_arcgis_profile, token)

    assert identity.name == "Jane Doe"
