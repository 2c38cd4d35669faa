"""
Identity normalization.

Maps a provider-specific profile payload onto the canonical Identity using
the provider's declarative field mapping.
"""

from typing import Any, Mapping

from authflow.core.domain import Identity, TokenResponse


REQUIRED_TEXT_FIELDS = ("id", "name", "nickname")
OPTIONAL_TEXT_FIELDS = ("email", "avatar_url")


def resolve_path(data: Any, path: str | None) -> Any:
    """
    Look up a dotted path (e.g. "result.expires") in nested mappings.

    Returns None if any segment is missing.
    """
    if not path:
        return None
    current = data
    for segment in path.split("."):
        if not isinstance(current, Mapping) or segment not in current:
            return None
        current = current[segment]
    return current


def _as_text(value: Any) -> str | None:
    # Nested objects and lists are not identity values
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, bool):
        return str(value).lower()
    text = str(value)
    return text if text else None


def normalize(
    profile: Mapping[str, Any],
    token: TokenResponse,
    mapping: Mapping[str, str],
) -> Identity:
    """
    Build a canonical Identity from a profile payload.

    Never fails on a missing field: absent id/name/nickname become "" and
    absent email/avatar_url become None. The whole profile is kept in
    ``original``.

    Args:
        profile: Provider profile payload
        token: Token used to fetch the profile
        mapping: Canonical field -> dotted profile path

    Returns:
        Normalized identity
    """
    fields: dict[str, Any] = {}
    for field in REQUIRED_TEXT_FIELDS:
        fields[field] = _as_text(resolve_path(profile, mapping.get(field))) or ""
    for field in OPTIONAL_TEXT_FIELDS:
        fields[field] = _as_text(resolve_path(profile, mapping.get(field)))

    return Identity(original=dict(profile), token=token, **fields)


class IdentityNormalizer:
    """Normalizer bound to one provider's profile mapping."""

    def __init__(self, mapping: Mapping[str, str]):
        self.mapping = dict(mapping)

    def normalize(self, profile: Mapping[str, Any], token: TokenResponse) -> Identity:
        return normalize(profile, token, self.mapping)
