import logging
from typing import Any, Dict, Optional

from jose import jwt
from jose.exceptions import JOSEError

from storefront_gateway.core.exceptions import MalformedCredential

logger = logging.getLogger(__name__)

ROLE_CLAIM_KEYS = (
    "role",
    "roles",
    "http://schemas.microsoft.com/ws/2008/06/identity/claims/role",
    "userRole",
    "authorities",
    "permission",
    "permissions",
)
ROLE_KEY_FRAGMENTS = ("role", "authority", "permission")

USER_ID_CLAIM_KEYS = (
    "nameidentifier",
    "nameId",
    "name_id",
    "sub",
    "userId",
    "userid",
    "id",
    "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/nameidentifier",
    "http://schemas.microsoft.com/ws/2008/06/identity/claims/nameidentifier",
)


def _unverified_claims(token: Optional[str]) -> Dict[str, Any]:
    if not token or not isinstance(token, str):
        raise MalformedCredential("No credential")

    segments = token.split(".")
    if len(segments) != 3 or not all(segments[:2]):
        raise MalformedCredential("Credential is not JWT-shaped")

    try:
        return dict(jwt.get_unverified_claims(token))
    except (JOSEError, ValueError) as e:
        raise MalformedCredential(f"Credential claims cannot be decoded: {e}") from e


def decode_claims(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Decode the claims of a JWT-shaped credential without verifying it.

    The signature is not checked; the claims only drive presentation
    decisions. Anything that is not a decodable JWT yields None.

    Args:
        token: Locally stored credential

    Returns:
        Claims dictionary, or None for absent or malformed tokens
    """
    try:
        return _unverified_claims(token)
    except MalformedCredential as e:
        logger.debug("Ignoring credential: %s", e)
        return None


def _first_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (list, tuple)):
        for item in value:
            text = _first_text(item)
            if text:
                return text
    return None


def get_role_from_token(token: Optional[str]) -> Optional[str]:
    """Role claim of the credential: well-known keys first, then any role-like key."""
    claims = decode_claims(token)
    if not claims:
        return None

    for key in ROLE_CLAIM_KEYS:
        role = _first_text(claims.get(key))
        if role:
            return role

    for key, value in claims.items():
        lowered = key.lower()
        if any(fragment in lowered for fragment in ROLE_KEY_FRAGMENTS):
            role = _first_text(value)
            if role:
                return role
    return None


def get_user_id_from_token(token: Optional[str]) -> Optional[int]:
    claims = decode_claims(token)
    if not claims:
        return None

    for key in USER_ID_CLAIM_KEYS:
        raw = claims.get(key)
        if raw is None or raw == "" or isinstance(raw, bool):
            continue
        try:
            return int(str(raw).strip())
        except ValueError:
            continue
    return None
