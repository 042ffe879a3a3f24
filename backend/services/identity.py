"""
Identity context for relay requests.

The hosting platform verifies the identity JWT before the request reaches
the relay and passes it through as `Authorization: Bearer <jwt>`. The relay
only reads the claims segment to enrich the event.
"""
import base64
import binascii
import json
import logging
from typing import Optional

from pydantic import ValidationError

from backend.models.identity import IdentityUser

logger = logging.getLogger(__name__)

IDENTITY_PREFIX = "IdentityUser"


def _decode_claims(token: str) -> Optional[dict]:
    parts = token.split(".")
    if len(parts) != 3:
        return None
    segment = parts[1]
    segment += "=" * (-len(segment) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(segment))
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Undecodable identity token claims: {e}")
        return None
    return claims if isinstance(claims, dict) else None


def read_identity(authorization: Optional[str]) -> Optional[IdentityUser]:
    """Return the identity carried by an Authorization header, or None."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    claims = _decode_claims(token.strip())
    if claims is None:
        return None
    try:
        return IdentityUser.model_validate(claims)
    except ValidationError as e:
        logger.warning(f"Identity claims rejected: {e.error_count()} error(s)")
        return None


def identity_fields(user: IdentityUser) -> dict:
    """Flat, prefixed projection of the identity for a wide event. Absent claims are omitted."""
    fields = {
        f"{IDENTITY_PREFIX}_app_metadata": user.app_metadata.get("provider"),
        f"{IDENTITY_PREFIX}_email": user.email,
        f"{IDENTITY_PREFIX}_exp": user.exp,
        f"{IDENTITY_PREFIX}_sub": user.sub,
        f"{IDENTITY_PREFIX}_user_metadata": json.dumps(user.user_metadata),
    }
    return {k: v for k, v in fields.items() if v is not None}
