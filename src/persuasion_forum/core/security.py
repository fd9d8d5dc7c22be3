"""Token helpers for session handling."""
from __future__ import annotations

import hashlib
from datetime import UTC, datetime

from jose import JWTError, jwt


def hash_token(token: str) -> str:
    """Return a SHA-256 hash of the provided bearer token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def token_expiry(token: str) -> datetime | None:
    """Return the ``exp`` claim of a JWT without verifying its signature.

    The auth provider remains the authority on validity; this is only used to
    bound how long a verified session may be cached.

    Returns:
        The expiry as an aware UTC datetime, or None if the token is not a
        decodable JWT or carries no numeric ``exp`` claim.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None

    exp = claims.get("exp")
    if not isinstance(exp, int | float):
        return None
    return datetime.fromtimestamp(exp, UTC)
