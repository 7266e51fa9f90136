"""Read expiry from backend-issued JWTs.

The backend signs its tokens; this layer never verifies signatures (it
cannot, and does not need to: the backend re-checks every request). The
`exp` claim is read only to know when a held session has lapsed.
"""

from datetime import datetime

from jose import JWTError, jwt

from kontext.shared.utils.datetime import from_timestamp_utc


def token_expiry(token: str) -> datetime | None:
    """Return the token's `exp` as an aware UTC datetime.

    Args:
        token: JWT string as issued by the backend.

    Returns:
        Expiry, or None if the claims cannot be read or carry no numeric exp.
    """
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    return from_timestamp_utc(exp)


def is_token_expired(token: str | None, now: datetime) -> bool:
    """True when token is empty, unreadable, or its exp is not after now."""
    if not token:
        return True
    expiry = token_expiry(token)
    return expiry is None or expiry <= now
