"""
Identity resolution: opaque credential in, Principal (or None) out.

Absent, malformed, expired and badly signed credentials all resolve to None;
callers decide per operation whether anonymity is acceptable.
"""
from dataclasses import dataclass

from .jwt_handler import verify_access_token

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Principal:
    user_id: int


def credential_from_header(authorization: str | None) -> str | None:
    """Pull the token out of an 'Authorization: Bearer <token>' header value."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


def resolve(credential: str | None) -> Principal | None:
    if not credential:
        return None

    payload = verify_access_token(credential)
    if payload is None:
        return None

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        return None
    if user_id <= 0:
        return None
    return Principal(user_id=user_id)
