"""
Ownership checks shared by orders, payments and the catalog.

authorize() is the pure decision; ensure_owner() turns a denial into the
matching error so every resource type reports it the same way.
"""
from enum import Enum

from shared.errors import Forbidden, Unauthenticated

from .identity import Principal


class Decision(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"


def authorize(principal: Principal | None, owner_id: int | None) -> Decision:
    if principal is None or owner_id is None:
        return Decision.DENIED
    if principal.user_id != owner_id:
        return Decision.DENIED
    return Decision.ALLOWED


def require_principal(principal: Principal | None) -> Principal:
    if principal is None:
        raise Unauthenticated("Authentication required")
    return principal


def ensure_owner(principal: Principal | None, owner_id: int, resource: str = "Resource") -> None:
    require_principal(principal)
    if authorize(principal, owner_id) is Decision.DENIED:
        raise Forbidden(f"{resource} does not belong to the user")
