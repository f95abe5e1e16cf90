from .jwt_handler import create_access_token, issue_user_token, verify_access_token
from .identity import Principal, credential_from_header, resolve
from .guard import Decision, authorize, ensure_owner, require_principal
from .dependencies import get_current_principal, get_optional_principal
from .rate_limiter import limiter, user_id_or_ip, ORDER_RATE_LIMIT, PAYMENT_RATE_LIMIT

__all__ = [
    "create_access_token",
    "issue_user_token",
    "verify_access_token",
    "Principal",
    "credential_from_header",
    "resolve",
    "Decision",
    "authorize",
    "ensure_owner",
    "require_principal",
    "get_current_principal",
    "get_optional_principal",
    "limiter",
    "user_id_or_ip",
    "ORDER_RATE_LIMIT",
    "PAYMENT_RATE_LIMIT",
]
