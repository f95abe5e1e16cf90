import os

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from .identity import credential_from_header, resolve

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
ORDER_RATE_LIMIT = os.getenv("ORDER_RATE_LIMIT", "30/minute")
PAYMENT_RATE_LIMIT = os.getenv("PAYMENT_RATE_LIMIT", "30/minute")

def user_id_or_ip(request: Request) -> str:
    """
    Key function for SlowAPI.
    Extracts the user ID directly from the Authorization header if available.
    Falls back to the client's IP address if unauthenticated.
    """
    principal = resolve(credential_from_header(request.headers.get("Authorization")))
    if principal is not None:
        return f"user:{principal.user_id}"

    # Fallback to IP address (handles proxies if X-Forwarded-For is set correctly by Uvicorn)
    return f"ip:{get_remote_address(request)}"

# Initialize the Limiter with our custom key function
limiter = Limiter(key_func=user_id_or_ip, enabled=RATE_LIMIT_ENABLED)
