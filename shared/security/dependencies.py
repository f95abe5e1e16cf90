from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer

from shared.errors import Unauthenticated

from .identity import Principal, resolve

# Defines the expected header format (Bearer <token>)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


async def get_optional_principal(token: str | None = Depends(oauth2_scheme)) -> Principal | None:
    """Resolve the bearer token, or None for anonymous callers."""
    return resolve(token)


async def get_current_principal(
    request: Request,
    principal: Principal | None = Depends(get_optional_principal),
) -> Principal:
    """Dependency for routes that need an authenticated caller."""
    if principal is None:
        raise Unauthenticated()

    # Only the rate limiter reads this; services receive the principal explicitly.
    request.state.user_id = principal.user_id
    return principal
