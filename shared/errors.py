"""
Storefront error taxonomy.

Services raise these instead of HTTPException so the order/payment core stays
free of transport details. Each sub-app calls register_error_handlers() to
translate them into JSON responses.
"""
import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = structlog.get_logger(__name__)


class StorefrontError(Exception):
    code = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.detail}


class NotFound(StorefrontError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str, field: str, value):
        super().__init__(f"{resource} not found with {field}: {value}")
        self.resource = resource


class Forbidden(StorefrontError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class Unauthenticated(StorefrontError):
    code = "unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(detail)


class InvalidRequest(StorefrontError):
    code = "invalid_request"
    status_code = status.HTTP_400_BAD_REQUEST


class InsufficientStock(StorefrontError):
    code = "insufficient_stock"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, product_id: int, product_name: str | None = None):
        label = product_name or f"id {product_id}"
        super().__init__(f"Not enough stock for product: {label}")
        self.product_id = product_id

    def to_dict(self) -> dict:
        return {**super().to_dict(), "product_id": self.product_id}


class Conflict(StorefrontError):
    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class InvalidTransition(StorefrontError):
    code = "invalid_transition"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, resource: str, current, target):
        current = getattr(current, "value", current)
        target = getattr(target, "value", target)
        super().__init__(f"{resource} cannot move from {current} to {target}")
        self.current = current
        self.target = target


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    headers = None
    if isinstance(exc, Unauthenticated):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # Full detail goes to the log only; callers get a generic answer.
    logger.error("storage_error", path=request.url.path, error=repr(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error", "detail": "Internal server error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach the taxonomy handlers. Mounted sub-apps need their own call."""
    app.add_exception_handler(StorefrontError, storefront_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
