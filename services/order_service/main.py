from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shared.errors import register_error_handlers
from shared.security import limiter

from .models import Order, OrderItem  # noqa: F401 (registers models with SQLAlchemy Base)
from .router import router, public_router

order_app = FastAPI(title="Order Service", version="1.0.0")

register_error_handlers(order_app)

# --- SECURITY SETUP ---
order_app.state.limiter = limiter
order_app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

order_app.include_router(public_router)
order_app.include_router(router)
