from fastapi import FastAPI

from shared.errors import register_error_handlers

from .models import Product, Shop  # noqa: F401 (registers models with SQLAlchemy Base)
from .router import router, public_router

product_app = FastAPI(
    title="Catalog Service",
    version="1.0.0"
)

register_error_handlers(product_app)

product_app.include_router(public_router)
product_app.include_router(router)
