from fastapi import FastAPI

from shared.errors import register_error_handlers

from .models import User  # noqa: F401 (registers model with SQLAlchemy Base)
from .router import router, public_router

auth_app = FastAPI(
    title="Identity Service",
    version="1.0.0",
    description="Account registration and bearer token issuance for the storefront.",
)

register_error_handlers(auth_app)

auth_app.include_router(public_router)
auth_app.include_router(router)
