from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from shared.config.database import engine, Base
from shared.errors import register_error_handlers
from shared.observability import setup_observability

# IMPORTANT: import models so they register with Base
from services.auth_service import models as auth_models
from services.product_service import models as product_models
from services.order_service import models as order_models
from services.payment_service import models as payment_models

from services.auth_service.main import auth_app
from services.product_service.main import product_app
from services.order_service.main import order_app
from services.payment_service.main import payment_app

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_ready", tables=sorted(Base.metadata.tables))
    yield
    await engine.dispose()


app = FastAPI(title="Storefront Cluster", lifespan=lifespan)

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(app, "storefront")
register_error_handlers(app)


@app.get("/health")
async def health_check():
    return {"service": "storefront", "status": "running"}


app.mount("/auth", auth_app)
app.mount("/catalog", product_app)
app.mount("/orders", order_app)
app.mount("/payments", payment_app)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
