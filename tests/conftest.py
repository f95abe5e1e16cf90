import os
import tempfile

# Configure the process before any application module reads its environment
_DB_DIR = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_DB_DIR, 'storefront.db')}"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.pop("PAYMENT_GATEWAY_URL", None)
os.environ.pop("OTLP_ENDPOINT", None)

from decimal import Decimal

import httpx
import pytest
from sqlalchemy import select

from main import app
from shared.config.database import AsyncSessionLocal, Base, engine
from shared.security import Principal, issue_user_token
from services.auth_service.models import User
from services.order_service.schemas import OrderCreate, OrderItemCreate
from services.product_service.models import Product, Shop


@pytest.fixture
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest.fixture
async def db(database):
    async with AsyncSessionLocal() as session:
        yield session


@pytest.fixture
async def client(database):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def make_user(db):
    """Create a user and return it as a Principal."""
    async def _make_user(email: str) -> Principal:
        user = User(email=email, hashed_password="unused")
        db.add(user)
        await db.commit()
        return Principal(user_id=user.id)

    return _make_user


@pytest.fixture
def make_product(db):
    """Create a product in the owner's shop (creating the shop on first use)."""
    async def _make_product(owner: Principal, stock: int = 5, price: str = "10.00", name: str = "Widget") -> int:
        result = await db.execute(select(Shop).where(Shop.owner_id == owner.user_id))
        shop = result.scalars().first()
        if shop is None:
            shop = Shop(name=f"shop-{owner.user_id}", owner_id=owner.user_id)
            db.add(shop)
            await db.flush()
        product = Product(shop_id=shop.id, name=name, price=Decimal(price), stock=stock)
        db.add(product)
        await db.commit()
        return product.id

    return _make_product


@pytest.fixture
def stock_of(db):
    async def _stock_of(product_id: int) -> int:
        result = await db.execute(select(Product.stock).where(Product.id == product_id))
        stock = result.scalar_one()
        # Release the SQLite write lock so other sessions can proceed
        await db.commit()
        return stock

    return _stock_of


def order_request(*lines, shipping="1 Main St, Springfield", billing="1 Main St, Springfield") -> OrderCreate:
    return OrderCreate(
        items=[OrderItemCreate(product_id=product_id, quantity=quantity) for product_id, quantity in lines],
        shipping_address=shipping,
        billing_address=billing,
    )


def bearer(principal: Principal) -> dict:
    return {"Authorization": f"Bearer {issue_user_token(principal.user_id)}"}
