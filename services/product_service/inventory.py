"""
Inventory ledger: the only code that changes ``products.stock``.

Reservations take the affected rows in ascending id order and decrement them
with a conditional UPDATE, so two orders can never both consume the last
units. The caller owns the transaction; any exception raised here must be
followed by a rollback, which undoes every decrement already made.
"""
import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from shared.errors import InsufficientStock, InvalidRequest, NotFound
from shared.observability import storefront_stock_reservation_failures_total

from .models import Product, utcnow
from .repository import ProductRepository

logger = structlog.get_logger(__name__)


class InventoryLedger:

    @staticmethod
    async def reserve(db: AsyncSession, demand: dict[int, int]) -> dict[int, Product]:
        """Reserve ``demand`` (product id -> units) all-or-nothing.

        Returns the locked products keyed by id, with ``stock`` already
        reflecting the reservation.
        """
        if not demand:
            raise InvalidRequest("Nothing to reserve")
        for product_id, quantity in demand.items():
            if quantity <= 0:
                raise InvalidRequest(f"Quantity for product {product_id} must be positive")

        product_ids = sorted(demand)
        products = await ProductRepository.lock_products(db, product_ids)

        for product_id in product_ids:
            if product_id not in products:
                raise NotFound("Product", "id", product_id)

        # Check the whole set before touching any row
        for product_id in product_ids:
            product = products[product_id]
            if product.stock < demand[product_id]:
                storefront_stock_reservation_failures_total.labels(reason="snapshot").inc()
                logger.info(
                    "stock_reservation_failed",
                    product_id=product_id,
                    requested=demand[product_id],
                    available=product.stock,
                )
                raise InsufficientStock(product_id, product.name)

        for product_id in product_ids:
            await InventoryLedger._decrement(db, products[product_id], demand[product_id])

        return products

    @staticmethod
    async def release(db: AsyncSession, product_id: int, quantity: int) -> None:
        """Return ``quantity`` units to a product's available stock."""
        if quantity <= 0:
            raise InvalidRequest("Release quantity must be positive")

        result = await db.execute(
            update(Product)
            .where(Product.id == product_id)
            .values(stock=Product.stock + quantity, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFound("Product", "id", product_id)

        product = await ProductRepository.get_product_by_id(db, product_id)
        await db.refresh(product, attribute_names=["stock", "updated_at"])
        logger.info("stock_released", product_id=product_id, quantity=quantity, stock=product.stock)

    @staticmethod
    async def _decrement(db: AsyncSession, product: Product, quantity: int) -> None:
        # Compare-and-swap: only succeeds while enough stock is left.
        result = await db.execute(
            update(Product)
            .where(Product.id == product.id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            storefront_stock_reservation_failures_total.labels(reason="race_lost").inc()
            logger.warning("stock_reservation_race_lost", product_id=product.id, requested=quantity)
            raise InsufficientStock(product.id, product.name)

        await db.refresh(product, attribute_names=["stock", "updated_at"])
