"""
Order lifecycle: placement against the inventory ledger, owner-scoped reads
and the status state machine.
"""
import secrets
import time
from decimal import Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import transaction
from shared.errors import InsufficientStock, InvalidRequest, InvalidTransition, NotFound, StorefrontError
from shared.observability import (
    storefront_order_create_duration_seconds,
    storefront_order_transitions_total,
    storefront_orders_total,
)
from shared.security import Principal, ensure_owner, require_principal
from services.product_service.inventory import InventoryLedger

from .models import Order, OrderItem, OrderStatus, can_transition
from .repository import OrderRepository
from .schemas import OrderCreate, OrderItemCreate

logger = structlog.get_logger(__name__)

ADDRESS_MAX_LENGTH = 500
# Largest value a Numeric(12, 2) order total can hold
MAX_ORDER_TOTAL = Decimal("9999999999.99")


def generate_order_number() -> str:
    # Millisecond timestamp keeps numbers sortable; the random suffix keeps
    # concurrent placements apart. The unique index is the final word.
    return f"ORD-{int(time.time() * 1000)}-{secrets.token_hex(4).upper()}"


def _validate_address(value: str | None, field: str) -> str:
    if value is None or not value.strip():
        raise InvalidRequest(f"{field} is required")
    value = value.strip()
    if len(value) > ADDRESS_MAX_LENGTH:
        raise InvalidRequest(f"{field} must be at most {ADDRESS_MAX_LENGTH} characters")
    return value


def _aggregate_demand(items: list[OrderItemCreate] | list[OrderItem]) -> dict[int, int]:
    """Total units per product; the same product may appear on several lines."""
    if not items:
        raise InvalidRequest("Order must have at least one item")

    demand: dict[int, int] = {}
    for item in items:
        if item.quantity <= 0:
            raise InvalidRequest(f"Quantity for product {item.product_id} must be positive")
        demand[item.product_id] = demand.get(item.product_id, 0) + item.quantity
    return demand


class OrderService:

    @staticmethod
    async def create_order(db: AsyncSession, principal: Principal, data: OrderCreate) -> Order:
        """Place an order: reserve stock, freeze prices and persist, atomically."""
        require_principal(principal)

        with storefront_order_create_duration_seconds.time():
            try:
                demand = _aggregate_demand(data.items)
                shipping_address = _validate_address(data.shipping_address, "shipping_address")
                billing_address = _validate_address(data.billing_address, "billing_address")

                async with transaction(db, conflict="Order could not be placed, please retry"):
                    products = await InventoryLedger.reserve(db, demand)

                    order = Order(
                        order_number=generate_order_number(),
                        user_id=principal.user_id,
                        status=OrderStatus.PENDING,
                        shipping_address=shipping_address,
                        billing_address=billing_address,
                    )
                    for item in data.items:
                        product = products[item.product_id]
                        order.add_item(
                            OrderItem(
                                product_id=product.id,
                                product_name=product.name,
                                unit_price=product.price,
                                quantity=item.quantity,
                            )
                        )
                    order.calculate_total_amount()
                    if order.total_amount > MAX_ORDER_TOTAL:
                        raise InvalidRequest("Order total is too large")
                    await OrderRepository.create_order(db, order)
            except InsufficientStock:
                storefront_orders_total.labels(outcome="insufficient_stock").inc()
                raise
            except StorefrontError:
                storefront_orders_total.labels(outcome="rejected").inc()
                raise

        storefront_orders_total.labels(outcome="created").inc()
        logger.info(
            "order_created",
            order_id=order.id,
            order_number=order.order_number,
            user_id=principal.user_id,
            total_amount=str(order.total_amount),
            lines=len(order.items),
        )
        return order

    @staticmethod
    async def get_order(db: AsyncSession, principal: Principal, order_id: int) -> Order:
        order = await OrderRepository.get_order(db, order_id)
        if not order:
            raise NotFound("Order", "id", order_id)
        ensure_owner(principal, order.user_id, "Order")
        return order

    @staticmethod
    async def get_order_by_number(db: AsyncSession, principal: Principal, order_number: str) -> Order:
        order = await OrderRepository.get_order_by_number(db, order_number)
        if not order:
            raise NotFound("Order", "orderNumber", order_number)
        ensure_owner(principal, order.user_id, "Order")
        return order

    @staticmethod
    async def list_orders(db: AsyncSession, principal: Principal) -> list[Order]:
        require_principal(principal)
        return await OrderRepository.list_orders_for_user(db, principal.user_id)

    @staticmethod
    async def update_status(
        db: AsyncSession, principal: Principal, order_id: int, new_status: OrderStatus
    ) -> Order:
        new_status = OrderStatus(new_status)

        async with transaction(db):
            order = await OrderRepository.get_order(db, order_id, for_update=True)
            if not order:
                raise NotFound("Order", "id", order_id)
            ensure_owner(principal, order.user_id, "Order")

            current = order.status
            if not can_transition(current, new_status):
                raise InvalidTransition("Order", current, new_status)

            if new_status is OrderStatus.CANCELLED:
                # Cancelled orders give their reserved units back, in the same
                # ascending id order reservations lock products in
                returned = _aggregate_demand(order.items)
                for product_id in sorted(returned):
                    await InventoryLedger.release(db, product_id, returned[product_id])

            order.status = new_status
            await db.flush()

        storefront_order_transitions_total.labels(
            from_status=current.value, to_status=new_status.value
        ).inc()
        logger.info(
            "order_status_changed",
            order_id=order.id,
            from_status=current.value,
            to_status=new_status.value,
        )
        return order
