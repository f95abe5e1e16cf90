"""
Payment settlement: one payment per order. The payment row is claimed as
PENDING, settled outside any transaction, then finalized together with the
order's move to PROCESSING when settlement succeeds.
"""
import uuid
from decimal import Decimal, InvalidOperation

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import transaction
from shared.errors import Conflict, InvalidRequest, InvalidTransition, NotFound
from shared.observability import storefront_payment_transitions_total, storefront_payments_total
from shared.security import Principal, ensure_owner, require_principal
from services.order_service.models import OrderStatus, can_transition as order_can_transition
from services.order_service.repository import OrderRepository
from services.product_service.models import utcnow

from .models import Payment, PaymentMethod, PaymentStatus, can_transition
from .repository import PaymentRepository
from .schemas import PaymentCreate
from .settlement import ImmediateSettlement, SettlementStrategy

logger = structlog.get_logger(__name__)

MAX_AMOUNT = Decimal("9999999999.99")


def generate_transaction_id() -> str:
    return f"TXN-{uuid.uuid4().hex[:12].upper()}"


def _validate_amount(amount) -> Decimal:
    try:
        amount = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidRequest("Amount must be a decimal number")
    if not amount.is_finite() or amount <= 0:
        raise InvalidRequest("Amount must be positive")
    if amount.as_tuple().exponent < -2:
        raise InvalidRequest("Amount must have at most two decimal places")
    if amount > MAX_AMOUNT:
        raise InvalidRequest("Amount is too large")
    return amount


class PaymentService:

    @staticmethod
    async def process_payment(
        db: AsyncSession,
        principal: Principal,
        data: PaymentCreate,
        settlement: SettlementStrategy | None = None,
    ) -> Payment:
        require_principal(principal)
        settlement = settlement or ImmediateSettlement()
        amount = _validate_amount(data.amount)
        method = PaymentMethod(data.payment_method)

        # Claim the order's single payment slot first. The gateway call happens
        # outside any transaction so no lock is held while it is in flight.
        async with transaction(db, conflict="Payment already exists for this order"):
            # Locking the order serializes concurrent submissions for it
            order = await OrderRepository.get_order(db, data.order_id, for_update=True)
            if not order:
                raise NotFound("Order", "id", data.order_id)
            ensure_owner(principal, order.user_id, "Order")

            if await PaymentRepository.get_payment_by_order(db, order.id):
                raise Conflict("Payment already exists for this order")
            if not order_can_transition(order.status, OrderStatus.PROCESSING):
                raise InvalidTransition("Order", order.status, OrderStatus.PROCESSING)

            transaction_id = generate_transaction_id()
            payment = await PaymentRepository.create_payment(
                db,
                Payment(
                    order=order,
                    amount=amount,
                    payment_method=method,
                    status=PaymentStatus.PENDING,
                    transaction_id=transaction_id,
                    payment_date=utcnow(),
                ),
            )

        status = await settlement.settle(order, amount, method, transaction_id)

        async with transaction(db):
            order = await OrderRepository.get_order(db, order.id, for_update=True)
            payment = await PaymentRepository.get_payment(db, payment.id, for_update=True)
            payment.status = status
            if status is PaymentStatus.COMPLETED:
                if order_can_transition(order.status, OrderStatus.PROCESSING):
                    order.status = OrderStatus.PROCESSING
                else:
                    # Changed while the gateway was answering, e.g. cancelled
                    logger.warning(
                        "payment_completed_for_inactive_order",
                        order_id=order.id,
                        order_status=order.status.value,
                        transaction_id=transaction_id,
                    )
            await db.flush()

        storefront_payments_total.labels(status=status.value, method=method.value).inc()
        logger.info(
            "payment_processed",
            payment_id=payment.id,
            order_id=order.id,
            transaction_id=transaction_id,
            status=status.value,
            amount=str(amount),
        )
        return payment

    @staticmethod
    async def update_payment_status(
        db: AsyncSession, principal: Principal, payment_id: int, new_status: PaymentStatus
    ) -> Payment:
        """Status-only change; the order is left as it is (refunds included)."""
        new_status = PaymentStatus(new_status)

        async with transaction(db):
            payment = await PaymentRepository.get_payment(db, payment_id, for_update=True)
            if not payment:
                raise NotFound("Payment", "id", payment_id)
            # Payments have no owner of their own; the order's owner decides
            ensure_owner(principal, payment.order.user_id, "Payment")

            current = payment.status
            if not can_transition(current, new_status):
                raise InvalidTransition("Payment", current, new_status)

            payment.status = new_status
            await db.flush()

        storefront_payment_transitions_total.labels(
            from_status=current.value, to_status=new_status.value
        ).inc()
        logger.info(
            "payment_status_changed",
            payment_id=payment.id,
            from_status=current.value,
            to_status=new_status.value,
        )
        return payment

    @staticmethod
    async def get_payment(db: AsyncSession, principal: Principal, payment_id: int) -> Payment:
        payment = await PaymentRepository.get_payment(db, payment_id)
        if not payment:
            raise NotFound("Payment", "id", payment_id)
        ensure_owner(principal, payment.order.user_id, "Payment")
        return payment

    @staticmethod
    async def get_payment_by_order(db: AsyncSession, principal: Principal, order_id: int) -> Payment:
        order = await OrderRepository.get_order(db, order_id)
        if not order:
            raise NotFound("Order", "id", order_id)
        ensure_owner(principal, order.user_id, "Order")

        payment = await PaymentRepository.get_payment_by_order(db, order_id)
        if not payment:
            raise NotFound("Payment", "orderId", order_id)
        return payment
