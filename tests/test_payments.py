from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import order_request
from shared.errors import Conflict, Forbidden, InvalidRequest, InvalidTransition, NotFound, Unauthenticated
from services.order_service.models import OrderStatus
from services.order_service.service import OrderService
from services.payment_service.models import Payment, PaymentMethod, PaymentStatus, can_transition
from services.payment_service.schemas import PaymentCreate, PaymentResponse
from services.payment_service.service import PaymentService


class FixedSettlement:
    def __init__(self, status):
        self.status = status
        self.calls = []

    async def settle(self, order, amount, method, transaction_id):
        self.calls.append((order.order_number, amount, method, transaction_id))
        return self.status


@pytest.fixture
async def placed_order(make_user, make_product):
    """A buyer with a PENDING order for 3 x 10.00."""
    owner = await make_user("owner@example.com")
    buyer = await make_user("buyer@example.com")
    product_id = await make_product(owner, stock=5, price="10.00")
    return buyer, product_id


async def _place(db, buyer, product_id, quantity=3):
    order = await OrderService.create_order(db, buyer, order_request((product_id, quantity)))
    return order.id


def _payment(order_id, amount="30.00", method=PaymentMethod.CREDIT_CARD):
    return PaymentCreate(order_id=order_id, amount=amount, payment_method=method)


async def test_payment_completes_and_advances_order(db, placed_order):
    buyer, product_id = placed_order
    order_id = await _place(db, buyer, product_id)

    payment = await PaymentService.process_payment(db, buyer, _payment(order_id))

    assert payment.status is PaymentStatus.COMPLETED
    assert payment.amount == Decimal("30.00")
    assert payment.order_id == order_id
    assert payment.transaction_id.startswith("TXN-") and len(payment.transaction_id) == 16
    assert payment.payment_date is not None
    response = PaymentResponse.model_validate(payment)
    assert response.order_number.startswith("ORD-")

    order = await OrderService.get_order(db, buyer, order_id)
    assert order.status is OrderStatus.PROCESSING

    with pytest.raises(Conflict):
        await PaymentService.process_payment(db, buyer, _payment(order_id))
    assert (await PaymentService.get_payment_by_order(db, buyer, order_id)).id == response.id


async def test_payment_requires_principal(db):
    with pytest.raises(Unauthenticated):
        await PaymentService.process_payment(db, None, _payment(1))


async def test_payment_for_someone_elses_order(db, placed_order, make_user):
    buyer, product_id = placed_order
    stranger = await make_user("stranger@example.com")
    order_id = await _place(db, buyer, product_id)

    with pytest.raises(Forbidden):
        await PaymentService.process_payment(db, stranger, _payment(order_id))
    with pytest.raises(NotFound):
        await PaymentService.get_payment_by_order(db, buyer, order_id)
    assert (await OrderService.get_order(db, buyer, order_id)).status is OrderStatus.PENDING


async def test_payment_for_missing_order(db, placed_order):
    buyer, _ = placed_order
    with pytest.raises(NotFound):
        await PaymentService.process_payment(db, buyer, _payment(999))


@pytest.mark.parametrize("amount", ["0", "-5.00", "10.001"])
async def test_invalid_amount(db, placed_order, amount):
    buyer, product_id = placed_order
    order_id = await _place(db, buyer, product_id)

    with pytest.raises(InvalidRequest):
        await PaymentService.process_payment(db, buyer, _payment(order_id, amount=amount))


async def test_amount_need_not_match_total(db, placed_order):
    buyer, product_id = placed_order
    order_id = await _place(db, buyer, product_id)

    payment = await PaymentService.process_payment(db, buyer, _payment(order_id, amount="12.50"))
    assert payment.amount == Decimal("12.50")


async def test_cancelled_order_cannot_be_paid(db, placed_order):
    buyer, product_id = placed_order
    order_id = await _place(db, buyer, product_id)
    await OrderService.update_status(db, buyer, order_id, OrderStatus.CANCELLED)

    with pytest.raises(InvalidTransition):
        await PaymentService.process_payment(db, buyer, _payment(order_id))
    with pytest.raises(NotFound):
        await PaymentService.get_payment_by_order(db, buyer, order_id)


async def test_failed_settlement_leaves_order_pending(db, placed_order):
    buyer, product_id = placed_order
    order_id = await _place(db, buyer, product_id)
    settlement = FixedSettlement(PaymentStatus.FAILED)

    payment = await PaymentService.process_payment(
        db, buyer, _payment(order_id, method=PaymentMethod.PAYPAL), settlement
    )

    assert payment.status is PaymentStatus.FAILED
    assert len(settlement.calls) == 1
    assert settlement.calls[0][2] is PaymentMethod.PAYPAL
    assert settlement.calls[0][3] == payment.transaction_id
    assert (await OrderService.get_order(db, buyer, order_id)).status is OrderStatus.PENDING

    # One payment per order, whatever its outcome
    with pytest.raises(Conflict):
        await PaymentService.process_payment(db, buyer, _payment(order_id))


async def test_pending_payment_can_be_settled_later(db, placed_order):
    buyer, product_id = placed_order
    order_id = await _place(db, buyer, product_id)
    payment = await PaymentService.process_payment(
        db, buyer, _payment(order_id), FixedSettlement(PaymentStatus.PENDING)
    )
    assert payment.status is PaymentStatus.PENDING

    payment = await PaymentService.update_payment_status(db, buyer, payment.id, PaymentStatus.COMPLETED)

    assert payment.status is PaymentStatus.COMPLETED
    assert (await OrderService.get_order(db, buyer, order_id)).status is OrderStatus.PENDING


async def test_refund_leaves_order_alone(db, placed_order, stock_of):
    buyer, product_id = placed_order
    order_id = await _place(db, buyer, product_id)
    payment_id = (await PaymentService.process_payment(db, buyer, _payment(order_id))).id

    payment = await PaymentService.update_payment_status(db, buyer, payment_id, PaymentStatus.REFUNDED)

    assert payment.status is PaymentStatus.REFUNDED
    assert (await OrderService.get_order(db, buyer, order_id)).status is OrderStatus.PROCESSING
    assert await stock_of(product_id) == 2


async def test_illegal_payment_transitions(db, placed_order, make_user):
    buyer, product_id = placed_order
    stranger = await make_user("stranger@example.com")
    order_id = await _place(db, buyer, product_id)
    payment_id = (await PaymentService.process_payment(db, buyer, _payment(order_id))).id

    with pytest.raises(InvalidTransition):
        await PaymentService.update_payment_status(db, buyer, payment_id, PaymentStatus.PENDING)
    with pytest.raises(InvalidTransition):
        await PaymentService.update_payment_status(db, buyer, payment_id, PaymentStatus.FAILED)
    with pytest.raises(Forbidden):
        await PaymentService.update_payment_status(db, stranger, payment_id, PaymentStatus.REFUNDED)
    with pytest.raises(NotFound):
        await PaymentService.update_payment_status(db, buyer, payment_id + 1, PaymentStatus.REFUNDED)

    await PaymentService.update_payment_status(db, buyer, payment_id, PaymentStatus.REFUNDED)
    with pytest.raises(InvalidTransition):
        await PaymentService.update_payment_status(db, buyer, payment_id, PaymentStatus.COMPLETED)
    assert (await PaymentService.get_payment(db, buyer, payment_id)).status is PaymentStatus.REFUNDED


async def test_payment_reads_are_owner_only(db, placed_order, make_user):
    buyer, product_id = placed_order
    stranger = await make_user("stranger@example.com")
    order_id = await _place(db, buyer, product_id)
    payment_id = (await PaymentService.process_payment(db, buyer, _payment(order_id))).id

    assert (await PaymentService.get_payment(db, buyer, payment_id)).order_id == order_id
    with pytest.raises(Forbidden):
        await PaymentService.get_payment(db, stranger, payment_id)
    with pytest.raises(Forbidden):
        await PaymentService.get_payment_by_order(db, stranger, order_id)
    with pytest.raises(NotFound):
        await PaymentService.get_payment(db, buyer, payment_id + 1)
    with pytest.raises(NotFound):
        await PaymentService.get_payment_by_order(db, buyer, order_id + 1)


async def test_storage_allows_one_payment_per_order(db, placed_order):
    buyer, product_id = placed_order
    order_id = await _place(db, buyer, product_id)

    for suffix in ("A", "B"):
        db.add(
            Payment(
                order_id=order_id,
                amount=Decimal("30.00"),
                payment_method=PaymentMethod.CREDIT_CARD,
                status=PaymentStatus.COMPLETED,
                transaction_id=f"TXN-DIRECT-{suffix}",
            )
        )
    with pytest.raises(IntegrityError):
        await db.flush()
    await db.rollback()


def test_payment_transition_table():
    assert can_transition(PaymentStatus.PENDING, PaymentStatus.COMPLETED)
    assert can_transition(PaymentStatus.PENDING, PaymentStatus.FAILED)
    assert can_transition(PaymentStatus.COMPLETED, PaymentStatus.REFUNDED)
    assert not can_transition(PaymentStatus.FAILED, PaymentStatus.COMPLETED)
    assert not can_transition(PaymentStatus.REFUNDED, PaymentStatus.PENDING)
