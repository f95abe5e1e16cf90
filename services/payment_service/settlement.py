"""
Settlement strategies decide the initial status of a new payment.

ImmediateSettlement reproduces the storefront's historical behaviour (every
payment completes at once). GatewaySettlement asks an external HTTP gateway
and is selected when PAYMENT_GATEWAY_URL is configured.
"""
import os
from decimal import Decimal
from typing import Protocol

import httpx
import structlog

from services.order_service.models import Order

from .models import PaymentMethod, PaymentStatus

logger = structlog.get_logger(__name__)

PAYMENT_GATEWAY_URL = os.getenv("PAYMENT_GATEWAY_URL")
PAYMENT_GATEWAY_TIMEOUT = float(os.getenv("PAYMENT_GATEWAY_TIMEOUT", "10"))


class SettlementStrategy(Protocol):
    async def settle(
        self, order: Order, amount: Decimal, method: PaymentMethod, transaction_id: str
    ) -> PaymentStatus:
        ...


class ImmediateSettlement:
    """No gateway: the payment is considered captured on submission."""

    async def settle(
        self, order: Order, amount: Decimal, method: PaymentMethod, transaction_id: str
    ) -> PaymentStatus:
        return PaymentStatus.COMPLETED


class GatewaySettlement:
    """
    Charge through an HTTP payment gateway.

    The gateway answers ``{"status": "succeeded" | "failed" | "pending"}``.
    Anything else, including timeouts and transport errors, leaves the payment
    PENDING so it can be reconciled later through a status update.
    """

    OUTCOMES = {
        "succeeded": PaymentStatus.COMPLETED,
        "failed": PaymentStatus.FAILED,
        "pending": PaymentStatus.PENDING,
    }

    def __init__(
        self,
        url: str,
        timeout: float = PAYMENT_GATEWAY_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self.transport = transport

    async def settle(
        self, order: Order, amount: Decimal, method: PaymentMethod, transaction_id: str
    ) -> PaymentStatus:
        payload = {
            "order_number": order.order_number,
            "amount": str(amount),
            "payment_method": method.value,
            "transaction_id": transaction_id,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(
                    self.url, json=payload, headers={"Idempotency-Key": transaction_id}
                )
                resp.raise_for_status()
                body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("payment_gateway_error", transaction_id=transaction_id, error=str(e))
            return PaymentStatus.PENDING

        outcome = body.get("status") if isinstance(body, dict) else None
        status = self.OUTCOMES.get(outcome) if isinstance(outcome, str) else None
        if status is None:
            logger.warning("payment_gateway_unknown_outcome", transaction_id=transaction_id, outcome=outcome)
            return PaymentStatus.PENDING
        return status


def get_settlement_strategy() -> SettlementStrategy:
    """FastAPI dependency; override it to plug in another strategy."""
    if PAYMENT_GATEWAY_URL:
        return GatewaySettlement(PAYMENT_GATEWAY_URL)
    return ImmediateSettlement()
