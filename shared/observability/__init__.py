from .setup import setup_observability
from .metrics import (
    storefront_orders_total,
    storefront_order_create_duration_seconds,
    storefront_stock_reservation_failures_total,
    storefront_order_transitions_total,
    storefront_payments_total,
    storefront_payment_transitions_total,
)
