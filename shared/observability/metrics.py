from prometheus_client import Counter, Histogram

# Business Metrics
storefront_orders_total = Counter(
    "storefront_orders_total",
    "Total order placements attempted",
    ["outcome"] # Labels: 'created', 'insufficient_stock', 'rejected'
)

storefront_order_create_duration_seconds = Histogram(
    "storefront_order_create_duration_seconds",
    "Order placement duration in seconds"
)

storefront_stock_reservation_failures_total = Counter(
    "storefront_stock_reservation_failures_total",
    "Stock reservations refused because availability was too low",
    ["reason"] # Labels: 'snapshot', 'race_lost'
)

storefront_order_transitions_total = Counter(
    "storefront_order_transitions_total",
    "Order status transitions applied",
    ["from_status", "to_status"]
)

storefront_payments_total = Counter(
    "storefront_payments_total",
    "Payments created, by settlement result",
    ["status", "method"]
)

storefront_payment_transitions_total = Counter(
    "storefront_payment_transitions_total",
    "Payment status transitions applied",
    ["from_status", "to_status"]
)

