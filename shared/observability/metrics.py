from prometheus_client import Counter, Histogram

# Business Metrics
orders_created_total = Counter(
    "orders_created_total",
    "Total order creation attempts",
    ["status"] # Labels: 'success', 'failed'
)

orders_create_duration_seconds = Histogram(
    "orders_create_duration_seconds",
    "Order creation saga duration in seconds"
)

orders_saga_compensation_total = Counter(
    "orders_saga_compensation_total",
    "Total saga compensations triggered",
    ["step_name"] # Labels: 'charge_payment', 'persist_order', 'adjust_stock'
)

orders_remote_call_failures_total = Counter(
    "orders_remote_call_failures_total",
    "Failed calls to the user directory or product catalog",
    ["dependency", "kind"] # kind: 'transport' or 'rejected'
)
