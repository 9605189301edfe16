from .setup import setup_observability
from .metrics import (
    orders_created_total,
    orders_create_duration_seconds,
    orders_saga_compensation_total,
    orders_remote_call_failures_total,
)
