import random
import time
from decimal import Decimal

import structlog

from services.order_service.exceptions import InvalidInput

logger = structlog.get_logger(__name__)


class PaymentProcessor:
    """
    Mock payment gateway. Charges are captured in a single call; there is no
    separate authorize step.
    """

    SUPPORTED_METHODS = frozenset({"MockPayment"})

    def __init__(self):
        self._last_stamp = 0

    def _next_stamp(self) -> int:
        # Strictly increasing per process so two charges never share an id
        stamp = time.time_ns() // 1_000
        if stamp <= self._last_stamp:
            stamp = self._last_stamp + 1
        self._last_stamp = stamp
        return stamp

    async def charge(self, method: str, amount: Decimal) -> str:
        if method not in self.SUPPORTED_METHODS:
            raise InvalidInput(f"Payment method {method} not supported.")
        transaction_id = f"TXN-{self._next_stamp()}-{random.randint(0, 999)}"
        logger.info("payment_captured", method=method, amount=str(amount), transaction_id=transaction_id)
        return transaction_id

    async def refund(self, transaction_id: str, amount: Decimal) -> None:
        # In a real gateway this would hit the provider's refund endpoint
        logger.info("payment_refund_requested", transaction_id=transaction_id, amount=str(amount))


payment_processor = PaymentProcessor()

def get_payment_processor() -> PaymentProcessor:
    return payment_processor
