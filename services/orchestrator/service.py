import time

import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.observability import orders_create_duration_seconds, orders_created_total
from services.order_service.exceptions import (
    Internal,
    InvalidInput,
    NotFound,
    OrderError,
    RemoteCallRejected,
    RemoteServiceError,
    RemoteTransportFailure,
    ServiceUnavailable,
)
from services.order_service.models import Order
from services.order_service.schemas import OrderCreate
from services.payment_service.service import PaymentProcessor, payment_processor
from .clients import DirectoryClient, InventoryClient
from .order_saga import build_order_saga

logger = structlog.get_logger(__name__)


def classify_error(error: Exception) -> OrderError:
    """Maps anything raised during order creation onto the order error taxonomy."""
    # A. Domain errors raised locally pass through unchanged
    if isinstance(error, OrderError):
        return error

    # B. Structured rejections from a remote service keep their status/message
    if isinstance(error, RemoteCallRejected):
        if error.status_code == 400:
            return InvalidInput(error.message)
        if error.status_code == 404:
            return NotFound(error.message)
        return RemoteServiceError(error.message, error.status_code)

    # C. The remote service could not be reached at all
    if isinstance(error, RemoteTransportFailure):
        return ServiceUnavailable(
            f"Failed to connect to a required service ({error.dependency}): {error.reason}"
        )

    # D. Anything else (storage errors, crashes)
    message = str(error) or "Order processing failed due to an unhandled internal error."
    return Internal(message)


class OrderOrchestrator:
    """
    Creates orders by coordinating the user directory, the product catalog,
    the payment gateway and local storage.

    Steps run strictly in sequence: resolve the shipping address, price each
    item, charge the payment, persist order + items atomically, then decrement
    catalog stock per item. Nothing is written locally before the payment is
    captured, and no stock is touched before the order is committed. If the
    stock step fails after commit, the saga restores the decrements already
    applied, cancels the order and refunds the payment.
    """

    def __init__(
        self,
        db: AsyncSession,
        directory: DirectoryClient,
        inventory: InventoryClient,
        payments: PaymentProcessor,
    ):
        self.db = db
        self.directory = directory
        self.inventory = inventory
        self.payments = payments

    @classmethod
    def over_http(cls, db: AsyncSession, client: httpx.AsyncClient, payments: PaymentProcessor | None = None):
        return cls(db, DirectoryClient(client), InventoryClient(client), payments or payment_processor)

    async def create_order(self, data: OrderCreate) -> Order:
        ctx = {
            "request": data,
            "db": self.db,
            "directory": self.directory,
            "inventory": self.inventory,
            "payments": self.payments,
        }
        log = logger.bind(user_id=data.user_id, items=len(data.items))
        started = time.perf_counter()
        try:
            await build_order_saga().execute(ctx)
        except Exception as e:
            error = classify_error(e)
            order = ctx.get("order")
            if order is not None:
                error.order_id = order.id
            orders_created_total.labels(status="failed").inc()
            log.warning(
                "order_creation_failed",
                step=ctx.get("failed_step"),
                status_code=error.status_code,
                error=error.message,
                order_id=error.order_id,
            )
            if error is e:
                raise
            raise error from e
        finally:
            orders_create_duration_seconds.observe(time.perf_counter() - started)

        order = ctx["order"]
        orders_created_total.labels(status="success").inc()
        log.info("order_created", order_id=order.id, total_amount=str(order.total_amount))
        return order
