import math
from decimal import ROUND_HALF_UP, Decimal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import settings
from .constants import ALLOWED_TRANSITIONS
from .exceptions import InvalidInput, NotFound
from .models import Order, OrderStatus
from .repository import OrderRepository

logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")


def parse_status(value: str) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidInput(f"Invalid status: {value}")


class OrderService:
    @staticmethod
    async def get_order(db: AsyncSession, order_id: int) -> Order:
        order = await OrderRepository.get_order(db, order_id)
        if not order:
            raise NotFound(f"Order ID {order_id} not found.")
        return order

    @staticmethod
    async def list_user_orders(db: AsyncSession, user_id: int):
        return await OrderRepository.list_by_user(db, user_id)

    @staticmethod
    async def list_orders(db: AsyncSession):
        return await OrderRepository.list_all(db)

    @staticmethod
    async def paginate(db: AsyncSession, page: int, limit: int, status: str | None = None) -> dict:
        # An unknown status filter matches nothing rather than failing
        status_filter = None
        if status:
            try:
                status_filter = OrderStatus(status)
            except ValueError:
                return {"orders": [], "total": 0, "page": page, "limit": limit, "total_pages": 0}

        orders, total = await OrderRepository.list_page(db, page, limit, status_filter)
        return {
            "orders": orders,
            "total": total,
            "page": page,
            "limit": limit,
            "total_pages": math.ceil(total / limit),
        }

    @staticmethod
    async def update_status(
        db: AsyncSession, order_id: int, status: str, enforce_transitions: bool | None = None
    ) -> Order:
        """
        Sets a new status on an order.

        The value must be a member of ``OrderStatus``. Any member may replace any
        other unless transition enforcement is enabled, in which case only the
        moves listed in ``ALLOWED_TRANSITIONS`` are accepted.
        """
        order = await OrderService.get_order(db, order_id)
        new_status = parse_status(status)

        if enforce_transitions is None:
            enforce_transitions = settings.ENFORCE_STATUS_TRANSITIONS
        if enforce_transitions and new_status != order.status:
            if new_status not in ALLOWED_TRANSITIONS[order.status]:
                raise InvalidInput(
                    f"Cannot change order status from {order.status.value} to {new_status.value}"
                )

        previous = order.status
        order = await OrderRepository.update_status(db, order, new_status)
        logger.info("order_status_updated", order_id=order.id, previous=previous.value, status=new_status.value)
        return order

    @staticmethod
    async def cancel_order(db: AsyncSession, order_id: int) -> Order:
        return await OrderService.update_status(db, order_id, OrderStatus.CANCELLED.value)

    @staticmethod
    async def delete_order(db: AsyncSession, order_id: int) -> None:
        await OrderService.get_order(db, order_id)
        await OrderRepository.delete_order(db, order_id)
        logger.info("order_deleted", order_id=order_id)

    @staticmethod
    async def statistics(db: AsyncSession) -> dict:
        stats = await OrderRepository.statistics(db)
        total_orders = stats["total_orders"]
        total_revenue = stats["total_revenue"].quantize(CENTS, rounding=ROUND_HALF_UP)
        average = (total_revenue / total_orders).quantize(CENTS, rounding=ROUND_HALF_UP) if total_orders else Decimal("0.00")
        counts = stats["status_counts"]
        return {
            "total_orders": total_orders,
            "pending_orders": counts.get(OrderStatus.PENDING, 0),
            "completed_orders": counts.get(OrderStatus.DELIVERED, 0),
            "total_revenue": total_revenue,
            "average_order_value": average,
        }
