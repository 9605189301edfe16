from decimal import Decimal

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Order, OrderItem, OrderStatus


class OrderRepository:
    @staticmethod
    async def create_order_with_items(db: AsyncSession, order: Order, items: list[OrderItem]) -> Order:
        """Writes the order and its items as one transaction: all rows or none."""
        try:
            order.items = list(items)
            db.add(order)
            await db.flush()
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return order

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int):
        result = await db.execute(select(Order).where(Order.id == order_id))
        return result.scalars().first()

    @staticmethod
    async def list_by_user(db: AsyncSession, user_id: int):
        result = await db.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
        )
        return result.scalars().all()

    @staticmethod
    async def list_all(db: AsyncSession):
        result = await db.execute(select(Order).order_by(Order.created_at.desc(), Order.id.desc()))
        return result.scalars().all()

    @staticmethod
    async def list_page(db: AsyncSession, page: int, limit: int, status: OrderStatus | None = None):
        """Returns one page of orders, newest first, and the total matching count."""
        stmt = select(Order)
        count_stmt = select(func.count(Order.id))
        if status is not None:
            stmt = stmt.where(Order.status == status)
            count_stmt = count_stmt.where(Order.status == status)

        total = (await db.execute(count_stmt)).scalar_one()
        result = await db.execute(
            stmt.order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return result.scalars().all(), total

    @staticmethod
    async def list_item_rows(db: AsyncSession, order_id: int):
        result = await db.execute(select(OrderItem).where(OrderItem.order_id == order_id))
        return result.scalars().all()

    @staticmethod
    async def update_status(db: AsyncSession, order: Order, status: OrderStatus) -> Order:
        order.status = status
        await db.commit()
        return order

    @staticmethod
    async def delete_order(db: AsyncSession, order_id: int):
        # Items first, then the order row, in a single transaction
        try:
            await db.execute(delete(OrderItem).where(OrderItem.order_id == order_id))
            await db.execute(delete(Order).where(Order.id == order_id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise

    @staticmethod
    async def statistics(db: AsyncSession):
        result = await db.execute(
            select(
                func.count(Order.id),
                func.coalesce(func.sum(Order.total_amount), 0),
            )
        )
        total_orders, total_revenue = result.one()

        by_status = await db.execute(
            select(Order.status, func.count(Order.id)).group_by(Order.status)
        )
        counts = {status: count for status, count in by_status.all()}

        return {
            "total_orders": total_orders,
            "total_revenue": Decimal(str(total_revenue)),
            "status_counts": counts,
        }
