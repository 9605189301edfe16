from decimal import ROUND_HALF_UP, Decimal

import structlog

from services.order_service.exceptions import InvalidInput, NotFound, RemoteCallRejected, RemoteTransportFailure
from services.order_service.models import Order, OrderItem, OrderStatus
from services.order_service.repository import OrderRepository
from .saga import SagaOrchestrator

logger = structlog.get_logger(__name__)

CENTS = Decimal("0.01")

# ctx keys set by the caller: "request" (OrderCreate), "db", "directory",
# "inventory", "payments".

# --- ACTIONS ---

async def resolve_shipping_address(ctx: dict):
    directory, data = ctx["directory"], ctx["request"]
    user = await directory.get_user(data.user_id)
    if user is None or user.addresses is None:
        raise NotFound("User or addresses not found.")

    address = next((a for a in user.addresses if a.id == data.shipping_address_id), None)
    if address is None:
        raise InvalidInput("Shipping address not valid for this user.")
    ctx["shipping_address"] = address.snapshot()

async def price_items(ctx: dict):
    # One catalog round-trip per item, in request order
    inventory, data = ctx["inventory"], ctx["request"]
    total = Decimal("0.00")
    items = []
    for line in data.items:
        product = await inventory.get_product(line.product_id)
        if product is None:
            raise NotFound(f"Product ID {line.product_id} not found.")
        if line.quantity > product.stock_quantity:
            raise InvalidInput(f"Insufficient stock for {product.name}.")

        price = product.price.quantize(CENTS, rounding=ROUND_HALF_UP)
        total += price * line.quantity
        items.append(OrderItem(
            product_id=line.product_id,
            product_name=product.name,
            quantity=line.quantity,
            price_per_unit=price,
        ))
    ctx["items"] = items
    ctx["total_amount"] = total.quantize(CENTS, rounding=ROUND_HALF_UP)

async def charge_payment(ctx: dict):
    payments, data = ctx["payments"], ctx["request"]
    ctx["transaction_id"] = await payments.charge(data.payment_method, ctx["total_amount"])

async def persist_order(ctx: dict):
    data = ctx["request"]
    order = Order(
        user_id=data.user_id,
        total_amount=ctx["total_amount"],
        status=OrderStatus.PROCESSING,
        shipping_address=ctx["shipping_address"],
        payment_method=data.payment_method,
        transaction_id=ctx["transaction_id"],
    )
    ctx["order"] = await OrderRepository.create_order_with_items(ctx["db"], order, ctx["items"])

def _stock_key(order, item) -> str:
    return f"order-{order.id}-item-{item.id}"

async def adjust_stock(ctx: dict):
    # Runs after the local commit: this is the point of no return
    inventory, order = ctx["inventory"], ctx["order"]
    adjusted = ctx.setdefault("adjusted_items", [])
    for item in order.items:
        # Unknown outcome until the catalog answers
        ctx["stock_in_doubt"] = item
        try:
            await inventory.adjust_stock(item.product_id, -item.quantity, idempotency_key=_stock_key(order, item))
        except RemoteCallRejected:
            # An explicit rejection means nothing was applied
            ctx.pop("stock_in_doubt")
            raise
        ctx.pop("stock_in_doubt")
        adjusted.append(item)


# --- COMPENSATIONS (Rollbacks) ---

async def refund_payment(ctx: dict):
    tx_id = ctx.get("transaction_id")
    if tx_id:
        await ctx["payments"].refund(tx_id, ctx["total_amount"])

async def cancel_order(ctx: dict):
    order = ctx.get("order")
    if order is not None:
        await OrderRepository.update_status(ctx["db"], order, OrderStatus.CANCELLED)
        logger.warning("order_cancelled_by_compensation", order_id=order.id)

async def restore_stock(ctx: dict):
    inventory, order = ctx["inventory"], ctx.get("order")
    adjusted = list(ctx.get("adjusted_items", []))
    unsettled = None

    in_doubt = ctx.pop("stock_in_doubt", None)
    if in_doubt is not None:
        # Replaying under the same key settles the decrement without applying it twice
        try:
            await inventory.adjust_stock(
                in_doubt.product_id, -in_doubt.quantity, idempotency_key=_stock_key(order, in_doubt)
            )
            adjusted.append(in_doubt)
        except RemoteCallRejected:
            logger.info("stock_adjustment_never_applied", order_id=order.id, product_id=in_doubt.product_id)
        except RemoteTransportFailure as e:
            logger.error("stock_adjustment_unsettled", order_id=order.id, product_id=in_doubt.product_id)
            unsettled = e

    for item in reversed(adjusted):
        await inventory.adjust_stock(
            item.product_id,
            item.quantity,
            idempotency_key=f"{_stock_key(order, item)}-restore",
        )

    if unsettled is not None:
        raise unsettled


# --- BUILDER FACTORY ---

def build_order_saga() -> SagaOrchestrator:
    saga = SagaOrchestrator()
    saga.add_step("resolve_shipping_address", resolve_shipping_address, None) # Read-only
    saga.add_step("price_items", price_items, None) # Read-only
    saga.add_step("charge_payment", charge_payment, refund_payment)
    saga.add_step("persist_order", persist_order, cancel_order)
    saga.add_step("adjust_stock", adjust_stock, restore_stock)
    return saga
