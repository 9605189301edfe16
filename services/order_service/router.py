import httpx
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import settings
from shared.config.database import get_db
from shared.security import limiter, verify_internal_api_key
from services.orchestrator.clients import get_http_client
from services.orchestrator.service import OrderOrchestrator
from services.payment_service.service import PaymentProcessor, get_payment_processor
from .schemas import (
    AdminOrderPage,
    AdminOrderPageEnvelope,
    OrderCreate,
    OrderEnvelope,
    OrderPage,
    OrderResponse,
    OrderStatistics,
    OrderStatisticsEnvelope,
    Pagination,
    StatusUpdate,
)
from .service import OrderService

public_router = APIRouter()  # For any public endpoints (e.g. health check)
router = APIRouter(prefix="/orders", tags=["Orders"])
# THIS PROTECTS THE ENTIRE ADMIN SURFACE
admin_router = APIRouter(
    prefix="/admin/orders",
    tags=["Admin Orders"],
    dependencies=[Depends(verify_internal_api_key)],
)


async def get_orchestrator(
    db: AsyncSession = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
    payments: PaymentProcessor = Depends(get_payment_processor),
) -> OrderOrchestrator:
    return OrderOrchestrator.over_http(db, client, payments)


@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "order", "status": "running"}


# --- CUSTOMER ENDPOINTS ---

# MUST BE BEFORE /orders/{order_id}
@router.get("", response_model=OrderPage)
async def list_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    result = await OrderService.paginate(db, page, limit)
    return OrderPage(
        data=[OrderResponse.model_validate(o) for o in result["orders"]],
        total=result["total"],
        page=result["page"],
        limit=result["limit"],
        total_pages=result["total_pages"],
    )

@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.CREATE_ORDER_RATE_LIMIT)
async def create_order(
    request: Request,  # REQUIRED: slowapi needs this to check IP/Headers
    payload: OrderCreate,
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
):
    return await orchestrator.create_order(payload)

@router.get("/user/{user_id}", response_model=list[OrderResponse])
async def list_user_orders(user_id: int, db: AsyncSession = Depends(get_db)):
    return await OrderService.list_user_orders(db, user_id)

@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: int, db: AsyncSession = Depends(get_db)):
    return await OrderService.get_order(db, order_id)

@router.patch("/{order_id}/cancel", response_model=OrderEnvelope)
async def cancel_order(order_id: int, db: AsyncSession = Depends(get_db)):
    order = await OrderService.cancel_order(db, order_id)
    return OrderEnvelope(message="Order cancelled successfully", data=OrderResponse.model_validate(order))


# --- ADMIN ENDPOINTS ---

# MUST BE BEFORE /admin/orders/{order_id}
@admin_router.get("/statistics", response_model=OrderStatisticsEnvelope)
async def order_statistics(db: AsyncSession = Depends(get_db)):
    stats = await OrderService.statistics(db)
    return OrderStatisticsEnvelope(data=OrderStatistics(**stats))

@admin_router.get("", response_model=AdminOrderPageEnvelope)
async def admin_list_orders(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    order_status: str | None = Query(default=None, alias="status"),
    db: AsyncSession = Depends(get_db),
):
    result = await OrderService.paginate(db, page, limit, order_status)
    return AdminOrderPageEnvelope(
        data=AdminOrderPage(
            orders=[OrderResponse.model_validate(o) for o in result["orders"]],
            pagination=Pagination(
                current_page=result["page"],
                total_pages=result["total_pages"],
                total_count=result["total"],
                limit=result["limit"],
            ),
        )
    )

@admin_router.get("/{order_id}", response_model=OrderEnvelope)
async def admin_get_order(order_id: int, db: AsyncSession = Depends(get_db)):
    order = await OrderService.get_order(db, order_id)
    return OrderEnvelope(data=OrderResponse.model_validate(order))

@admin_router.patch("/{order_id}/status", response_model=OrderEnvelope)
async def admin_update_status(order_id: int, payload: StatusUpdate, db: AsyncSession = Depends(get_db)):
    order = await OrderService.update_status(db, order_id, payload.status)
    return OrderEnvelope(message="Order status updated successfully", data=OrderResponse.model_validate(order))

@admin_router.delete("/{order_id}", response_model=OrderEnvelope, response_model_exclude_none=True)
async def admin_delete_order(order_id: int, db: AsyncSession = Depends(get_db)):
    await OrderService.delete_order(db, order_id)
    return OrderEnvelope(message="Order deleted successfully")
