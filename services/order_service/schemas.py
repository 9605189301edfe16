from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import OrderStatus


class CamelModel(BaseModel):
    # JSON speaks camelCase (userId, shippingAddressId, ...), Python snake_case
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- Requests ---

class OrderItemCreate(CamelModel):
    product_id: int = Field(ge=1)
    quantity: int = Field(ge=1)

class OrderCreate(CamelModel):
    user_id: int = Field(ge=1)
    shipping_address_id: int = Field(ge=1)
    payment_method: str = Field(min_length=1, max_length=50)
    items: List[OrderItemCreate] = Field(min_length=1)

class StatusUpdate(CamelModel):
    # Plain string: unknown values are rejected by the service as a 400, not a 422
    status: str


# --- Responses ---

class OrderItemResponse(CamelModel):
    id: int
    order_id: int
    product_id: int
    product_name: str
    quantity: int
    price_per_unit: float

class OrderResponse(CamelModel):
    id: int
    user_id: int
    total_amount: float
    status: OrderStatus
    shipping_address: str
    payment_method: str
    transaction_id: Optional[str]
    created_at: datetime
    items: List[OrderItemResponse] = []

class OrderPage(CamelModel):
    data: List[OrderResponse]
    total: int
    page: int
    limit: int
    total_pages: int

class OrderEnvelope(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: Optional[OrderResponse] = None

class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_count: int
    limit: int

class AdminOrderPage(CamelModel):
    orders: List[OrderResponse]
    pagination: Pagination

class AdminOrderPageEnvelope(CamelModel):
    success: bool = True
    data: AdminOrderPage

class OrderStatistics(CamelModel):
    total_orders: int
    pending_orders: int
    completed_orders: int
    total_revenue: Decimal
    average_order_value: Decimal

class OrderStatisticsEnvelope(CamelModel):
    success: bool = True
    data: OrderStatistics
