from datetime import datetime
from decimal import Decimal

from pydantic import Field

from restaurant.models import OrderStatus, PaymentMode, PaymentStatus
from restaurant.schemas.base import CamelModel


class OrderItemCreate(CamelModel):
    menu_item_id: int = Field(gt=0)
    quantity: int = Field(ge=1, le=10)
    customizations: str | None = Field(default=None, max_length=500)


class OrderCreate(CamelModel):
    items: list[OrderItemCreate] = Field(min_length=1, max_length=20)
    table_number: int = Field(ge=1, le=100)


class OrderConfirm(CamelModel):
    confirmed: bool


class OrderStatusUpdate(CamelModel):
    status: OrderStatus


class OrderItemResponse(CamelModel):
    id: int
    menu_item_id: int
    name_snapshot: str
    unit_price: Decimal
    quantity: int
    percent_off: Decimal
    line_total: Decimal
    customizations: str | None


class OrderResponse(CamelModel):
    id: int
    customer_id: int | None
    table_number: int
    status: OrderStatus
    subtotal_amount: Decimal
    tax_amount: Decimal
    service_charge_amount: Decimal
    tip_amount: Decimal
    total_amount: Decimal
    payment_mode: PaymentMode | None
    payment_status: PaymentStatus
    placed_at: datetime | None
    closed_at: datetime | None
    created_at: datetime
    items: list[OrderItemResponse]


class OrderSummary(CamelModel):
    id: int
    table_number: int
    status: OrderStatus
    total_amount: Decimal
    placed_at: datetime | None
    closed_at: datetime | None
    item_count: int


class OrderStatusResponse(CamelModel):
    order_id: int
    status: OrderStatus
    placed_at: datetime | None
    closed_at: datetime | None
    estimated_ready_at: datetime | None


class Pagination(CamelModel):
    limit: int
    offset: int
    count: int


class OrderHistoryResponse(CamelModel):
    orders: list[OrderSummary]
    pagination: Pagination


class OrderQueueResponse(CamelModel):
    orders: list[OrderResponse]
    pagination: Pagination
