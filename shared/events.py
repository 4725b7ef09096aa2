"""
Pydantic event schemas shared across all services.
All events extend EventBase which carries correlation/tracing metadata.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, Field

ORDER_PLACED_TOPIC = "order.placed"
ORDER_STATUS_CHANGED_TOPIC = "order.status_changed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventBase(BaseModel):
    event_id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_version: int = 1
    correlation_id: str  # carries X-Request-ID from the HTTP layer
    occurred_at: datetime = Field(default_factory=_utcnow)

    model_config = {"extra": "ignore"}


class OrderLineEvent(BaseModel):
    menu_item_id: int
    name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal

    model_config = {"extra": "ignore"}


class OrderPlacedEvent(EventBase):
    order_id: int
    customer_id: int | None
    table_number: int
    total_amount: Decimal
    placed_at: datetime
    items: list[OrderLineEvent]


class OrderStatusChangedEvent(EventBase):
    order_id: int
    customer_id: int | None
    table_number: int
    previous_status: str
    status: str
