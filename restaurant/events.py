import logging
from typing import Protocol

from aiokafka import AIOKafkaProducer
from opentelemetry.propagate import inject

from restaurant.models import Order, OrderStatus
from shared.events import (
    ORDER_PLACED_TOPIC,
    ORDER_STATUS_CHANGED_TOPIC,
    EventBase,
    OrderLineEvent,
    OrderPlacedEvent,
    OrderStatusChangedEvent,
)

logger = logging.getLogger(__name__)


class EventPublisher(Protocol):
    async def publish(self, topic: str, key: str, event: EventBase) -> None: ...


class KafkaEventPublisher:
    def __init__(self, producer: AIOKafkaProducer):
        self.producer = producer

    async def publish(self, topic: str, key: str, event: EventBase) -> None:
        # Propagate trace context into the downstream Kafka message
        outgoing_headers: dict[str, str] = {}
        inject(outgoing_headers)
        await self.producer.send_and_wait(
            topic,
            key=key.encode(),
            value=event.model_dump_json().encode(),
            headers=[(k, v.encode()) for k, v in outgoing_headers.items()],
        )
        logger.info(
            "Published %s event",
            topic,
            extra={"key": key, "correlation_id": event.correlation_id},
        )


def order_placed_event(order: Order, correlation_id: str) -> OrderPlacedEvent:
    return OrderPlacedEvent(
        correlation_id=correlation_id,
        order_id=order.id,
        customer_id=order.customer_id,
        table_number=order.table_number,
        total_amount=order.total_amount,
        placed_at=order.placed_at,
        items=[
            OrderLineEvent(
                menu_item_id=item.menu_item_id,
                name=item.name_snapshot,
                quantity=item.quantity,
                unit_price=item.unit_price,
                line_total=item.line_total,
            )
            for item in order.items
        ],
    )


def order_status_changed_event(
    order: Order, previous: OrderStatus, correlation_id: str
) -> OrderStatusChangedEvent:
    return OrderStatusChangedEvent(
        correlation_id=correlation_id,
        order_id=order.id,
        customer_id=order.customer_id,
        table_number=order.table_number,
        previous_status=previous.value,
        status=order.status.value,
    )


async def publish_order_placed(publisher: EventPublisher, order: Order, correlation_id: str) -> None:
    await publisher.publish(
        ORDER_PLACED_TOPIC, str(order.id), order_placed_event(order, correlation_id)
    )


async def publish_status_changed(
    publisher: EventPublisher, order: Order, previous: OrderStatus, correlation_id: str
) -> None:
    await publisher.publish(
        ORDER_STATUS_CHANGED_TOPIC,
        str(order.id),
        order_status_changed_event(order, previous, correlation_id),
    )
