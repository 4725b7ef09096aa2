"""
Notification service consumer. Listens to order.placed and
order.status_changed and logs the customer-facing notification each one
produces. Delivery channels (push, SMS) would hang off ``_notify``.
"""

import logging

from aiokafka import AIOKafkaConsumer
from opentelemetry import trace
from opentelemetry.propagate import extract
from pydantic import ValidationError

from notification_service.metrics import NOTIFICATIONS
from shared.events import (
    ORDER_PLACED_TOPIC,
    ORDER_STATUS_CHANGED_TOPIC,
    OrderPlacedEvent,
    OrderStatusChangedEvent,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

TOPICS = (ORDER_PLACED_TOPIC, ORDER_STATUS_CHANGED_TOPIC)

# Statuses the customer hears about; the rest are kitchen bookkeeping
STATUS_MESSAGES = {
    "in_kitchen": "Your order is being prepared",
    "ready": "Your order is ready",
    "served": "Enjoy your meal",
    "closed": "Thanks for dining with us",
    "cancelled": "Your order was cancelled",
}


async def run_consumer(consumer: AIOKafkaConsumer) -> None:
    """Main consumer loop, runs until cancelled."""
    async for msg in consumer:
        await _handle_message(msg)


async def _handle_message(msg) -> str:
    """Process one record and return the outcome label it was counted under."""
    # Extract W3C trace context propagated via Kafka headers
    headers = {k: v.decode(errors="replace") for k, v in msg.headers if v is not None} if msg.headers else {}
    ctx = extract(headers)

    with tracer.start_as_current_span(f"kafka.consume.{msg.topic}", context=ctx):
        try:
            if msg.topic == ORDER_PLACED_TOPIC:
                outcome = _on_order_placed(OrderPlacedEvent.model_validate_json(msg.value))
            elif msg.topic == ORDER_STATUS_CHANGED_TOPIC:
                outcome = _on_status_changed(OrderStatusChangedEvent.model_validate_json(msg.value))
            else:
                logger.warning("Ignoring message from unexpected topic", extra={"topic": msg.topic})
                outcome = "ignored"
        except ValidationError as exc:
            logger.error(
                "Failed to parse order event",
                extra={
                    "topic": msg.topic,
                    "error": str(exc),
                    "offset": msg.offset,
                    "partition": msg.partition,
                },
            )
            outcome = "parse_error"

    NOTIFICATIONS.labels(msg.topic, outcome).inc()
    return outcome


def _on_order_placed(event: OrderPlacedEvent) -> str:
    _notify(
        event.customer_id,
        f"Order #{event.order_id} received for table {event.table_number}",
        order_id=event.order_id,
        correlation_id=event.correlation_id,
        total_amount=str(event.total_amount),
        item_count=sum(line.quantity for line in event.items),
    )
    return "sent"


def _on_status_changed(event: OrderStatusChangedEvent) -> str:
    text = STATUS_MESSAGES.get(event.status)
    if text is None:
        return "skipped"
    _notify(
        event.customer_id,
        f"{text} (order #{event.order_id})",
        order_id=event.order_id,
        correlation_id=event.correlation_id,
        previous_status=event.previous_status,
        status=event.status,
    )
    return "sent"


def _notify(customer_id: int | None, text: str, **context) -> None:
    logger.info(
        "NOTIFICATION: %s",
        text,
        extra={"customer_id": customer_id, **context},
    )
