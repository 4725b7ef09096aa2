"""
Notification service entry point.
Starts the Kafka consumer on the order topics and runs the consumer loop.
"""

import asyncio
import logging

import prometheus_client
from aiokafka import AIOKafkaConsumer

from notification_service.config import settings
from notification_service.consumer import TOPICS, run_consumer
from shared.logging import setup_logging
from shared.tracing import setup_tracing

SERVICE_NAME = "notification-service"

logger = logging.getLogger(__name__)


async def main() -> None:
    consumer = AIOKafkaConsumer(
        *TOPICS,
        bootstrap_servers=settings.kafka_bootstrap_servers,
        group_id=settings.kafka_consumer_group,
        enable_auto_commit=True,
        auto_offset_reset="earliest",
    )

    await consumer.start()
    logger.info(
        "Notification service started",
        extra={
            "topics": list(TOPICS),
            "bootstrap_servers": settings.kafka_bootstrap_servers,
            "consumer_group": settings.kafka_consumer_group,
            "metrics_port": settings.metrics_port,
        },
    )

    try:
        await run_consumer(consumer)
    finally:
        await consumer.stop()
        logger.info("Notification service stopped")


if __name__ == "__main__":
    setup_logging(SERVICE_NAME, settings.log_level)
    prometheus_client.start_http_server(settings.metrics_port)
    setup_tracing(SERVICE_NAME, settings.otlp_endpoint)
    asyncio.run(main())
