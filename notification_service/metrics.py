from prometheus_client import Counter

NOTIFICATIONS = Counter(
    "notifications_processed_total",
    "Order events processed by the notification service",
    ["topic", "outcome"],  # sent | skipped | ignored | parse_error
)
