from prometheus_client import Counter

ORDERS_CREATED = Counter(
    "orders_created_total",
    "Orders created and placed",
)

ORDER_VALIDATION_FAILURES = Counter(
    "order_validation_failures_total",
    "Order requests rejected by item validation",
    ["stage"],  # create | place
)

ORDER_TRANSITIONS = Counter(
    "order_status_transitions_total",
    "Applied order status transitions",
    ["from_status", "to_status"],
)

ORDER_TRANSITION_CONFLICTS = Counter(
    "order_status_transition_conflicts_total",
    "Transitions lost to a concurrent status change",
)

DRAFTS_PURGED = Counter(
    "order_drafts_purged_total",
    "Expired draft orders deleted by the lazy sweep",
)
