import logging
from collections import defaultdict
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from restaurant.config import settings
from restaurant.errors import NotFoundError, TransitionError, ValidationError
from restaurant.events import EventPublisher, publish_order_placed, publish_status_changed
from restaurant.metrics import (
    DRAFTS_PURGED,
    ORDER_TRANSITION_CONFLICTS,
    ORDER_TRANSITIONS,
    ORDER_VALIDATION_FAILURES,
    ORDERS_CREATED,
)
from restaurant.models import MenuItem, Order, OrderItem, OrderStatus, PaymentStatus
from restaurant.services.access import Identity, Permission, authorize
from restaurant.services.storage import Storage
from restaurant.services.totals import calculate_order_totals, line_total
from restaurant.services.validation import validate_order_item
from restaurant.utils.clock import utcnow

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.DRAFT: frozenset({OrderStatus.PLACED}),
    OrderStatus.PLACED: frozenset({OrderStatus.IN_KITCHEN, OrderStatus.CANCELLED}),
    OrderStatus.IN_KITCHEN: frozenset({OrderStatus.READY}),
    OrderStatus.READY: frozenset({OrderStatus.SERVED}),
    OrderStatus.SERVED: frozenset({OrderStatus.CLOSED}),
    OrderStatus.CLOSED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# What the kitchen and floor staff still have to act on
ACTIVE_STATUSES = (
    OrderStatus.PLACED,
    OrderStatus.IN_KITCHEN,
    OrderStatus.READY,
    OrderStatus.SERVED,
)

# Offsets from placed_at used for the customer-facing estimate
_READY_ESTIMATES = {
    OrderStatus.PLACED: timedelta(minutes=30),
    OrderStatus.IN_KITCHEN: timedelta(minutes=20),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


@dataclass(frozen=True)
class OrderStatusView:
    order_id: int
    status: OrderStatus
    placed_at: datetime | None
    closed_at: datetime | None
    estimated_ready_at: datetime | None


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class OrderService:
    """
    Order lifecycle: creation, placement, staff status changes and reads.

    Every status change goes through ``_transition`` so placement after
    creation, customer confirmation and staff updates share one set of
    rules and side effects.
    """

    def __init__(
        self,
        storage: Storage,
        publisher: EventPublisher,
        *,
        draft_ttl: timedelta | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.storage = storage
        self.publisher = publisher
        self.draft_ttl = draft_ttl or timedelta(minutes=settings.draft_ttl_minutes)
        self.clock = clock

    # -- commands -----------------------------------------------------------

    async def create_order(
        self,
        identity: Identity,
        table_number: int,
        items: Sequence,
        request_id: str = "unknown",
    ) -> Order:
        authorize(identity, Permission.PLACE_ORDER)
        await self.purge_expired_drafts()

        if not items:
            raise ValidationError(["Order must contain at least one item"])

        now = self.clock()
        async with self.storage.transaction():
            menu_items = await self.storage.menu.get_many([i.menu_item_id for i in items])
            missing = sorted({i.menu_item_id for i in items} - menu_items.keys())
            if missing:
                raise NotFoundError(f"Menu items not found: {missing}")

            errors: list[str] = []
            for requested in items:
                errors.extend(validate_order_item(requested, menu_items[requested.menu_item_id]).errors)
            errors.extend(_combined_stock_errors(items, menu_items))
            if errors:
                ORDER_VALIDATION_FAILURES.labels("create").inc()
                logger.info(
                    "Order rejected by validation",
                    extra={"customer_id": identity.id, "request_id": request_id, "errors": errors},
                )
                raise ValidationError(errors)

            order = Order(
                customer_id=identity.id,
                table_number=table_number,
                status=OrderStatus.DRAFT,
                payment_mode=None,
                payment_status=PaymentStatus.PENDING,
                service_charge_amount=Decimal("0"),
                tip_amount=Decimal("0"),
                placed_at=None,
                closed_at=None,
                created_at=now,
                updated_at=now,
                items=[_snapshot_line(r, menu_items[r.menu_item_id]) for r in items],
            )
            _apply_totals(order)
            await self.storage.orders.add(order)
            await self._transition(order, OrderStatus.PLACED, now=now, menu_items=menu_items)

        ORDERS_CREATED.inc()
        logger.info(
            "Order placed",
            extra={
                "order_id": order.id,
                "customer_id": order.customer_id,
                "request_id": request_id,
                "total_amount": str(order.total_amount),
                "item_count": len(order.items),
            },
        )
        await publish_order_placed(self.publisher, order, request_id)
        return order

    async def confirm_order(
        self, identity: Identity, order_id: int, request_id: str = "unknown"
    ) -> Order:
        async with self.storage.transaction():
            order = await self._get_or_404(order_id)
            authorize(identity, Permission.CONFIRM_ORDER, owner_id=order.customer_id)
            await self._transition(order, OrderStatus.PLACED)

        logger.info("Order confirmed", extra={"order_id": order.id, "request_id": request_id})
        await publish_order_placed(self.publisher, order, request_id)
        return order

    async def update_order_status(
        self,
        identity: Identity,
        order_id: int,
        new_status: OrderStatus,
        request_id: str = "unknown",
    ) -> Order:
        authorize(identity, Permission.UPDATE_ORDER_STATUS)
        async with self.storage.transaction():
            order = await self._get_or_404(order_id)
            previous = await self._transition(order, new_status)

        logger.info(
            "Order status updated",
            extra={
                "order_id": order.id,
                "from_status": previous.value,
                "to_status": new_status.value,
                "staff_id": identity.id,
                "request_id": request_id,
            },
        )
        await publish_status_changed(self.publisher, order, previous, request_id)
        return order

    async def purge_expired_drafts(self, now: datetime | None = None) -> int:
        cutoff = (now or self.clock()) - self.draft_ttl
        async with self.storage.transaction():
            purged = await self.storage.orders.delete_drafts_created_before(cutoff)
        if purged:
            DRAFTS_PURGED.inc(purged)
            logger.info("Purged expired draft orders", extra={"count": purged})
        return purged

    # -- queries ------------------------------------------------------------

    async def get_order(self, identity: Identity, order_id: int) -> Order:
        order = await self._get_or_404(order_id)
        authorize(identity, Permission.READ_ORDER, owner_id=order.customer_id)
        return order

    async def get_order_status(self, identity: Identity, order_id: int) -> OrderStatusView:
        order = await self.get_order(identity, order_id)
        estimate = _READY_ESTIMATES.get(order.status)
        return OrderStatusView(
            order_id=order.id,
            status=order.status,
            placed_at=order.placed_at,
            closed_at=order.closed_at,
            estimated_ready_at=order.placed_at + estimate if estimate and order.placed_at else None,
        )

    async def list_customer_orders(
        self, identity: Identity, customer_id: int, limit: int, offset: int = 0
    ) -> Sequence[Order]:
        authorize(identity, Permission.READ_ORDER, owner_id=customer_id)
        return await self.storage.orders.list_for_customer(customer_id, limit, offset)

    async def list_active_orders(
        self, identity: Identity, limit: int, offset: int = 0
    ) -> Sequence[Order]:
        authorize(identity, Permission.VIEW_ORDER_QUEUE)
        return await self.storage.orders.list_by_status(ACTIVE_STATUSES, limit, offset)

    # -- internals ----------------------------------------------------------

    async def _get_or_404(self, order_id: int) -> Order:
        order = await self.storage.orders.get(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    async def _transition(
        self,
        order: Order,
        target: OrderStatus,
        *,
        now: datetime | None = None,
        menu_items: dict[int, MenuItem] | None = None,
    ) -> OrderStatus:
        """Apply one status change with its entry action. Returns the previous status."""
        current = order.status
        if not can_transition(current, target):
            raise TransitionError(current, target)

        now = now or self.clock()
        changes = {"status": target, "updated_at": now}
        if target == OrderStatus.PLACED:
            await self._revalidate(order, menu_items)
            changes["placed_at"] = now
        elif target == OrderStatus.CLOSED:
            changes["closed_at"] = now

        if not await self.storage.orders.compare_and_set(order, current, changes):
            ORDER_TRANSITION_CONFLICTS.inc()
            raise TransitionError(current, target, "order status changed concurrently")

        # Stock is committed once, when the kitchen takes the order
        if target == OrderStatus.IN_KITCHEN:
            await self._commit_inventory(order)

        ORDER_TRANSITIONS.labels(current.value, target.value).inc()
        return current

    async def _revalidate(self, order: Order, menu_items: dict[int, MenuItem] | None) -> None:
        if menu_items is None:
            menu_items = await self.storage.menu.get_many([i.menu_item_id for i in order.items])

        errors: list[str] = []
        for item in order.items:
            menu_item = menu_items.get(item.menu_item_id)
            if menu_item is None:
                errors.append(f"Item {item.name_snapshot} is no longer on the menu")
                continue
            errors.extend(validate_order_item(item, menu_item).errors)
        errors.extend(_combined_stock_errors(order.items, menu_items))

        if errors:
            ORDER_VALIDATION_FAILURES.labels("place").inc()
            raise ValidationError(errors, "Order can no longer be placed")

    async def _commit_inventory(self, order: Order) -> None:
        shortages: list[str] = []
        for item in order.items:
            if not await self.storage.menu.decrement_stock(item.menu_item_id, item.quantity):
                shortages.append(
                    f"Insufficient stock for {item.name_snapshot} to prepare {item.quantity}"
                )
        if shortages:
            raise ValidationError(shortages, "Inventory could not be committed")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _snapshot_line(requested, menu_item: MenuItem) -> OrderItem:
    percent_off = Decimal("0")
    return OrderItem(
        menu_item_id=menu_item.id,
        name_snapshot=menu_item.name,
        unit_price=menu_item.price,
        quantity=requested.quantity,
        percent_off=percent_off,
        line_total=line_total(menu_item.price, requested.quantity, percent_off),
        customizations=getattr(requested, "customizations", None),
    )


def _apply_totals(order: Order) -> None:
    totals = calculate_order_totals(order.items)
    order.subtotal_amount = totals.subtotal
    order.tax_amount = totals.tax
    order.total_amount = totals.total + order.service_charge_amount + order.tip_amount


def _combined_stock_errors(lines: Sequence, menu_items: dict[int, MenuItem]) -> list[str]:
    """Stock errors for menu items requested on more than one line."""
    requested: dict[int, list[int]] = defaultdict(list)
    for line in lines:
        quantity = getattr(line, "quantity", None)
        if isinstance(quantity, int) and not isinstance(quantity, bool) and quantity > 0:
            requested[line.menu_item_id].append(quantity)

    errors = []
    for menu_item_id, quantities in requested.items():
        menu_item = menu_items.get(menu_item_id)
        if menu_item is None or len(quantities) < 2 or menu_item.qty_on_hand <= 0:
            continue
        total = sum(quantities)
        if total > menu_item.qty_on_hand:
            errors.append(
                f"Insufficient stock for {menu_item.name}. "
                f"Available: {menu_item.qty_on_hand}, Requested: {total} across {len(quantities)} lines"
            )
    return errors
