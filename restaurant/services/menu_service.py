import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select

from restaurant.database import AsyncSessionLocal
from restaurant.errors import NotFoundError, ValidationError
from restaurant.models import MenuItem
from restaurant.models.types import quantize
from restaurant.services.access import Identity, Permission, authorize
from restaurant.services.storage import Storage
from restaurant.utils.clock import utcnow

logger = logging.getLogger(__name__)

_MENU_SEED = [
    {"name": "Har Gow", "category": "Dumplings", "price": Decimal("8.99"), "description": "Crystal shrimp dumplings", "preparation_time_min": 12, "qty_on_hand": 80, "reorder_threshold": 15},
    {"name": "Siu Mai", "category": "Dumplings", "price": Decimal("7.99"), "description": "Steamed pork and shrimp dumplings", "preparation_time_min": 10, "qty_on_hand": 90, "reorder_threshold": 20},
    {"name": "Char Siu Bao", "category": "Buns", "price": Decimal("6.99"), "description": "Fluffy buns with BBQ pork", "preparation_time_min": 15, "qty_on_hand": 60, "reorder_threshold": 12},
    {"name": "Custard Bun", "category": "Buns", "price": Decimal("5.49"), "description": "Molten salted egg custard", "preparation_time_min": 12, "qty_on_hand": 50, "reorder_threshold": 10},
    {"name": "Rice Noodle Roll", "category": "Rolls", "price": Decimal("7.49"), "description": "Silky rice sheets with shrimp", "preparation_time_min": 8, "qty_on_hand": 40, "reorder_threshold": 10},
    {"name": "Spring Rolls", "category": "Rolls", "price": Decimal("5.99"), "description": "Crispy vegetable rolls", "preparation_time_min": 8, "qty_on_hand": 70, "reorder_threshold": 15},
    {"name": "Jasmine Tea", "category": "Drinks", "price": Decimal("2.50"), "description": "Pot of jasmine tea", "preparation_time_min": 3, "qty_on_hand": 200, "reorder_threshold": 30},
    {"name": "Lemon Soda", "category": "Drinks", "price": Decimal("2.99"), "description": "Sparkling lemon soda", "preparation_time_min": 1, "qty_on_hand": 120, "reorder_threshold": 24},
]

# Fields staff may change through update_menu_item
_EDITABLE_FIELDS = frozenset(
    {
        "name",
        "category",
        "price",
        "description",
        "preparation_time_min",
        "promo_percent",
        "promo_starts_at",
        "promo_ends_at",
        "qty_on_hand",
        "reorder_threshold",
        "is_active",
    }
)


async def seed_menu_items() -> None:
    """Populate menu_items if the table is empty. Called once on startup."""
    async with AsyncSessionLocal() as db:
        result = await db.execute(select(MenuItem).limit(1))
        if result.scalars().first() is not None:
            return
        for item_data in _MENU_SEED:
            db.add(MenuItem(**item_data))
        await db.commit()
        logger.info("Seeded %d menu items", len(_MENU_SEED))


@dataclass(frozen=True)
class MenuListing:
    item: MenuItem
    display_price: Decimal
    has_promo: bool

    @property
    def is_available(self) -> bool:
        return self.item.qty_on_hand > 0


def display_price(item: MenuItem, at: datetime) -> Decimal:
    if not item.promo_active(at):
        return item.price
    return quantize(item.price * (1 - item.promo_percent / 100))


def _check_menu_fields(values: dict) -> list[str]:
    errors = []
    price = values.get("price")
    if price is not None and price < 0:
        errors.append("Price must be a non-negative number")
    qty = values.get("qty_on_hand")
    if qty is not None and qty < 0:
        errors.append("Quantity on hand must be a non-negative number")
    promo = values.get("promo_percent")
    if promo is not None and not 0 <= promo <= 100:
        errors.append("Promotion percent must be between 0 and 100")
    starts, ends = values.get("promo_starts_at"), values.get("promo_ends_at")
    if starts is not None and ends is not None and starts > ends:
        errors.append("Promotion must start before it ends")
    return errors


class MenuService:
    def __init__(self, storage: Storage, clock: Callable[[], datetime] = utcnow):
        self.storage = storage
        self.clock = clock

    async def list_menu(
        self,
        category: str | None = None,
        available_only: bool = False,
        search: str | None = None,
    ) -> list[MenuListing]:
        now = self.clock()
        items = await self.storage.menu.list_items(
            category=category, in_stock_only=available_only, search=search
        )
        return [
            MenuListing(item=item, display_price=display_price(item, now), has_promo=item.promo_active(now))
            for item in items
        ]

    async def list_categories(self) -> list[str]:
        return await self.storage.menu.categories()

    async def get_menu_item(self, menu_item_id: int) -> MenuItem:
        item = await self.storage.menu.get(menu_item_id)
        if item is None:
            raise NotFoundError(f"Menu item {menu_item_id} not found")
        return item

    async def create_menu_item(self, identity: Identity, values: dict) -> MenuItem:
        authorize(identity, Permission.MANAGE_MENU)
        errors = _check_menu_fields(values)
        if errors:
            raise ValidationError(errors, "Menu item is invalid")

        now = self.clock()
        async with self.storage.transaction():
            item = await self.storage.menu.add(
                MenuItem(**values, created_at=now, updated_at=now)
            )
        logger.info("Menu item created", extra={"menu_item_id": item.id, "staff_id": identity.id})
        return item

    async def update_menu_item(
        self, identity: Identity, menu_item_id: int, values: dict
    ) -> MenuItem:
        authorize(identity, Permission.MANAGE_MENU)
        unknown = set(values) - _EDITABLE_FIELDS
        if unknown:
            raise ValidationError([f"Field {name} cannot be changed" for name in sorted(unknown)])
        errors = _check_menu_fields(values)
        if errors:
            raise ValidationError(errors, "Menu item is invalid")

        async with self.storage.transaction():
            item = await self.get_menu_item(menu_item_id)
            for key, value in values.items():
                setattr(item, key, value)
            item.updated_at = self.clock()
        logger.info(
            "Menu item updated",
            extra={"menu_item_id": menu_item_id, "fields": sorted(values), "staff_id": identity.id},
        )
        return item

    async def restock(self, identity: Identity, menu_item_id: int, quantity: int) -> MenuItem:
        authorize(identity, Permission.MANAGE_MENU)
        if quantity <= 0:
            raise ValidationError(["Restock quantity must be a positive integer"])

        async with self.storage.transaction():
            item = await self.get_menu_item(menu_item_id)
            item.qty_on_hand += quantity
            item.updated_at = self.clock()
        logger.info(
            "Menu item restocked",
            extra={"menu_item_id": menu_item_id, "added": quantity, "qty_on_hand": item.qty_on_hand},
        )
        return item

    async def deactivate(self, identity: Identity, menu_item_id: int) -> MenuItem:
        """Soft delete: order history keeps pointing at the row."""
        authorize(identity, Permission.MANAGE_MENU)
        async with self.storage.transaction():
            item = await self.get_menu_item(menu_item_id)
            item.is_active = False
            item.updated_at = self.clock()
        logger.info("Menu item deactivated", extra={"menu_item_id": menu_item_id})
        return item

    async def low_stock(self, identity: Identity) -> Sequence[MenuItem]:
        authorize(identity, Permission.MANAGE_MENU)
        items = await self.storage.menu.list_items(include_inactive=False)
        return [item for item in items if item.qty_on_hand <= item.reorder_threshold]
