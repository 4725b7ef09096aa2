from dataclasses import dataclass, field
from decimal import Decimal

from restaurant.models.menu_item import MenuItem
from restaurant.models.types import to_decimal


@dataclass
class ItemValidation:
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_number(value) -> bool:
    return to_decimal(value) is not None and not isinstance(value, str)


def validate_order_item(requested, menu_item: MenuItem) -> ItemValidation:
    """
    Check one requested line against its catalog entry.

    Every rule is evaluated so the caller can report all problems at once.
    ``requested`` only needs a ``quantity`` attribute (or key).
    """
    quantity = requested.get("quantity") if isinstance(requested, dict) else getattr(requested, "quantity", None)
    name = menu_item.name
    result = ItemValidation()

    if not _is_positive_int(quantity):
        result.errors.append(f"Invalid quantity for item {name}: must be a positive integer")

    if menu_item.qty_on_hand <= 0:
        result.errors.append(f"Item {name} is not available")

    if _is_number(quantity) and to_decimal(quantity) > menu_item.qty_on_hand:
        result.errors.append(
            f"Insufficient stock for {name}. Available: {menu_item.qty_on_hand}, Requested: {quantity}"
        )

    if not menu_item.is_active:
        result.errors.append(f"Item {name} is no longer available")

    price = menu_item.price
    if not _is_number(price) or to_decimal(price) < Decimal("0"):
        result.errors.append(f"Invalid price for item {name}")

    return result
