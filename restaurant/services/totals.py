from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from restaurant.models.types import quantize, to_decimal

TAX_RATE = Decimal("0.08")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def _field(item, name: str) -> Decimal:
    value = item.get(name) if isinstance(item, dict) else getattr(item, name, None)
    # numbers only; a numeric-looking string is still not a price
    if isinstance(value, str):
        return _ZERO
    return to_decimal(value) or _ZERO


def calculate_order_totals(items: Iterable) -> OrderTotals:
    """
    Subtotal, tax and total for a sequence of line items.

    Each item needs ``unit_price`` and ``quantity`` (attributes or dict keys);
    missing, non-numeric (strings included) or NaN values count as zero.
    All three figures are derived from the unrounded subtotal and rounded
    (half-up, cents) at the final step only.
    """
    raw_subtotal = sum(
        (_field(item, "unit_price") * _field(item, "quantity") for item in items),
        _ZERO,
    )
    raw_tax = raw_subtotal * TAX_RATE
    return OrderTotals(
        subtotal=quantize(raw_subtotal),
        tax=quantize(raw_tax),
        total=quantize(raw_subtotal + raw_tax),
    )


def line_total(unit_price: Decimal, quantity: int, percent_off: Decimal = _ZERO) -> Decimal:
    return quantize(unit_price * quantity * (1 - percent_off))
