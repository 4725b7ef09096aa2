"""
Decimal-safe column types.

Drivers hand back numerics in different shapes (asyncpg returns Decimal,
SQLite may return float or str). These decorators normalise both directions
so model attributes are always a quantized Decimal or None.
"""

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy import Numeric
from sqlalchemy.types import TypeDecorator

CENT = Decimal("0.01")


def to_decimal(value) -> Decimal | None:
    """Coerce a number-like value to Decimal, or None when it is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        # str() keeps 12.99 as 12.99 instead of its binary expansion
        return Decimal(str(value))
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            return None
        return result if result.is_finite() else None
    return None


def quantize(value: Decimal, exponent: Decimal = CENT) -> Decimal:
    return value.quantize(exponent, rounding=ROUND_HALF_UP)


class _ScaledDecimal(TypeDecorator):
    impl = Numeric
    cache_ok = True

    exponent: Decimal

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        number = to_decimal(value)
        if number is None:
            raise ValueError(f"{value!r} is not a valid decimal amount")
        return quantize(number, self.exponent)

    def process_result_value(self, value, dialect):
        number = to_decimal(value)
        return None if number is None else quantize(number, self.exponent)


class Money(_ScaledDecimal):
    """Numeric(10, 2) currency amount."""

    exponent = CENT

    def __init__(self):
        super().__init__(precision=10, scale=2, asdecimal=True)


class Fraction(_ScaledDecimal):
    """Numeric(5, 4) ratio in [0, 1], used for line discounts."""

    exponent = Decimal("0.0001")

    def __init__(self):
        super().__init__(precision=5, scale=4, asdecimal=True)


class Percent(_ScaledDecimal):
    """Numeric(5, 2) percentage in [0, 100], used for menu promotions."""

    exponent = CENT

    def __init__(self):
        super().__init__(precision=5, scale=2, asdecimal=True)
