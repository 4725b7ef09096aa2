from datetime import datetime
from decimal import Decimal

from pydantic import Field

from restaurant.schemas.base import CamelModel


class MenuItemResponse(CamelModel):
    id: int
    name: str
    category: str
    price: Decimal
    display_price: Decimal
    description: str | None
    preparation_time_min: int | None
    is_available: bool
    has_promo: bool
    promo_percent: Decimal | None


class MenuItemDetail(CamelModel):
    id: int
    name: str
    category: str
    price: Decimal
    description: str | None
    preparation_time_min: int | None
    promo_percent: Decimal | None
    promo_starts_at: datetime | None
    promo_ends_at: datetime | None
    qty_on_hand: int
    reorder_threshold: int
    is_active: bool
    updated_at: datetime


class MenuItemCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    category: str = Field(min_length=1, max_length=100)
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    description: str | None = None
    preparation_time_min: int | None = Field(default=None, ge=0)
    promo_percent: Decimal | None = Field(default=None, ge=0, le=100)
    promo_starts_at: datetime | None = None
    promo_ends_at: datetime | None = None
    qty_on_hand: int = Field(default=0, ge=0)
    reorder_threshold: int = Field(default=0, ge=0)
    is_active: bool = True


class MenuItemUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    category: str | None = Field(default=None, min_length=1, max_length=100)
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    description: str | None = None
    preparation_time_min: int | None = Field(default=None, ge=0)
    promo_percent: Decimal | None = Field(default=None, ge=0, le=100)
    promo_starts_at: datetime | None = None
    promo_ends_at: datetime | None = None
    qty_on_hand: int | None = Field(default=None, ge=0)
    reorder_threshold: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class RestockRequest(CamelModel):
    quantity: int = Field(gt=0)
