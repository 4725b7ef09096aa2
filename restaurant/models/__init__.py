# Import all models here so SQLAlchemy registers them with Base.metadata
from restaurant.models.enums import (
    OrderStatus,
    PaymentMode,
    PaymentStatus,
    ShiftApplicationStatus,
    ShiftTiming,
    StaffStatus,
    TimeOffStatus,
)
from restaurant.models.menu_item import MenuItem
from restaurant.models.order import Order, OrderItem
from restaurant.models.shift import Shift, ShiftApplication, ShiftAssignment
from restaurant.models.time_off import TimeOffRequest
from restaurant.models.user import User

__all__ = [
    "MenuItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMode",
    "PaymentStatus",
    "Shift",
    "ShiftApplication",
    "ShiftApplicationStatus",
    "ShiftAssignment",
    "ShiftTiming",
    "StaffStatus",
    "TimeOffRequest",
    "TimeOffStatus",
    "User",
]
