from enum import Enum


class OrderStatus(str, Enum):
    DRAFT = "draft"
    PLACED = "placed"
    IN_KITCHEN = "in_kitchen"
    READY = "ready"
    SERVED = "served"
    CLOSED = "closed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class PaymentMode(str, Enum):
    CARD = "card"
    CASH = "cash"
    QR = "qr"


class StaffStatus(str, Enum):
    ACTIVE = "active"
    UNAVAILABLE = "unavailable"
    INACTIVE = "inactive"


class ShiftTiming(str, Enum):
    EVENING = "evening"
    NIGHT = "night"
    EARLY_MORNING = "early_morning"


class ShiftApplicationStatus(str, Enum):
    APPLIED = "applied"
    WITHDRAWN = "withdrawn"
    APPROVED = "approved"
    REJECTED = "rejected"


class TimeOffStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
