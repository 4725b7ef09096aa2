"""
Error taxonomy for the ordering core.

Business-rule violations travel as a list of human-readable messages on
ValidationError; the HTTP layer turns each class into one status code.
"""

from restaurant.models.enums import OrderStatus


class OrderingError(Exception):
    """Base class for errors raised by the ordering services."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(OrderingError):
    """Bad input or a business rule violated. Carries every message found."""

    status_code = 400

    def __init__(self, messages: list[str], message: str = "Order validation failed"):
        super().__init__(message)
        self.messages = list(messages)

    def __str__(self) -> str:
        return f"{self.message}: {'; '.join(self.messages)}"


class NotFoundError(OrderingError):
    """A referenced order, menu item, user or shift does not exist."""

    status_code = 404


class AuthorizationError(OrderingError):
    """Role or ownership check failed."""

    status_code = 403


class TransitionError(OrderingError):
    """Status change not allowed from the order's current status."""

    status_code = 409

    def __init__(self, from_status: OrderStatus, to_status: OrderStatus, reason: str | None = None):
        message = f"Invalid status transition from {from_status.value} to {to_status.value}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.from_status = from_status
        self.to_status = to_status


class InternalError(OrderingError):
    """Persistence failed in a way the caller cannot fix."""

    status_code = 500
