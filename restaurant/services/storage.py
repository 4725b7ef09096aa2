"""
Storage interfaces consumed by the services.

The SQLAlchemy implementation lives in ``restaurant.repositories.sql``;
tests supply an in-memory one. Writes made between entering and leaving
``Storage.transaction()`` are committed together or not at all.
"""

from collections.abc import Collection, Sequence
from contextlib import AbstractAsyncContextManager
from datetime import date, datetime
from typing import Any, Protocol

from restaurant.models import (
    MenuItem,
    Order,
    OrderStatus,
    Shift,
    ShiftApplication,
    ShiftApplicationStatus,
    ShiftAssignment,
    TimeOffRequest,
    TimeOffStatus,
    User,
)


class MenuCatalog(Protocol):
    async def get(self, menu_item_id: int) -> MenuItem | None: ...

    async def get_many(self, menu_item_ids: Collection[int]) -> dict[int, MenuItem]: ...

    async def decrement_stock(self, menu_item_id: int, quantity: int) -> bool:
        """Take ``quantity`` off the shelf; False if that would go below zero."""
        ...

    async def add(self, menu_item: MenuItem) -> MenuItem: ...

    async def list_items(
        self,
        *,
        category: str | None = None,
        in_stock_only: bool = False,
        search: str | None = None,
        include_inactive: bool = False,
    ) -> Sequence[MenuItem]: ...

    async def categories(self) -> list[str]: ...


class OrderRepository(Protocol):
    async def add(self, order: Order) -> Order:
        """Persist an order with its items and assign ids."""
        ...

    async def get(self, order_id: int) -> Order | None: ...

    async def compare_and_set(
        self, order: Order, expected: OrderStatus, changes: dict[str, Any]
    ) -> bool:
        """Apply ``changes`` only if the stored status still equals ``expected``."""
        ...

    async def list_for_customer(self, customer_id: int, limit: int, offset: int) -> Sequence[Order]: ...

    async def list_by_status(
        self, statuses: Collection[OrderStatus], limit: int, offset: int
    ) -> Sequence[Order]: ...

    async def delete_drafts_created_before(self, cutoff: datetime) -> int: ...

    async def list_placed_between(
        self, statuses: Collection[OrderStatus], start: datetime, end: datetime
    ) -> Sequence[Order]:
        """Orders in ``statuses`` placed in [start, end), oldest first, with items."""
        ...


class StaffDirectory(Protocol):
    async def get_user(self, user_id: int) -> User | None: ...

    async def list_users(self) -> Sequence[User]: ...

    async def get_shift(self, shift_id: int) -> Shift | None: ...

    async def find_shift(self, shift_date: date, timing) -> Shift | None: ...

    async def add_shift(self, shift: Shift) -> Shift: ...

    async def list_shifts(self, start: date, end: date) -> Sequence[Shift]: ...

    async def add_assignment(self, assignment: ShiftAssignment) -> ShiftAssignment: ...

    async def delete_assignment(self, assignment: ShiftAssignment) -> None: ...

    async def assignments_for_user(self, user_id: int, start: date) -> Sequence[ShiftAssignment]: ...

    async def get_application(self, application_id: int) -> ShiftApplication | None: ...

    async def find_application(self, shift_id: int, user_id: int) -> ShiftApplication | None: ...

    async def add_application(self, application: ShiftApplication) -> ShiftApplication: ...

    async def list_applications(
        self, status: ShiftApplicationStatus | None = None, user_id: int | None = None
    ) -> Sequence[ShiftApplication]:
        """Newest first, each with its shift loaded."""
        ...

    async def get_time_off(self, request_id: int) -> TimeOffRequest | None: ...

    async def add_time_off(self, request: TimeOffRequest) -> TimeOffRequest: ...

    async def delete_time_off(self, request: TimeOffRequest) -> None: ...

    async def list_time_off(
        self,
        *,
        status: TimeOffStatus | None = None,
        user_id: int | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> Sequence[TimeOffRequest]:
        """Newest first; ``start``/``end`` keep requests overlapping that range."""
        ...


class Storage(Protocol):
    menu: MenuCatalog
    orders: OrderRepository
    staff: StaffDirectory

    def transaction(self) -> AbstractAsyncContextManager[None]: ...
