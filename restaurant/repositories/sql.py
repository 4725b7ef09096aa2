import logging
from collections.abc import AsyncIterator, Collection, Sequence
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any

from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from restaurant.errors import InternalError
from restaurant.models import (
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    Shift,
    ShiftApplication,
    ShiftApplicationStatus,
    ShiftAssignment,
    ShiftTiming,
    TimeOffRequest,
    TimeOffStatus,
    User,
)

logger = logging.getLogger(__name__)


class SqlMenuCatalog:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, menu_item_id: int) -> MenuItem | None:
        return await self.session.get(MenuItem, menu_item_id)

    async def get_many(self, menu_item_ids: Collection[int]) -> dict[int, MenuItem]:
        if not menu_item_ids:
            return {}
        result = await self.session.execute(
            select(MenuItem).where(MenuItem.id.in_(set(menu_item_ids)))
        )
        return {m.id: m for m in result.scalars().all()}

    async def decrement_stock(self, menu_item_id: int, quantity: int) -> bool:
        result = await self.session.execute(
            update(MenuItem)
            .where(MenuItem.id == menu_item_id, MenuItem.qty_on_hand >= quantity)
            .values(qty_on_hand=MenuItem.qty_on_hand - quantity)
        )
        return result.rowcount == 1

    async def add(self, menu_item: MenuItem) -> MenuItem:
        self.session.add(menu_item)
        await self.session.flush()
        return menu_item

    async def list_items(
        self,
        *,
        category: str | None = None,
        in_stock_only: bool = False,
        search: str | None = None,
        include_inactive: bool = False,
    ) -> Sequence[MenuItem]:
        query = select(MenuItem)
        if not include_inactive:
            query = query.where(MenuItem.is_active.is_(True))
        if category:
            query = query.where(MenuItem.category == category)
        if in_stock_only:
            query = query.where(MenuItem.qty_on_hand > 0)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(MenuItem.name.ilike(pattern), MenuItem.description.ilike(pattern))
            )
        result = await self.session.execute(query.order_by(MenuItem.category, MenuItem.name))
        return result.scalars().all()

    async def categories(self) -> list[str]:
        result = await self.session.execute(
            select(MenuItem.category)
            .where(MenuItem.is_active.is_(True))
            .distinct()
            .order_by(MenuItem.category)
        )
        return list(result.scalars().all())


class SqlOrderRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    def _select(self):
        return select(Order).options(selectinload(Order.items))

    async def add(self, order: Order) -> Order:
        self.session.add(order)
        await self.session.flush()  # assigns order.id and item ids
        return order

    async def get(self, order_id: int) -> Order | None:
        result = await self.session.execute(self._select().where(Order.id == order_id))
        return result.scalars().first()

    async def compare_and_set(
        self, order: Order, expected: OrderStatus, changes: dict[str, Any]
    ) -> bool:
        await self.session.flush()
        result = await self.session.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == expected)
            .values(**changes)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        # already written; keep the instance in step without dirtying it
        for key, value in changes.items():
            set_committed_value(order, key, value)
        return True

    async def list_for_customer(self, customer_id: int, limit: int, offset: int) -> Sequence[Order]:
        result = await self.session.execute(
            self._select()
            .where(Order.customer_id == customer_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return result.scalars().all()

    async def list_by_status(
        self, statuses: Collection[OrderStatus], limit: int, offset: int
    ) -> Sequence[Order]:
        result = await self.session.execute(
            self._select()
            .where(Order.status.in_(list(statuses)))
            .order_by(Order.placed_at.asc(), Order.id.asc())
            .limit(limit)
            .offset(offset)
        )
        return result.scalars().all()

    async def delete_drafts_created_before(self, cutoff: datetime) -> int:
        expired = select(Order.id).where(
            Order.status == OrderStatus.DRAFT, Order.created_at < cutoff
        )
        await self.session.execute(
            delete(OrderItem)
            .where(OrderItem.order_id.in_(expired))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(
            delete(Order)
            .where(Order.status == OrderStatus.DRAFT, Order.created_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def list_placed_between(
        self, statuses: Collection[OrderStatus], start: datetime, end: datetime
    ) -> Sequence[Order]:
        result = await self.session.execute(
            self._select()
            .where(
                Order.status.in_(list(statuses)),
                Order.placed_at >= start,
                Order.placed_at < end,
            )
            .order_by(Order.placed_at.asc(), Order.id.asc())
        )
        return result.scalars().all()


class SqlStaffDirectory:
    def __init__(self, session: AsyncSession):
        self.session = session

    def _shift_select(self):
        return select(Shift).options(selectinload(Shift.assignments))

    async def get_user(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def list_users(self) -> Sequence[User]:
        result = await self.session.execute(select(User).order_by(User.last_name, User.first_name))
        return result.scalars().all()

    async def get_shift(self, shift_id: int) -> Shift | None:
        result = await self.session.execute(self._shift_select().where(Shift.id == shift_id))
        return result.scalars().first()

    async def find_shift(self, shift_date: date, timing: ShiftTiming) -> Shift | None:
        result = await self.session.execute(
            self._shift_select().where(Shift.shift_date == shift_date, Shift.timing == timing)
        )
        return result.scalars().first()

    async def add_shift(self, shift: Shift) -> Shift:
        self.session.add(shift)
        await self.session.flush()
        return shift

    async def list_shifts(self, start: date, end: date) -> Sequence[Shift]:
        result = await self.session.execute(
            self._shift_select()
            .where(Shift.shift_date >= start, Shift.shift_date <= end)
            .order_by(Shift.shift_date, Shift.start_time)
        )
        return result.scalars().all()

    async def add_assignment(self, assignment: ShiftAssignment) -> ShiftAssignment:
        self.session.add(assignment)
        await self.session.flush()
        return assignment

    async def delete_assignment(self, assignment: ShiftAssignment) -> None:
        await self.session.delete(assignment)
        await self.session.flush()

    async def assignments_for_user(self, user_id: int, start: date) -> Sequence[ShiftAssignment]:
        result = await self.session.execute(
            select(ShiftAssignment)
            .join(Shift)
            .options(selectinload(ShiftAssignment.shift).selectinload(Shift.assignments))
            .where(ShiftAssignment.user_id == user_id, Shift.shift_date >= start)
            .order_by(Shift.shift_date, Shift.start_time)
        )
        return result.scalars().all()

    def _application_select(self):
        return select(ShiftApplication).options(
            selectinload(ShiftApplication.shift).selectinload(Shift.assignments)
        )

    async def get_application(self, application_id: int) -> ShiftApplication | None:
        result = await self.session.execute(
            self._application_select().where(ShiftApplication.id == application_id)
        )
        return result.scalars().first()

    async def find_application(self, shift_id: int, user_id: int) -> ShiftApplication | None:
        result = await self.session.execute(
            self._application_select().where(
                ShiftApplication.shift_id == shift_id, ShiftApplication.user_id == user_id
            )
        )
        return result.scalars().first()

    async def add_application(self, application: ShiftApplication) -> ShiftApplication:
        self.session.add(application)
        await self.session.flush()
        return application

    async def list_applications(
        self, status: ShiftApplicationStatus | None = None, user_id: int | None = None
    ) -> Sequence[ShiftApplication]:
        query = self._application_select()
        if status is not None:
            query = query.where(ShiftApplication.status == status)
        if user_id is not None:
            query = query.where(ShiftApplication.user_id == user_id)
        result = await self.session.execute(
            query.order_by(ShiftApplication.applied_at.desc(), ShiftApplication.id.desc())
        )
        return result.scalars().all()

    async def get_time_off(self, request_id: int) -> TimeOffRequest | None:
        return await self.session.get(TimeOffRequest, request_id)

    async def add_time_off(self, request: TimeOffRequest) -> TimeOffRequest:
        self.session.add(request)
        await self.session.flush()
        return request

    async def delete_time_off(self, request: TimeOffRequest) -> None:
        await self.session.delete(request)
        await self.session.flush()

    async def list_time_off(
        self,
        *,
        status: TimeOffStatus | None = None,
        user_id: int | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> Sequence[TimeOffRequest]:
        query = select(TimeOffRequest)
        if status is not None:
            query = query.where(TimeOffRequest.status == status)
        if user_id is not None:
            query = query.where(TimeOffRequest.user_id == user_id)
        if end is not None:
            query = query.where(TimeOffRequest.start_date <= end)
        if start is not None:
            query = query.where(TimeOffRequest.end_date >= start)
        result = await self.session.execute(
            query.order_by(TimeOffRequest.requested_at.desc(), TimeOffRequest.id.desc())
        )
        return result.scalars().all()


class SqlStorage:
    """All repositories over one AsyncSession, committed per transaction()."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.menu = SqlMenuCatalog(session)
        self.orders = SqlOrderRepository(session)
        self.staff = SqlStaffDirectory(session)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        try:
            yield
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.exception("Database transaction failed")
            raise InternalError("Could not save changes") from exc
        except Exception:
            await self.session.rollback()
            logger.debug("Transaction rolled back")
            raise
