import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("OTLP_ENDPOINT", "")
os.environ.setdefault("SEED_MENU", "false")

import itertools
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from restaurant.database import Base, get_db
from restaurant.dependencies import get_event_publisher
from restaurant.main import app
from restaurant.models import (
    MenuItem,
    Order,
    OrderStatus,
    Shift,
    ShiftApplication,
    ShiftAssignment,
    TimeOffRequest,
    User,
)
from restaurant.services.access import Identity
from restaurant.services.analytics_service import AnalyticsService
from restaurant.services.menu_service import MenuService
from restaurant.services.order_service import OrderService
from restaurant.services.staff_service import StaffService
from tests.factories import NOW, make_menu_item


# ---------------------------------------------------------------------------
# In-memory storage
# ---------------------------------------------------------------------------


def _columns(obj) -> dict:
    return {column.key: getattr(obj, column.key) for column in obj.__table__.columns}


class InMemoryMenuCatalog:
    def __init__(self):
        self.items: dict[int, MenuItem] = {}
        self.decrements: list[tuple[int, int]] = []
        self._ids = itertools.count(1)

    async def get(self, menu_item_id):
        return self.items.get(menu_item_id)

    async def get_many(self, menu_item_ids):
        return {i: self.items[i] for i in menu_item_ids if i in self.items}

    async def decrement_stock(self, menu_item_id, quantity):
        item = self.items.get(menu_item_id)
        if item is None or item.qty_on_hand < quantity:
            return False
        item.qty_on_hand -= quantity
        self.decrements.append((menu_item_id, quantity))
        return True

    async def add(self, menu_item):
        menu_item.id = next(self._ids)
        self.items[menu_item.id] = menu_item
        return menu_item

    async def list_items(self, *, category=None, in_stock_only=False, search=None, include_inactive=False):
        items = list(self.items.values())
        if not include_inactive:
            items = [i for i in items if i.is_active]
        if category:
            items = [i for i in items if i.category == category]
        if in_stock_only:
            items = [i for i in items if i.qty_on_hand > 0]
        if search:
            needle = search.lower()
            items = [
                i for i in items
                if needle in i.name.lower() or needle in (i.description or "").lower()
            ]
        return sorted(items, key=lambda i: (i.category, i.name))

    async def categories(self):
        return sorted({i.category for i in self.items.values() if i.is_active})


class InMemoryOrderRepository:
    def __init__(self):
        self.orders: dict[int, Order] = {}
        self._ids = itertools.count(1)
        self._item_ids = itertools.count(1)

    async def add(self, order):
        order.id = next(self._ids)
        for item in order.items:
            item.id = next(self._item_ids)
            item.order_id = order.id
        self.orders[order.id] = order
        return order

    async def get(self, order_id):
        return self.orders.get(order_id)

    async def compare_and_set(self, order, expected, changes):
        stored = self.orders.get(order.id)
        if stored is None or stored.status != expected:
            return False
        for key, value in changes.items():
            setattr(stored, key, value)
        return True

    async def list_for_customer(self, customer_id, limit, offset):
        orders = sorted(
            (o for o in self.orders.values() if o.customer_id == customer_id),
            key=lambda o: (o.created_at, o.id),
            reverse=True,
        )
        return orders[offset:offset + limit]

    async def list_by_status(self, statuses, limit, offset):
        orders = sorted(
            (o for o in self.orders.values() if o.status in statuses),
            key=lambda o: (o.placed_at or datetime.min, o.id),
        )
        return orders[offset:offset + limit]

    async def list_placed_between(self, statuses, start, end):
        return sorted(
            (
                o for o in self.orders.values()
                if o.status in statuses and o.placed_at is not None and start <= o.placed_at < end
            ),
            key=lambda o: (o.placed_at, o.id),
        )

    async def delete_drafts_created_before(self, cutoff):
        expired = [
            order_id
            for order_id, order in self.orders.items()
            if order.status == OrderStatus.DRAFT and order.created_at < cutoff
        ]
        for order_id in expired:
            del self.orders[order_id]
        return len(expired)


class InMemoryStaffDirectory:
    def __init__(self):
        self.users: dict[int, User] = {}
        self.shifts: dict[int, Shift] = {}
        self.assignments: list[ShiftAssignment] = []
        self.applications: dict[int, ShiftApplication] = {}
        self.time_off: dict[int, TimeOffRequest] = {}
        self._user_ids = itertools.count(1)
        self._shift_ids = itertools.count(1)
        self._assignment_ids = itertools.count(1)
        self._application_ids = itertools.count(1)
        self._time_off_ids = itertools.count(1)

    def add_user(self, user: User) -> User:
        user.id = next(self._user_ids)
        self.users[user.id] = user
        return user

    async def get_user(self, user_id):
        return self.users.get(user_id)

    async def list_users(self):
        return sorted(self.users.values(), key=lambda u: (u.last_name, u.first_name))

    async def get_shift(self, shift_id):
        return self.shifts.get(shift_id)

    async def find_shift(self, shift_date, timing):
        return next(
            (s for s in self.shifts.values() if s.shift_date == shift_date and s.timing == timing),
            None,
        )

    async def add_shift(self, shift):
        shift.id = next(self._shift_ids)
        self.shifts[shift.id] = shift
        return shift

    async def list_shifts(self, start, end):
        return sorted(
            (s for s in self.shifts.values() if start <= s.shift_date <= end),
            key=lambda s: (s.shift_date, s.start_time),
        )

    async def add_assignment(self, assignment):
        assignment.id = next(self._assignment_ids)
        assignment.shift_id = assignment.shift.id
        self.assignments.append(assignment)
        return assignment

    async def delete_assignment(self, assignment):
        self.assignments.remove(assignment)

    async def assignments_for_user(self, user_id, start):
        return sorted(
            (a for a in self.assignments if a.user_id == user_id and a.shift.shift_date >= start),
            key=lambda a: (a.shift.shift_date, a.shift.start_time),
        )

    async def get_application(self, application_id):
        return self.applications.get(application_id)

    async def find_application(self, shift_id, user_id):
        return next(
            (a for a in self.applications.values() if a.shift_id == shift_id and a.user_id == user_id),
            None,
        )

    async def add_application(self, application):
        application.id = next(self._application_ids)
        application.shift_id = application.shift.id
        self.applications[application.id] = application
        return application

    async def list_applications(self, status=None, user_id=None):
        applications = [
            a for a in self.applications.values()
            if (status is None or a.status == status) and (user_id is None or a.user_id == user_id)
        ]
        return sorted(applications, key=lambda a: (a.applied_at, a.id), reverse=True)

    async def get_time_off(self, request_id):
        return self.time_off.get(request_id)

    async def add_time_off(self, request):
        request.id = next(self._time_off_ids)
        self.time_off[request.id] = request
        return request

    async def delete_time_off(self, request):
        del self.time_off[request.id]

    async def list_time_off(self, *, status=None, user_id=None, start=None, end=None):
        requests = [
            r for r in self.time_off.values()
            if (status is None or r.status == status)
            and (user_id is None or r.user_id == user_id)
            and (end is None or r.start_date <= end)
            and (start is None or r.end_date >= start)
        ]
        return sorted(requests, key=lambda r: (r.requested_at, r.id), reverse=True)


class InMemoryStorage:
    """Storage fake whose transaction() restores every row on error."""

    def __init__(self):
        self.menu = InMemoryMenuCatalog()
        self.orders = InMemoryOrderRepository()
        self.staff = InMemoryStaffDirectory()
        self.commits = 0
        self.rollbacks = 0

    def _rows(self):
        yield from self.menu.items.values()
        for order in self.orders.orders.values():
            yield order
            yield from order.items
        yield from self.staff.users.values()
        yield from self.staff.shifts.values()
        yield from self.staff.assignments
        yield from self.staff.applications.values()
        yield from self.staff.time_off.values()

    def _snapshot(self):
        return {
            "rows": [(row, _columns(row)) for row in self._rows()],
            "menu": dict(self.menu.items),
            "orders": dict(self.orders.orders),
            "shifts": dict(self.staff.shifts),
            "shift_assignments": {s.id: list(s.assignments) for s in self.staff.shifts.values()},
            "assignments": list(self.staff.assignments),
            "applications": dict(self.staff.applications),
            "time_off": dict(self.staff.time_off),
        }

    def _restore(self, snapshot) -> None:
        self.menu.items = snapshot["menu"]
        self.orders.orders = snapshot["orders"]
        self.staff.shifts = snapshot["shifts"]
        self.staff.assignments = snapshot["assignments"]
        self.staff.applications = snapshot["applications"]
        self.staff.time_off = snapshot["time_off"]
        for shift in self.staff.shifts.values():
            shift.assignments = snapshot["shift_assignments"][shift.id]
        for row, values in snapshot["rows"]:
            for key, value in values.items():
                setattr(row, key, value)

    @asynccontextmanager
    async def transaction(self):
        snapshot = self._snapshot()
        try:
            yield
        except Exception:
            self._restore(snapshot)
            self.rollbacks += 1
            raise
        self.commits += 1


class RecordingPublisher:
    def __init__(self):
        self.events = []

    async def publish(self, topic, key, event):
        self.events.append((topic, key, event))

    def topics(self) -> list[str]:
        return [topic for topic, _, _ in self.events]


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def order_service(storage, publisher, clock):
    return OrderService(storage, publisher, clock=clock)


@pytest.fixture
def menu_service(storage, clock):
    return MenuService(storage, clock=clock)


@pytest.fixture
def staff_service(storage, clock):
    return StaffService(storage, clock=clock)


@pytest.fixture
def analytics_service(storage, clock):
    return AnalyticsService(storage, clock=clock)


@pytest.fixture
def customer():
    return Identity.from_claims(1, ["customer"])


@pytest.fixture
def other_customer():
    return Identity.from_claims(2, ["customer"])


@pytest.fixture
def waiter():
    return Identity.from_claims(50, ["staff"])


@pytest.fixture
def manager():
    return Identity.from_claims(60, ["manager"])


@pytest.fixture
async def dumplings(storage):
    return await storage.menu.add(make_menu_item())


@pytest.fixture
async def tea(storage):
    return await storage.menu.add(
        make_menu_item(name="Jasmine Tea", category="Drinks", price=Decimal("2.50"), qty_on_hand=5)
    )


# ---------------------------------------------------------------------------
# SQLite-backed database and HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def client(session_factory, publisher):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_event_publisher] = lambda: publisher
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()
