"""
FastAPI dependencies wiring requests to the services.

Identity comes from the authentication gateway in front of this service,
which forwards the verified user id and roles as headers.
"""

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant.database import get_db
from restaurant.events import EventPublisher
from restaurant.repositories.sql import SqlStorage
from restaurant.services.access import Identity
from restaurant.services.analytics_service import AnalyticsService
from restaurant.services.menu_service import MenuService
from restaurant.services.order_service import OrderService
from restaurant.services.staff_service import StaffService


def get_identity(
    x_user_id: str | None = Header(default=None),
    x_user_roles: str = Header(default=""),
) -> Identity:
    if not x_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing identity")
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid identity")
    roles = [r for r in x_user_roles.split(",") if r.strip()]
    return Identity.from_claims(user_id, roles)


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def get_storage(db: AsyncSession = Depends(get_db)) -> SqlStorage:
    return SqlStorage(db)


def get_event_publisher(request: Request) -> EventPublisher:
    return request.app.state.event_publisher


def get_order_service(
    storage: SqlStorage = Depends(get_storage),
    publisher: EventPublisher = Depends(get_event_publisher),
) -> OrderService:
    return OrderService(storage, publisher)


def get_menu_service(storage: SqlStorage = Depends(get_storage)) -> MenuService:
    return MenuService(storage)


def get_staff_service(storage: SqlStorage = Depends(get_storage)) -> StaffService:
    return StaffService(storage)


def get_analytics_service(storage: SqlStorage = Depends(get_storage)) -> AnalyticsService:
    return AnalyticsService(storage)
