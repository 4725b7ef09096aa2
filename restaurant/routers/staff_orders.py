import logging

from fastapi import APIRouter, Depends, Query

from restaurant.config import settings
from restaurant.dependencies import get_identity, get_order_service, get_request_id
from restaurant.routers.orders import build_order_response
from restaurant.schemas.order import OrderQueueResponse, OrderResponse, OrderStatusUpdate, Pagination
from restaurant.services.access import Identity
from restaurant.services.order_service import OrderService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/orders", response_model=OrderQueueResponse)
async def get_order_queue(
    limit: int = Query(default=settings.staff_page_limit, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    identity: Identity = Depends(get_identity),
    service: OrderService = Depends(get_order_service),
) -> OrderQueueResponse:
    orders = await service.list_active_orders(identity, limit, offset)
    return OrderQueueResponse(
        orders=[build_order_response(order) for order in orders],
        pagination=Pagination(limit=limit, offset=offset, count=len(orders)),
    )


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: int,
    body: OrderStatusUpdate,
    identity: Identity = Depends(get_identity),
    request_id: str = Depends(get_request_id),
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    logger.info(
        "Received update_order_status request",
        extra={"request_id": request_id, "order_id": order_id, "status": body.status.value},
    )
    order = await service.update_order_status(identity, order_id, body.status, request_id)
    return build_order_response(order)
