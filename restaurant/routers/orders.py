import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from restaurant.config import settings
from restaurant.dependencies import get_identity, get_order_service, get_request_id
from restaurant.models import Order
from restaurant.schemas.order import (
    OrderConfirm,
    OrderCreate,
    OrderHistoryResponse,
    OrderResponse,
    OrderStatusResponse,
    OrderSummary,
    Pagination,
)
from restaurant.services.access import Identity
from restaurant.services.order_service import OrderService

router = APIRouter()
logger = logging.getLogger(__name__)


def build_order_response(order: Order) -> OrderResponse:
    return OrderResponse.model_validate(order)


@router.post("/orders", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def place_order(
    body: OrderCreate,
    identity: Identity = Depends(get_identity),
    request_id: str = Depends(get_request_id),
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    logger.info(
        "Received place_order request",
        extra={"request_id": request_id, "customer_id": identity.id, "item_count": len(body.items)},
    )
    order = await service.create_order(identity, body.table_number, body.items, request_id)
    return build_order_response(order)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: int,
    identity: Identity = Depends(get_identity),
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    return build_order_response(await service.get_order(identity, order_id))


@router.get("/orders/{order_id}/status", response_model=OrderStatusResponse)
async def get_order_status(
    order_id: int,
    identity: Identity = Depends(get_identity),
    service: OrderService = Depends(get_order_service),
) -> OrderStatusResponse:
    return OrderStatusResponse.model_validate(await service.get_order_status(identity, order_id))


@router.post("/orders/{order_id}/confirm", response_model=OrderResponse)
async def confirm_order(
    order_id: int,
    body: OrderConfirm,
    identity: Identity = Depends(get_identity),
    request_id: str = Depends(get_request_id),
    service: OrderService = Depends(get_order_service),
) -> OrderResponse:
    if not body.confirmed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Order confirmation required"
        )
    return build_order_response(await service.confirm_order(identity, order_id, request_id))


@router.get("/customers/{customer_id}/orders", response_model=OrderHistoryResponse)
async def get_customer_orders(
    customer_id: int,
    limit: int = Query(default=settings.default_page_limit, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    identity: Identity = Depends(get_identity),
    service: OrderService = Depends(get_order_service),
) -> OrderHistoryResponse:
    orders = await service.list_customer_orders(identity, customer_id, limit, offset)
    return OrderHistoryResponse(
        orders=[
            OrderSummary(
                id=order.id,
                table_number=order.table_number,
                status=order.status,
                total_amount=order.total_amount,
                placed_at=order.placed_at,
                closed_at=order.closed_at,
                item_count=len(order.items),
            )
            for order in orders
        ],
        pagination=Pagination(limit=limit, offset=offset, count=len(orders)),
    )
