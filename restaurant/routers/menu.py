from fastapi import APIRouter, Depends, Query, status

from restaurant.dependencies import get_identity, get_menu_service
from restaurant.schemas.menu_item import (
    MenuItemCreate,
    MenuItemDetail,
    MenuItemResponse,
    MenuItemUpdate,
    RestockRequest,
)
from restaurant.services.access import Identity
from restaurant.services.menu_service import MenuListing, MenuService

router = APIRouter()
staff_router = APIRouter()


def _build_listing(listing: MenuListing) -> MenuItemResponse:
    item = listing.item
    return MenuItemResponse(
        id=item.id,
        name=item.name,
        category=item.category,
        price=item.price,
        display_price=listing.display_price,
        description=item.description,
        preparation_time_min=item.preparation_time_min,
        is_available=listing.is_available,
        has_promo=listing.has_promo,
        promo_percent=item.promo_percent if listing.has_promo else None,
    )


@router.get("", response_model=list[MenuItemResponse])
async def list_menu(
    category: str | None = None,
    available: bool = False,
    search: str | None = Query(default=None, max_length=100),
    service: MenuService = Depends(get_menu_service),
) -> list[MenuItemResponse]:
    listings = await service.list_menu(category=category, available_only=available, search=search)
    return [_build_listing(listing) for listing in listings]


@router.get("/categories", response_model=list[str])
async def list_categories(service: MenuService = Depends(get_menu_service)) -> list[str]:
    return await service.list_categories()


@staff_router.post("", response_model=MenuItemDetail, status_code=status.HTTP_201_CREATED)
async def create_menu_item(
    body: MenuItemCreate,
    identity: Identity = Depends(get_identity),
    service: MenuService = Depends(get_menu_service),
) -> MenuItemDetail:
    item = await service.create_menu_item(identity, body.model_dump())
    return MenuItemDetail.model_validate(item)


@staff_router.get("/low-stock", response_model=list[MenuItemDetail])
async def list_low_stock(
    identity: Identity = Depends(get_identity),
    service: MenuService = Depends(get_menu_service),
) -> list[MenuItemDetail]:
    return [MenuItemDetail.model_validate(item) for item in await service.low_stock(identity)]


@staff_router.patch("/{menu_item_id}", response_model=MenuItemDetail)
async def update_menu_item(
    menu_item_id: int,
    body: MenuItemUpdate,
    identity: Identity = Depends(get_identity),
    service: MenuService = Depends(get_menu_service),
) -> MenuItemDetail:
    item = await service.update_menu_item(identity, menu_item_id, body.model_dump(exclude_unset=True))
    return MenuItemDetail.model_validate(item)


@staff_router.post("/{menu_item_id}/restock", response_model=MenuItemDetail)
async def restock_menu_item(
    menu_item_id: int,
    body: RestockRequest,
    identity: Identity = Depends(get_identity),
    service: MenuService = Depends(get_menu_service),
) -> MenuItemDetail:
    item = await service.restock(identity, menu_item_id, body.quantity)
    return MenuItemDetail.model_validate(item)


@staff_router.delete("/{menu_item_id}", response_model=MenuItemDetail)
async def deactivate_menu_item(
    menu_item_id: int,
    identity: Identity = Depends(get_identity),
    service: MenuService = Depends(get_menu_service),
) -> MenuItemDetail:
    return MenuItemDetail.model_validate(await service.deactivate(identity, menu_item_id))
