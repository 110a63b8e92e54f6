"""
Coffee shop API Routes

Static catalog joined with live crowd levels.
"""

from fastapi import APIRouter, Depends

from coffeeworld.api.dependencies import get_checkin_service
from coffeeworld.api.schemas import CoffeeShopListResponse, CoffeeShopResponse, ErrorResponse
from coffeeworld.catalog import CoffeeShop, get_shop, list_shops
from coffeeworld.crowd.service import CheckInService


router = APIRouter(prefix="/shops", tags=["shops"])


def _with_crowd(shop: CoffeeShop, service: CheckInService) -> CoffeeShopResponse:
    crowd = service.get_status(shop.id)
    return CoffeeShopResponse(
        **shop.to_dict(),
        current_count=crowd.count,
        crowd_level=crowd.level,
    )


@router.get("", response_model=CoffeeShopListResponse)
def list_coffee_shops(service: CheckInService = Depends(get_checkin_service)):
    """All shops with their current crowd level."""
    shops = [_with_crowd(shop, service) for shop in list_shops()]
    return CoffeeShopListResponse(shops=shops, total=len(shops))


@router.get(
    "/{shop_id}",
    response_model=CoffeeShopResponse,
    responses={404: {"model": ErrorResponse, "description": "Unknown shop"}},
)
def get_coffee_shop(
    shop_id: str,
    service: CheckInService = Depends(get_checkin_service),
):
    return _with_crowd(get_shop(shop_id), service)
