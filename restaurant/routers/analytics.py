from datetime import date

from fastapi import APIRouter, Depends

from restaurant.dependencies import get_analytics_service, get_identity
from restaurant.schemas.analytics import MenuPerformanceResponse, RevenueReportResponse
from restaurant.services.access import Identity
from restaurant.services.analytics_service import AnalyticsService, Period

router = APIRouter()


@router.get("/revenue", response_model=RevenueReportResponse)
async def revenue(
    period: Period = Period.MONTH,
    start: date | None = None,
    end: date | None = None,
    compare: bool = False,
    identity: Identity = Depends(get_identity),
    service: AnalyticsService = Depends(get_analytics_service),
) -> RevenueReportResponse:
    report = await service.revenue(identity, period, start, end, compare_with_previous=compare)
    return RevenueReportResponse.model_validate(report)


@router.get("/menu-performance", response_model=MenuPerformanceResponse)
async def menu_performance(
    period: Period = Period.MONTH,
    start: date | None = None,
    end: date | None = None,
    identity: Identity = Depends(get_identity),
    service: AnalyticsService = Depends(get_analytics_service),
) -> MenuPerformanceResponse:
    report = await service.menu_performance(identity, period, start, end)
    return MenuPerformanceResponse.model_validate(report)
