from datetime import date, datetime
from decimal import Decimal

from restaurant.schemas.base import CamelModel
from restaurant.services.analytics_service import Period


class DateRangeResponse(CamelModel):
    start: datetime
    end: datetime


class DailyRevenueResponse(CamelModel):
    day: date
    revenue: Decimal
    orders: int


class RevenueComparisonResponse(CamelModel):
    window: DateRangeResponse
    total_revenue: Decimal
    total_orders: int
    average_order_value: Decimal
    revenue_growth: Decimal | None
    orders_growth: Decimal | None
    average_order_value_growth: Decimal | None


class RevenueReportResponse(CamelModel):
    period: Period
    window: DateRangeResponse
    total_revenue: Decimal
    total_orders: int
    average_order_value: Decimal
    total_tax: Decimal
    total_tips: Decimal
    peak_day: DailyRevenueResponse | None
    daily: list[DailyRevenueResponse]
    previous: RevenueComparisonResponse | None


class MenuItemPerformanceResponse(CamelModel):
    menu_item_id: int
    name: str
    category: str
    quantity_sold: int
    revenue: Decimal
    times_ordered: int


class CategoryPerformanceResponse(CamelModel):
    category: str
    quantity_sold: int
    revenue: Decimal
    item_count: int


class MenuPerformanceResponse(CamelModel):
    period: Period
    window: DateRangeResponse
    total_items_sold: int
    total_revenue: Decimal
    average_item_price: Decimal
    items: list[MenuItemPerformanceResponse]
    categories: list[CategoryPerformanceResponse]
