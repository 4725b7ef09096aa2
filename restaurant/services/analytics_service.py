"""
Manager reporting over completed orders.

Only SERVED and CLOSED orders count as revenue, bucketed by the moment they
were placed. Money is summed in Decimal and rounded once per reported figure.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum

from restaurant.errors import ValidationError
from restaurant.models import OrderStatus
from restaurant.models.types import quantize
from restaurant.services.access import Identity, Permission, authorize
from restaurant.services.storage import Storage
from restaurant.utils.clock import utcnow

logger = logging.getLogger(__name__)

COMPLETED_STATUSES = (OrderStatus.SERVED, OrderStatus.CLOSED)

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


class Period(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    WEEK = "week"
    LAST_WEEK = "last_week"
    MONTH = "month"
    LAST_MONTH = "last_month"
    YEAR = "year"
    CUSTOM = "custom"


@dataclass(frozen=True)
class DateRange:
    """Half-open [start, end) window."""

    start: datetime
    end: datetime

    def previous(self) -> "DateRange":
        return DateRange(start=self.start - (self.end - self.start), end=self.start)


def resolve_period(
    period: Period,
    today: date,
    start: date | None = None,
    end: date | None = None,
) -> DateRange:
    """Turn a named period (weeks start on Monday) into a datetime window ending today."""
    tomorrow = today + timedelta(days=1)
    if period == Period.TODAY:
        first, last = today, tomorrow
    elif period == Period.YESTERDAY:
        first, last = today - timedelta(days=1), today
    elif period == Period.WEEK:
        first, last = today - timedelta(days=today.weekday()), tomorrow
    elif period == Period.LAST_WEEK:
        this_week = today - timedelta(days=today.weekday())
        first, last = this_week - timedelta(days=7), this_week
    elif period == Period.MONTH:
        first, last = today.replace(day=1), tomorrow
    elif period == Period.LAST_MONTH:
        this_month = today.replace(day=1)
        first, last = (this_month - timedelta(days=1)).replace(day=1), this_month
    elif period == Period.YEAR:
        first, last = today.replace(month=1, day=1), tomorrow
    else:
        if start is None or end is None:
            raise ValidationError(
                ["Custom period requires both start and end dates"], "Report range is invalid"
            )
        if end < start:
            raise ValidationError(["End date must not be before start date"], "Report range is invalid")
        first, last = start, end + timedelta(days=1)
    return DateRange(start=datetime.combine(first, time.min), end=datetime.combine(last, time.min))


def growth_percent(current: Decimal, previous: Decimal) -> Decimal | None:
    if previous == 0:
        return None
    return quantize((current - previous) / previous * _HUNDRED)


@dataclass(frozen=True)
class DailyRevenue:
    day: date
    revenue: Decimal
    orders: int


@dataclass(frozen=True)
class RevenueComparison:
    window: DateRange
    total_revenue: Decimal
    total_orders: int
    average_order_value: Decimal
    revenue_growth: Decimal | None
    orders_growth: Decimal | None
    average_order_value_growth: Decimal | None


@dataclass(frozen=True)
class RevenueReport:
    period: Period
    window: DateRange
    total_revenue: Decimal
    total_orders: int
    average_order_value: Decimal
    total_tax: Decimal
    total_tips: Decimal
    daily: list[DailyRevenue]
    previous: RevenueComparison | None = None

    @property
    def peak_day(self) -> DailyRevenue | None:
        return max(self.daily, key=lambda d: d.revenue, default=None)


@dataclass
class MenuItemPerformance:
    menu_item_id: int
    name: str
    category: str
    quantity_sold: int = 0
    revenue: Decimal = _ZERO
    times_ordered: int = 0


@dataclass(frozen=True)
class CategoryPerformance:
    category: str
    quantity_sold: int
    revenue: Decimal
    item_count: int


@dataclass(frozen=True)
class MenuPerformanceReport:
    period: Period
    window: DateRange
    total_items_sold: int
    total_revenue: Decimal
    average_item_price: Decimal
    items: list[MenuItemPerformance] = field(default_factory=list)
    categories: list[CategoryPerformance] = field(default_factory=list)


class AnalyticsService:
    def __init__(self, storage: Storage, clock: Callable[[], datetime] = utcnow):
        self.storage = storage
        self.clock = clock

    async def revenue(
        self,
        identity: Identity,
        period: Period = Period.MONTH,
        start: date | None = None,
        end: date | None = None,
        compare_with_previous: bool = False,
    ) -> RevenueReport:
        authorize(identity, Permission.VIEW_ANALYTICS)
        window = resolve_period(period, self.clock().date(), start, end)
        orders = await self.storage.orders.list_placed_between(
            COMPLETED_STATUSES, window.start, window.end
        )

        revenue = sum((o.total_amount for o in orders), _ZERO)
        by_day: dict[date, list] = {}
        for order in orders:
            by_day.setdefault(order.placed_at.date(), []).append(order)

        previous = None
        if compare_with_previous:
            previous = await self._comparison(window.previous(), revenue, len(orders))

        logger.debug(
            "Revenue report built",
            extra={"period": period.value, "orders": len(orders), "manager_id": identity.id},
        )
        return RevenueReport(
            period=period,
            window=window,
            total_revenue=quantize(revenue),
            total_orders=len(orders),
            average_order_value=_average(revenue, len(orders)),
            total_tax=quantize(sum((o.tax_amount for o in orders), _ZERO)),
            total_tips=quantize(sum((o.tip_amount for o in orders), _ZERO)),
            daily=[
                DailyRevenue(
                    day=day,
                    revenue=quantize(sum((o.total_amount for o in day_orders), _ZERO)),
                    orders=len(day_orders),
                )
                for day, day_orders in sorted(by_day.items())
            ],
            previous=previous,
        )

    async def menu_performance(
        self,
        identity: Identity,
        period: Period = Period.MONTH,
        start: date | None = None,
        end: date | None = None,
    ) -> MenuPerformanceReport:
        authorize(identity, Permission.VIEW_ANALYTICS)
        window = resolve_period(period, self.clock().date(), start, end)
        orders = await self.storage.orders.list_placed_between(
            COMPLETED_STATUSES, window.start, window.end
        )
        lines = [line for order in orders for line in order.items]
        menu_items = await self.storage.menu.get_many({line.menu_item_id for line in lines})

        performance: dict[int, MenuItemPerformance] = {}
        for line in lines:
            entry = performance.get(line.menu_item_id)
            if entry is None:
                menu_item = menu_items.get(line.menu_item_id)
                entry = performance[line.menu_item_id] = MenuItemPerformance(
                    menu_item_id=line.menu_item_id,
                    name=line.name_snapshot,
                    category=menu_item.category if menu_item is not None else "Unknown",
                )
            entry.quantity_sold += line.quantity
            entry.revenue += line.line_total
            entry.times_ordered += 1

        items = sorted(performance.values(), key=lambda p: (-p.quantity_sold, -p.revenue, p.name))
        total_sold = sum(p.quantity_sold for p in items)
        total_revenue = sum((p.revenue for p in items), _ZERO)

        categories: dict[str, list[MenuItemPerformance]] = {}
        for entry in items:
            categories.setdefault(entry.category, []).append(entry)

        return MenuPerformanceReport(
            period=period,
            window=window,
            total_items_sold=total_sold,
            total_revenue=quantize(total_revenue),
            average_item_price=_average(total_revenue, total_sold),
            items=items,
            categories=[
                CategoryPerformance(
                    category=category,
                    quantity_sold=sum(p.quantity_sold for p in entries),
                    revenue=quantize(sum((p.revenue for p in entries), _ZERO)),
                    item_count=len(entries),
                )
                for category, entries in sorted(categories.items())
            ],
        )

    async def _comparison(
        self, window: DateRange, revenue: Decimal, order_count: int
    ) -> RevenueComparison:
        orders = await self.storage.orders.list_placed_between(
            COMPLETED_STATUSES, window.start, window.end
        )
        previous_revenue = sum((o.total_amount for o in orders), _ZERO)
        previous_average = _average(previous_revenue, len(orders))
        return RevenueComparison(
            window=window,
            total_revenue=quantize(previous_revenue),
            total_orders=len(orders),
            average_order_value=previous_average,
            revenue_growth=growth_percent(revenue, previous_revenue),
            orders_growth=growth_percent(Decimal(order_count), Decimal(len(orders))),
            average_order_value_growth=growth_percent(_average(revenue, order_count), previous_average),
        )


def _average(amount: Decimal, count: int) -> Decimal:
    return quantize(amount / count) if count else quantize(_ZERO)
