from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from restaurant.database import Base
from restaurant.models.types import Money, Percent
from restaurant.utils.clock import utcnow


class MenuItem(Base):
    __tablename__ = "menu_items"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_menu_items_price_non_negative"),
        CheckConstraint("qty_on_hand >= 0", name="ck_menu_items_qty_non_negative"),
        Index("ix_menu_items_category_active", "category", "is_active"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[Decimal] = mapped_column(Money(), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    preparation_time_min: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # time-boxed promotion, percent in 0-100
    promo_percent: Mapped[Decimal | None] = mapped_column(Percent(), nullable=True)
    promo_starts_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    promo_ends_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    qty_on_hand: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reorder_threshold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    def promo_active(self, at: datetime) -> bool:
        return bool(
            self.promo_percent
            and self.promo_starts_at is not None
            and self.promo_ends_at is not None
            and self.promo_starts_at <= at <= self.promo_ends_at
        )
