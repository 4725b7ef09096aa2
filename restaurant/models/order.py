from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restaurant.database import Base
from restaurant.models.enums import OrderStatus, PaymentMode, PaymentStatus
from restaurant.models.types import Fraction, Money
from restaurant.utils.clock import utcnow


class Order(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # nullable so reporting survives a customer being erased
    customer_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    table_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(OrderStatus, name="orderstatus", values_callable=lambda e: [m.value for m in e]),
        default=OrderStatus.DRAFT,
        nullable=False,
        index=True,
    )

    subtotal_amount: Mapped[Decimal] = mapped_column(Money(), default=Decimal("0"), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Money(), default=Decimal("0"), nullable=False)
    service_charge_amount: Mapped[Decimal] = mapped_column(Money(), default=Decimal("0"), nullable=False)
    tip_amount: Mapped[Decimal] = mapped_column(Money(), default=Decimal("0"), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Money(), default=Decimal("0"), nullable=False)

    payment_mode: Mapped[PaymentMode | None] = mapped_column(
        SAEnum(PaymentMode, name="paymentmode", values_callable=lambda e: [m.value for m in e]),
        nullable=True,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(PaymentStatus, name="paymentstatus", values_callable=lambda e: [m.value for m in e]),
        default=PaymentStatus.PENDING,
        nullable=False,
    )

    placed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    menu_item_id: Mapped[int] = mapped_column(ForeignKey("menu_items.id"), nullable=False, index=True)
    # snapshot of the catalog entry at order time
    name_snapshot: Mapped[str] = mapped_column(String(200), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Money(), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    percent_off: Mapped[Decimal] = mapped_column(Fraction(), default=Decimal("0"), nullable=False)
    line_total: Mapped[Decimal] = mapped_column(Money(), nullable=False)
    customizations: Mapped[str | None] = mapped_column(String(500), nullable=True)

    order: Mapped["Order"] = relationship("Order", back_populates="items")
