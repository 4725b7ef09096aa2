from datetime import datetime

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restaurant.database import Base
from restaurant.models.enums import StaffStatus
from restaurant.utils.clock import utcnow


class User(Base):
    """Customers and staff alike; credentials live with the auth gateway."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    # application roles, e.g. ["customer"] or ["staff", "manager"]
    roles: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # staff-only fields, null for customers
    staff_status: Mapped[StaffStatus | None] = mapped_column(
        SAEnum(StaffStatus, name="staffstatus", values_callable=lambda e: [m.value for m in e]),
        nullable=True,
        index=True,
    )
    worker_roles: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    assignments: Mapped[list["ShiftAssignment"]] = relationship(
        "ShiftAssignment", back_populates="user"
    )
