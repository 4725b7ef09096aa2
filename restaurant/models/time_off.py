from datetime import date, datetime

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Integer, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from restaurant.database import Base
from restaurant.models.enums import TimeOffStatus
from restaurant.utils.clock import utcnow


class TimeOffRequest(Base):
    __tablename__ = "time_off_requests"
    __table_args__ = (CheckConstraint("end_date >= start_date", name="ck_time_off_dates_ordered"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[TimeOffStatus] = mapped_column(
        SAEnum(TimeOffStatus, name="timeoffstatus", values_callable=lambda e: [m.value for m in e]),
        default=TimeOffStatus.PENDING,
        nullable=False,
        index=True,
    )
    # the deciding manager
    manager_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    requested_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
