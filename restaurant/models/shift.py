from datetime import date, datetime, time

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text, Time, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from restaurant.database import Base
from restaurant.models.enums import ShiftApplicationStatus, ShiftTiming
from restaurant.utils.clock import utcnow


class Shift(Base):
    __tablename__ = "shifts"
    __table_args__ = (UniqueConstraint("shift_date", "timing", name="uq_shifts_date_timing"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shift_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    timing: Mapped[ShiftTiming] = mapped_column(
        SAEnum(ShiftTiming, name="shifttiming", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    required_staff: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    assignments: Mapped[list["ShiftAssignment"]] = relationship(
        "ShiftAssignment",
        back_populates="shift",
        cascade="all, delete-orphan",
        order_by="ShiftAssignment.id",
    )


class ShiftAssignment(Base):
    __tablename__ = "shift_assignments"
    __table_args__ = (UniqueConstraint("shift_id", "user_id", name="uq_shift_assignments_shift_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shift_id: Mapped[int] = mapped_column(ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    worker_role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    assigned_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    shift: Mapped["Shift"] = relationship("Shift", back_populates="assignments")
    user: Mapped["User"] = relationship("User", back_populates="assignments")


class ShiftApplication(Base):
    """A staff member asking to work a shift; a manager approves or declines it."""

    __tablename__ = "shift_applications"
    __table_args__ = (UniqueConstraint("shift_id", "user_id", name="uq_shift_applications_shift_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shift_id: Mapped[int] = mapped_column(ForeignKey("shifts.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # role the applicant would like to work, e.g. "server"
    worker_role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[ShiftApplicationStatus] = mapped_column(
        SAEnum(
            ShiftApplicationStatus,
            name="shiftapplicationstatus",
            values_callable=lambda e: [m.value for m in e],
        ),
        default=ShiftApplicationStatus.APPLIED,
        nullable=False,
        index=True,
    )
    applied_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    shift: Mapped["Shift"] = relationship("Shift")
