from datetime import date, datetime, time

from pydantic import Field

from restaurant.models import ShiftApplicationStatus, ShiftTiming, StaffStatus, TimeOffStatus
from restaurant.schemas.base import CamelModel


class StaffMemberResponse(CamelModel):
    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    roles: list[str]
    staff_status: StaffStatus | None
    worker_roles: list[str] | None


class StaffStatusUpdate(CamelModel):
    staff_status: StaffStatus


class ShiftCreate(CamelModel):
    shift_date: date
    timing: ShiftTiming
    start_time: time
    end_time: time
    required_staff: int = Field(default=1, ge=1)
    notes: str | None = None


class AssignmentCreate(CamelModel):
    user_id: int
    worker_role: str | None = Field(default=None, max_length=50)


class AssignmentResponse(CamelModel):
    id: int
    shift_id: int
    user_id: int
    worker_role: str | None
    assigned_at: datetime


class ShiftResponse(CamelModel):
    id: int
    shift_date: date
    timing: ShiftTiming
    start_time: time
    end_time: time
    required_staff: int
    notes: str | None
    assignments: list[AssignmentResponse]


class MyAssignmentResponse(CamelModel):
    id: int
    worker_role: str | None
    assigned_at: datetime
    shift: ShiftResponse


class ShiftSummary(CamelModel):
    id: int
    shift_date: date
    timing: ShiftTiming
    start_time: time
    end_time: time


class ApplicationCreate(CamelModel):
    worker_role: str | None = Field(default=None, max_length=50)


class ApplicationResponse(CamelModel):
    id: int
    shift_id: int
    user_id: int
    worker_role: str | None
    status: ShiftApplicationStatus
    applied_at: datetime
    decided_at: datetime | None
    shift: ShiftSummary


class TimeOffCreate(CamelModel):
    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=1000)


class TimeOffResponse(CamelModel):
    id: int
    user_id: int
    start_date: date
    end_date: date
    reason: str | None
    status: TimeOffStatus
    manager_id: int | None
    requested_at: datetime
    decided_at: datetime | None


class ScheduledStaffResponse(CamelModel):
    user_id: int
    name: str
    worker_role: str | None


class ScheduledShiftResponse(CamelModel):
    id: int
    start_time: time
    end_time: time
    notes: str | None
    required_staff: int
    assigned_count: int
    staff: list[ScheduledStaffResponse]

    @classmethod
    def from_scheduled(cls, scheduled) -> "ScheduledShiftResponse":
        shift = scheduled.shift
        return cls(
            id=shift.id,
            start_time=shift.start_time,
            end_time=shift.end_time,
            notes=shift.notes,
            required_staff=shift.required_staff,
            assigned_count=scheduled.assigned_count,
            staff=[ScheduledStaffResponse.model_validate(s) for s in scheduled.staff],
        )


class ScheduleDayResponse(CamelModel):
    day: date
    evening: ScheduledShiftResponse | None = None
    night: ScheduledShiftResponse | None = None
    early_morning: ScheduledShiftResponse | None = None

    @classmethod
    def from_day(cls, schedule_day) -> "ScheduleDayResponse":
        slots = {
            timing.value: ScheduledShiftResponse.from_scheduled(scheduled)
            for timing, scheduled in schedule_day.shifts.items()
        }
        return cls(day=schedule_day.day, **slots)


class ScheduleResponse(CamelModel):
    start_date: date
    end_date: date
    days: list[ScheduleDayResponse]
