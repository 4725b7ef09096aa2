import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta

from restaurant.errors import AuthorizationError, NotFoundError, ValidationError
from restaurant.models import (
    Shift,
    ShiftApplication,
    ShiftApplicationStatus,
    ShiftAssignment,
    ShiftTiming,
    StaffStatus,
    TimeOffRequest,
    TimeOffStatus,
    User,
)
from restaurant.services.access import Identity, Permission, authorize, is_allowed
from restaurant.services.storage import Storage
from restaurant.utils.clock import utcnow

logger = logging.getLogger(__name__)


def is_staff_member(user: User) -> bool:
    return Identity.from_claims(user.id, user.roles or []).is_staff_like


def full_name(user: User) -> str:
    return f"{user.first_name} {user.last_name}"


def shift_window(shift: Shift) -> tuple[datetime, datetime]:
    """Start and end of a shift; an end at or before the start falls on the next day."""
    start = datetime.combine(shift.shift_date, shift.start_time)
    end = datetime.combine(shift.shift_date, shift.end_time)
    if end <= start:
        end += timedelta(days=1)
    return start, end


def shifts_overlap(a: Shift, b: Shift) -> bool:
    a_start, a_end = shift_window(a)
    b_start, b_end = shift_window(b)
    return a_start < b_end and b_start < a_end


@dataclass(frozen=True)
class ScheduledStaff:
    user_id: int
    name: str
    worker_role: str | None


@dataclass(frozen=True)
class ScheduledShift:
    shift: Shift
    staff: list[ScheduledStaff]

    @property
    def assigned_count(self) -> int:
        return len(self.staff)


@dataclass
class ScheduleDay:
    day: date
    shifts: dict[ShiftTiming, ScheduledShift] = field(default_factory=dict)


class StaffService:
    """Staff roster, shift scheduling, shift applications and time off."""

    def __init__(self, storage: Storage, clock: Callable[[], datetime] = utcnow):
        self.storage = storage
        self.clock = clock

    # -- roster -------------------------------------------------------------

    async def list_staff(self, identity: Identity) -> list[User]:
        authorize(identity, Permission.VIEW_SCHEDULE)
        users = await self.storage.staff.list_users()
        return [user for user in users if is_staff_member(user)]

    async def update_staff_status(
        self, identity: Identity, user_id: int, status: StaffStatus
    ) -> User:
        authorize(identity, Permission.MANAGE_STAFF)
        async with self.storage.transaction():
            user = await self._get_staff_member(user_id)
            user.staff_status = status
            user.updated_at = self.clock()
        logger.info(
            "Staff status updated",
            extra={"user_id": user_id, "staff_status": status.value, "manager_id": identity.id},
        )
        return user

    # -- shifts -------------------------------------------------------------

    async def create_shift(
        self,
        identity: Identity,
        shift_date: date,
        timing: ShiftTiming,
        start_time: time,
        end_time: time,
        required_staff: int = 1,
        notes: str | None = None,
    ) -> Shift:
        authorize(identity, Permission.MANAGE_STAFF)
        errors = []
        # night shifts may run past midnight, so only a zero-length shift is rejected
        if start_time == end_time:
            errors.append("Shift must start and end at different times")
        if required_staff < 1:
            errors.append("A shift needs at least one staff member")
        if errors:
            raise ValidationError(errors, "Shift is invalid")

        async with self.storage.transaction():
            if await self.storage.staff.find_shift(shift_date, timing) is not None:
                raise ValidationError(
                    [f"A {timing.value} shift already exists on {shift_date.isoformat()}"],
                    "Shift is invalid",
                )
            shift = await self.storage.staff.add_shift(
                Shift(
                    shift_date=shift_date,
                    timing=timing,
                    start_time=start_time,
                    end_time=end_time,
                    required_staff=required_staff,
                    notes=notes,
                    created_at=self.clock(),
                    assignments=[],
                )
            )
        logger.info(
            "Shift created",
            extra={"shift_id": shift.id, "shift_date": shift_date.isoformat(), "timing": timing.value},
        )
        return shift

    async def list_shifts(self, identity: Identity, start: date, end: date) -> Sequence[Shift]:
        authorize(identity, Permission.VIEW_SCHEDULE)
        _check_range(start, end)
        return await self.storage.staff.list_shifts(start, end)

    async def weekly_schedule(self, identity: Identity, start: date, end: date) -> list[ScheduleDay]:
        """Shifts grouped per day and timing, with the names of who is working them."""
        authorize(identity, Permission.VIEW_SCHEDULE)
        _check_range(start, end)
        shifts = await self.storage.staff.list_shifts(start, end)
        users = {user.id: user for user in await self.storage.staff.list_users()}

        days: dict[date, ScheduleDay] = {}
        for shift in shifts:
            day = days.setdefault(shift.shift_date, ScheduleDay(day=shift.shift_date))
            day.shifts[shift.timing] = ScheduledShift(
                shift=shift,
                staff=[
                    ScheduledStaff(
                        user_id=a.user_id,
                        name=full_name(users[a.user_id]) if a.user_id in users else "Unknown staff",
                        worker_role=a.worker_role,
                    )
                    for a in shift.assignments
                ],
            )
        return [days[d] for d in sorted(days)]

    # -- assignments --------------------------------------------------------

    async def assign_staff(
        self,
        identity: Identity,
        shift_id: int,
        user_id: int,
        worker_role: str | None = None,
    ) -> ShiftAssignment:
        authorize(identity, Permission.MANAGE_STAFF)
        async with self.storage.transaction():
            shift = await self._get_shift(shift_id)
            user = await self._get_staff_member(user_id)

            errors = await self._assignment_errors(shift, user)
            if errors:
                raise ValidationError(errors, "Assignment is invalid")
            assignment = await self._assign(shift, user_id, worker_role)

        logger.info(
            "Staff assigned to shift",
            extra={"shift_id": shift_id, "user_id": user_id, "manager_id": identity.id},
        )
        return assignment

    async def remove_assignment(self, identity: Identity, shift_id: int, user_id: int) -> None:
        authorize(identity, Permission.MANAGE_STAFF)
        async with self.storage.transaction():
            shift = await self._get_shift(shift_id)
            assignment = next((a for a in shift.assignments if a.user_id == user_id), None)
            if assignment is None:
                raise NotFoundError(f"User {user_id} is not assigned to shift {shift_id}")
            shift.assignments.remove(assignment)
            await self.storage.staff.delete_assignment(assignment)
        logger.info("Staff removed from shift", extra={"shift_id": shift_id, "user_id": user_id})

    async def my_assignments(self, identity: Identity) -> Sequence[ShiftAssignment]:
        authorize(identity, Permission.VIEW_SCHEDULE)
        return await self.storage.staff.assignments_for_user(identity.id, self.clock().date())

    # -- shift applications -------------------------------------------------

    async def apply_to_shift(
        self, identity: Identity, shift_id: int, worker_role: str | None = None
    ) -> ShiftApplication:
        authorize(identity, Permission.VIEW_SCHEDULE)
        now = self.clock()
        async with self.storage.transaction():
            shift = await self._get_shift(shift_id)
            user = await self._get_staff_member(identity.id)
            existing = await self.storage.staff.find_application(shift_id, identity.id)

            errors = []
            if user.staff_status != StaffStatus.ACTIVE:
                errors.append("You are not active")
            if any(a.user_id == identity.id for a in shift.assignments):
                errors.append("You are already assigned to this shift")
            if await self._has_conflicting_shift(shift, identity.id):
                errors.append("You have conflicting shifts on this date")
            if await self._has_time_off(identity.id, shift.shift_date):
                errors.append("You have approved time-off on this date")
            if existing is not None and existing.status in (
                ShiftApplicationStatus.APPLIED,
                ShiftApplicationStatus.APPROVED,
            ):
                errors.append("You have already applied to this shift")
            elif existing is not None and existing.status == ShiftApplicationStatus.REJECTED:
                errors.append("Your application to this shift was declined")
            if errors:
                raise ValidationError(errors, "Application is invalid")

            if existing is not None:
                # a withdrawn application is reopened rather than duplicated
                application = existing
                application.status = ShiftApplicationStatus.APPLIED
                application.worker_role = worker_role
                application.applied_at = now
                application.decided_at = None
            else:
                application = await self.storage.staff.add_application(
                    ShiftApplication(
                        shift=shift,
                        user_id=identity.id,
                        worker_role=worker_role,
                        status=ShiftApplicationStatus.APPLIED,
                        applied_at=now,
                        decided_at=None,
                    )
                )

        logger.info(
            "Shift application submitted",
            extra={"application_id": application.id, "shift_id": shift_id, "user_id": identity.id},
        )
        return application

    async def list_applications(
        self, identity: Identity, status: ShiftApplicationStatus | None = None
    ) -> Sequence[ShiftApplication]:
        authorize(identity, Permission.MANAGE_STAFF)
        return await self.storage.staff.list_applications(status=status)

    async def my_applications(self, identity: Identity) -> Sequence[ShiftApplication]:
        authorize(identity, Permission.VIEW_SCHEDULE)
        return await self.storage.staff.list_applications(user_id=identity.id)

    async def withdraw_application(self, identity: Identity, application_id: int) -> ShiftApplication:
        authorize(identity, Permission.VIEW_SCHEDULE)
        async with self.storage.transaction():
            application = await self._get_application(application_id)
            if application.user_id != identity.id and not is_allowed(identity, Permission.MANAGE_STAFF):
                raise AuthorizationError("You can only withdraw your own applications")
            if application.status != ShiftApplicationStatus.APPLIED:
                raise ValidationError(["Only pending applications can be withdrawn"], "Application is invalid")
            application.status = ShiftApplicationStatus.WITHDRAWN
            application.decided_at = self.clock()
        logger.info("Shift application withdrawn", extra={"application_id": application_id})
        return application

    async def decline_application(self, identity: Identity, application_id: int) -> ShiftApplication:
        authorize(identity, Permission.MANAGE_STAFF)
        async with self.storage.transaction():
            application = await self._get_application(application_id)
            if application.status != ShiftApplicationStatus.APPLIED:
                raise ValidationError(["Application has already been processed"], "Application is invalid")
            application.status = ShiftApplicationStatus.REJECTED
            application.decided_at = self.clock()
        logger.info(
            "Shift application declined",
            extra={"application_id": application_id, "manager_id": identity.id},
        )
        return application

    async def approve_application(self, identity: Identity, application_id: int) -> ShiftAssignment:
        """Approve a pending application and assign the applicant in one step."""
        authorize(identity, Permission.MANAGE_STAFF)
        async with self.storage.transaction():
            application = await self._get_application(application_id)
            if application.status != ShiftApplicationStatus.APPLIED:
                raise ValidationError(["Application has already been processed"], "Application is invalid")
            shift = application.shift
            user = await self._get_staff_member(application.user_id)

            errors = await self._assignment_errors(shift, user)
            role = application.worker_role
            if role and role not in (user.worker_roles or []):
                errors.append(f"Staff member does not have the required '{role}' role")
            if errors:
                raise ValidationError(errors, "Application cannot be approved")

            application.status = ShiftApplicationStatus.APPROVED
            application.decided_at = self.clock()
            assignment = await self._assign(shift, user.id, role)

        logger.info(
            "Shift application approved",
            extra={
                "application_id": application_id,
                "shift_id": shift.id,
                "user_id": user.id,
                "manager_id": identity.id,
            },
        )
        return assignment

    # -- time off -----------------------------------------------------------

    async def request_time_off(
        self, identity: Identity, start_date: date, end_date: date, reason: str | None = None
    ) -> TimeOffRequest:
        authorize(identity, Permission.VIEW_SCHEDULE)
        if end_date < start_date:
            raise ValidationError(["End date must not be before start date"], "Time-off request is invalid")
        async with self.storage.transaction():
            await self._get_staff_member(identity.id)
            request = await self.storage.staff.add_time_off(
                TimeOffRequest(
                    user_id=identity.id,
                    start_date=start_date,
                    end_date=end_date,
                    reason=reason,
                    status=TimeOffStatus.PENDING,
                    manager_id=None,
                    requested_at=self.clock(),
                    decided_at=None,
                )
            )
        logger.info(
            "Time-off requested",
            extra={"time_off_id": request.id, "user_id": identity.id},
        )
        return request

    async def list_time_off(
        self,
        identity: Identity,
        status: TimeOffStatus | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> Sequence[TimeOffRequest]:
        """Managers see every request; other staff only their own."""
        authorize(identity, Permission.VIEW_SCHEDULE)
        if start is not None and end is not None:
            _check_range(start, end)
        user_id = None if is_allowed(identity, Permission.MANAGE_STAFF) else identity.id
        return await self.storage.staff.list_time_off(status=status, user_id=user_id, start=start, end=end)

    async def withdraw_time_off(self, identity: Identity, request_id: int) -> None:
        authorize(identity, Permission.VIEW_SCHEDULE)
        async with self.storage.transaction():
            request = await self._get_time_off(request_id)
            if request.user_id != identity.id and not is_allowed(identity, Permission.MANAGE_STAFF):
                raise AuthorizationError("You can only withdraw your own requests")
            if request.status != TimeOffStatus.PENDING:
                raise ValidationError(["Only pending requests can be withdrawn"], "Time-off request is invalid")
            await self.storage.staff.delete_time_off(request)
        logger.info("Time-off request withdrawn", extra={"time_off_id": request_id})

    async def approve_time_off(self, identity: Identity, request_id: int) -> TimeOffRequest:
        return await self._decide_time_off(identity, request_id, TimeOffStatus.APPROVED)

    async def deny_time_off(self, identity: Identity, request_id: int) -> TimeOffRequest:
        return await self._decide_time_off(identity, request_id, TimeOffStatus.DENIED)

    # -- internals ----------------------------------------------------------

    async def _decide_time_off(
        self, identity: Identity, request_id: int, decision: TimeOffStatus
    ) -> TimeOffRequest:
        authorize(identity, Permission.MANAGE_STAFF)
        verb = "approved" if decision == TimeOffStatus.APPROVED else "denied"
        now = self.clock()
        async with self.storage.transaction():
            request = await self._get_time_off(request_id)
            if request.status != TimeOffStatus.PENDING:
                raise ValidationError([f"Only pending requests can be {verb}"], "Time-off request is invalid")
            request.status = decision
            request.manager_id = identity.id
            request.decided_at = now
            if decision == TimeOffStatus.APPROVED:
                user = await self.storage.staff.get_user(request.user_id)
                if user is not None:
                    user.staff_status = StaffStatus.UNAVAILABLE
                    user.updated_at = now
        logger.info(
            "Time-off request decided",
            extra={
                "time_off_id": request_id,
                "decision": decision.value,
                "user_id": request.user_id,
                "manager_id": identity.id,
            },
        )
        return request

    async def _assignment_errors(self, shift: Shift, user: User) -> list[str]:
        errors = []
        name = full_name(user)
        if user.staff_status != StaffStatus.ACTIVE:
            errors.append(f"{name} is not active")
        if any(a.user_id == user.id for a in shift.assignments):
            errors.append(f"{name} is already assigned to this shift")
        if len(shift.assignments) >= shift.required_staff:
            errors.append("Shift is already fully staffed")
        if await self._has_conflicting_shift(shift, user.id):
            errors.append(f"{name} has time conflicts with existing assignments")
        if await self._has_time_off(user.id, shift.shift_date):
            errors.append(f"{name} has approved time-off on this date")
        return errors

    async def _assign(self, shift: Shift, user_id: int, worker_role: str | None) -> ShiftAssignment:
        assignment = ShiftAssignment(
            shift=shift,
            user_id=user_id,
            worker_role=worker_role,
            assigned_at=self.clock(),
        )
        return await self.storage.staff.add_assignment(assignment)

    async def _has_conflicting_shift(self, shift: Shift, user_id: int) -> bool:
        # a night shift from the day before can still be running
        assignments = await self.storage.staff.assignments_for_user(
            user_id, shift.shift_date - timedelta(days=1)
        )
        return any(
            a.shift.id != shift.id and shifts_overlap(a.shift, shift)
            for a in assignments
            if a.shift.shift_date <= shift.shift_date + timedelta(days=1)
        )

    async def _has_time_off(self, user_id: int, day: date) -> bool:
        approved = await self.storage.staff.list_time_off(
            status=TimeOffStatus.APPROVED, user_id=user_id, start=day, end=day
        )
        return bool(approved)

    async def _get_shift(self, shift_id: int) -> Shift:
        shift = await self.storage.staff.get_shift(shift_id)
        if shift is None:
            raise NotFoundError(f"Shift {shift_id} not found")
        return shift

    async def _get_application(self, application_id: int) -> ShiftApplication:
        application = await self.storage.staff.get_application(application_id)
        if application is None:
            raise NotFoundError(f"Application {application_id} not found")
        return application

    async def _get_time_off(self, request_id: int) -> TimeOffRequest:
        request = await self.storage.staff.get_time_off(request_id)
        if request is None:
            raise NotFoundError(f"Time-off request {request_id} not found")
        return request

    async def _get_staff_member(self, user_id: int) -> User:
        user = await self.storage.staff.get_user(user_id)
        if user is None or not is_staff_member(user):
            raise NotFoundError(f"Staff member {user_id} not found")
        return user


def _check_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationError(["End date must not be before start date"], "Date range is invalid")
