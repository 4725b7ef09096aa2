from datetime import date, timedelta

from fastapi import APIRouter, Depends, Query, Response, status

from restaurant.dependencies import get_identity, get_staff_service
from restaurant.models import ShiftApplicationStatus, TimeOffStatus
from restaurant.schemas.staff import (
    ApplicationCreate,
    ApplicationResponse,
    AssignmentCreate,
    AssignmentResponse,
    MyAssignmentResponse,
    ScheduleDayResponse,
    ScheduleResponse,
    ShiftCreate,
    ShiftResponse,
    StaffMemberResponse,
    StaffStatusUpdate,
    TimeOffCreate,
    TimeOffResponse,
)
from restaurant.services.access import Identity
from restaurant.services.staff_service import StaffService

router = APIRouter()


@router.get("/members", response_model=list[StaffMemberResponse])
async def list_staff(
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> list[StaffMemberResponse]:
    return [StaffMemberResponse.model_validate(user) for user in await service.list_staff(identity)]


@router.patch("/members/{user_id}/status", response_model=StaffMemberResponse)
async def update_staff_status(
    user_id: int,
    body: StaffStatusUpdate,
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> StaffMemberResponse:
    user = await service.update_staff_status(identity, user_id, body.staff_status)
    return StaffMemberResponse.model_validate(user)


@router.post("/shifts", response_model=ShiftResponse, status_code=status.HTTP_201_CREATED)
async def create_shift(
    body: ShiftCreate,
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> ShiftResponse:
    shift = await service.create_shift(
        identity,
        shift_date=body.shift_date,
        timing=body.timing,
        start_time=body.start_time,
        end_time=body.end_time,
        required_staff=body.required_staff,
        notes=body.notes,
    )
    return ShiftResponse.model_validate(shift)


@router.get("/shifts", response_model=list[ShiftResponse])
async def list_shifts(
    start: date | None = None,
    end: date | None = None,
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> list[ShiftResponse]:
    start = start or date.today()
    end = end or start + timedelta(days=6)
    return [ShiftResponse.model_validate(s) for s in await service.list_shifts(identity, start, end)]


@router.post(
    "/shifts/{shift_id}/assignments",
    response_model=AssignmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def assign_staff(
    shift_id: int,
    body: AssignmentCreate,
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> AssignmentResponse:
    assignment = await service.assign_staff(identity, shift_id, body.user_id, body.worker_role)
    return AssignmentResponse.model_validate(assignment)


@router.delete("/shifts/{shift_id}/assignments/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_assignment(
    shift_id: int,
    user_id: int,
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> Response:
    await service.remove_assignment(identity, shift_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me/assignments", response_model=list[MyAssignmentResponse])
async def my_assignments(
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> list[MyAssignmentResponse]:
    return [MyAssignmentResponse.model_validate(a) for a in await service.my_assignments(identity)]


@router.get("/schedule", response_model=ScheduleResponse)
async def weekly_schedule(
    start: date | None = None,
    end: date | None = None,
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> ScheduleResponse:
    start = start or date.today()
    end = end or start + timedelta(days=6)
    days = await service.weekly_schedule(identity, start, end)
    return ScheduleResponse(
        start_date=start,
        end_date=end,
        days=[ScheduleDayResponse.from_day(day) for day in days],
    )


# -- shift applications ------------------------------------------------------


@router.post(
    "/shifts/{shift_id}/applications",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def apply_to_shift(
    shift_id: int,
    body: ApplicationCreate,
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> ApplicationResponse:
    application = await service.apply_to_shift(identity, shift_id, body.worker_role)
    return ApplicationResponse.model_validate(application)


@router.get("/applications", response_model=list[ApplicationResponse])
async def list_applications(
    application_status: ShiftApplicationStatus | None = Query(default=None, alias="status"),
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> list[ApplicationResponse]:
    applications = await service.list_applications(identity, application_status)
    return [ApplicationResponse.model_validate(a) for a in applications]


@router.get("/me/applications", response_model=list[ApplicationResponse])
async def my_applications(
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> list[ApplicationResponse]:
    return [ApplicationResponse.model_validate(a) for a in await service.my_applications(identity)]


@router.post("/applications/{application_id}/withdraw", response_model=ApplicationResponse)
async def withdraw_application(
    application_id: int,
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> ApplicationResponse:
    application = await service.withdraw_application(identity, application_id)
    return ApplicationResponse.model_validate(application)


@router.post("/applications/{application_id}/decline", response_model=ApplicationResponse)
async def decline_application(
    application_id: int,
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> ApplicationResponse:
    application = await service.decline_application(identity, application_id)
    return ApplicationResponse.model_validate(application)


@router.post(
    "/applications/{application_id}/approve",
    response_model=AssignmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def approve_application(
    application_id: int,
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> AssignmentResponse:
    assignment = await service.approve_application(identity, application_id)
    return AssignmentResponse.model_validate(assignment)


# -- time off ----------------------------------------------------------------


@router.post("/time-off", response_model=TimeOffResponse, status_code=status.HTTP_201_CREATED)
async def request_time_off(
    body: TimeOffCreate,
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> TimeOffResponse:
    request = await service.request_time_off(identity, body.start_date, body.end_date, body.reason)
    return TimeOffResponse.model_validate(request)


@router.get("/time-off", response_model=list[TimeOffResponse])
async def list_time_off(
    request_status: TimeOffStatus | None = Query(default=None, alias="status"),
    start: date | None = None,
    end: date | None = None,
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> list[TimeOffResponse]:
    requests = await service.list_time_off(identity, request_status, start, end)
    return [TimeOffResponse.model_validate(r) for r in requests]


@router.delete("/time-off/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
async def withdraw_time_off(
    request_id: int,
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> Response:
    await service.withdraw_time_off(identity, request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/time-off/{request_id}/approve", response_model=TimeOffResponse)
async def approve_time_off(
    request_id: int,
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> TimeOffResponse:
    return TimeOffResponse.model_validate(await service.approve_time_off(identity, request_id))


@router.post("/time-off/{request_id}/deny", response_model=TimeOffResponse)
async def deny_time_off(
    request_id: int,
    identity: Identity = Depends(get_identity),
    service: StaffService = Depends(get_staff_service),
) -> TimeOffResponse:
    return TimeOffResponse.model_validate(await service.deny_time_off(identity, request_id))
