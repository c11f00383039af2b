import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_business_hours, get_business_timezone, get_session
from app.api.schemas.appointment import (
    ApiMessageResponse,
    ApiResponse,
    AppointmentPublic,
    BookAppointmentRequest,
    UpdateAppointmentRequest,
)
from app.core.errors import SlotUnavailableError, StorageError
from app.models.appointment import Appointment, AppointmentCreate
from app.services.appointment_service import (
    cancel_appointment,
    create_appointment,
    list_appointments_for_customer,
    update_appointment,
)
from app.services.slot_service import BusinessHoursPolicy, format_hour_label

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["appointments"])


def _to_public(a: Appointment) -> AppointmentPublic:
    slot = a.scheduled_date
    return AppointmentPublic(
        id=int(a.id) if a.id is not None else 0,
        customer_id=a.customer_id,
        vehicle_id=a.vehicle_id,
        service_type=a.service_type,
        date=slot.date().isoformat(),
        time=format_hour_label(slot.hour),
        status=a.status,
        notes=a.notes,
        created_at=a.created_at,
    )


@router.post(
    "",
    response_model=ApiMessageResponse[AppointmentPublic],
    status_code=status.HTTP_201_CREATED,
)
async def book_appointment(
    body: BookAppointmentRequest,
    session: AsyncSession = Depends(get_session),
    policy: BusinessHoursPolicy = Depends(get_business_hours),
    tz: ZoneInfo = Depends(get_business_timezone),
) -> ApiMessageResponse[AppointmentPublic]:
    if (
        body.customer_id is None
        or body.vehicle_id is None
        or not body.service_type
        or not body.preferred_date
        or not body.preferred_time
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Customer, vehicle, service type, date, and time are required",
        )
    try:
        scheduled = datetime.fromisoformat(f"{body.preferred_date}T{body.preferred_time}")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid date or time. Use YYYY-MM-DD and HH:MM",
        )

    data = AppointmentCreate(
        customer_id=body.customer_id,
        vehicle_id=body.vehicle_id,
        service_type=body.service_type,
        scheduled_date=scheduled,
        notes=body.description,
    )
    try:
        appointment = await create_appointment(session, data, policy, tz)
    except SlotUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.reason) from e
    except StorageError as e:
        raise HTTPException(status_code=500, detail="Failed to create appointment") from e
    return ApiMessageResponse(message="Appointment created successfully", data=_to_public(appointment))


@router.get("", response_model=ApiResponse[list[AppointmentPublic]])
async def list_customer_appointments(
    customer_id: int = Query(..., alias="customerId"),
    session: AsyncSession = Depends(get_session),
) -> ApiResponse[list[AppointmentPublic]]:
    try:
        appointments = await list_appointments_for_customer(session, customer_id)
    except StorageError as e:
        raise HTTPException(status_code=500, detail="Failed to fetch appointments") from e
    return ApiResponse(data=[_to_public(a) for a in appointments])


@router.patch("/{appointment_id}/cancel", response_model=ApiMessageResponse[AppointmentPublic])
async def cancel_customer_appointment(
    appointment_id: int,
    session: AsyncSession = Depends(get_session),
) -> ApiMessageResponse[AppointmentPublic]:
    try:
        appointment = await cancel_appointment(session, appointment_id)
    except StorageError as e:
        raise HTTPException(status_code=500, detail="Failed to cancel appointment") from e
    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    logger.info("Cancelled appointment %s", appointment_id)
    return ApiMessageResponse(message="Appointment cancelled successfully", data=_to_public(appointment))


@router.patch("/{appointment_id}", response_model=ApiMessageResponse[AppointmentPublic])
async def update_customer_appointment(
    appointment_id: int,
    body: UpdateAppointmentRequest,
    session: AsyncSession = Depends(get_session),
    policy: BusinessHoursPolicy = Depends(get_business_hours),
    tz: ZoneInfo = Depends(get_business_timezone),
) -> ApiMessageResponse[AppointmentPublic]:
    try:
        appointment = await update_appointment(
            session,
            appointment_id,
            policy,
            tz,
            status=body.status,
            scheduled_date=body.scheduled_date,
            notes=body.notes,
        )
    except SlotUnavailableError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=e.reason) from e
    except StorageError as e:
        raise HTTPException(status_code=500, detail="Failed to update appointment") from e
    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found")
    return ApiMessageResponse(message="Appointment updated successfully", data=_to_public(appointment))
