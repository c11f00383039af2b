import logging
from datetime import date, datetime, time, tzinfo

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import SlotUnavailableError, StorageError
from app.models.appointment import Appointment, AppointmentCreate, AppointmentStatus
from app.services.slot_service import (
    BookingRecord,
    BusinessHoursPolicy,
    compute_availability,
    is_slot_open,
)

logger = logging.getLogger(__name__)


def _to_naive_local(dt: datetime, tz: tzinfo | None) -> datetime:
    """Convert to naive business-local time for TIMESTAMP WITHOUT TIME ZONE columns."""
    if dt.tzinfo is not None:
        return dt.astimezone(tz).replace(tzinfo=None) if tz is not None else dt.replace(tzinfo=None)
    return dt


async def fetch_bookings_for_date(
    session: AsyncSession, d: date, exclude_id: int | None = None
) -> list[BookingRecord]:
    """Bookings whose scheduled time falls in [startOfDay, endOfDay], any status.

    exclude_id leaves one appointment out, so a reschedule does not collide with itself.
    """
    start = datetime.combine(d, time.min)
    end = datetime.combine(d, time.max)
    q = select(Appointment.scheduled_date, Appointment.status).where(
        Appointment.scheduled_date >= start,
        Appointment.scheduled_date <= end,
    )
    if exclude_id is not None:
        q = q.where(Appointment.id != exclude_id)
    try:
        result = await session.execute(q)
    except SQLAlchemyError as e:
        logger.exception("Booking fetch failed for %s", d)
        raise StorageError(f"Failed to fetch bookings for {d.isoformat()}") from e
    return [BookingRecord(scheduled_date=row[0], status=row[1]) for row in result.all()]


async def _ensure_bookable(
    session: AsyncSession,
    scheduled: datetime,
    policy: BusinessHoursPolicy,
    exclude_id: int | None = None,
) -> None:
    if scheduled.minute or scheduled.second or scheduled.microsecond:
        raise SlotUnavailableError("Appointments must start on the hour")
    bookings = await fetch_bookings_for_date(session, scheduled.date(), exclude_id=exclude_id)
    availability = compute_availability(scheduled.date(), bookings, policy)
    if availability.is_closed:
        raise SlotUnavailableError(f"Service station is closed on {availability.day_name}s")
    if not is_slot_open(availability, scheduled.hour):
        raise SlotUnavailableError("Selected time slot is not available")


async def create_appointment(
    session: AsyncSession,
    data: AppointmentCreate,
    policy: BusinessHoursPolicy,
    tz: tzinfo | None = None,
) -> Appointment:
    """Book an hourly slot. Raises SlotUnavailableError when the hour cannot be booked."""
    scheduled = _to_naive_local(data.scheduled_date, tz)
    await _ensure_bookable(session, scheduled, policy)

    appointment = Appointment(
        customer_id=data.customer_id,
        vehicle_id=data.vehicle_id,
        service_type=data.service_type,
        scheduled_date=scheduled,
        status=AppointmentStatus.scheduled,
        notes=data.notes,
    )
    try:
        session.add(appointment)
        await session.flush()
        await session.refresh(appointment)
    except SQLAlchemyError as e:
        logger.exception("Appointment insert failed")
        raise StorageError("Failed to create appointment") from e
    logger.info("Booked appointment %s at %s", appointment.id, scheduled.isoformat())
    return appointment


async def list_appointments_for_customer(session: AsyncSession, customer_id: int) -> list[Appointment]:
    q = (
        select(Appointment)
        .where(Appointment.customer_id == customer_id)
        .order_by(Appointment.scheduled_date.desc())
    )
    try:
        result = await session.execute(q)
    except SQLAlchemyError as e:
        logger.exception("Listing appointments failed for customer %s", customer_id)
        raise StorageError("Failed to fetch appointments") from e
    return list(result.scalars().all())


async def cancel_appointment(session: AsyncSession, appointment_id: int) -> Appointment | None:
    """Mark an appointment cancelled, which frees its slot. Returns None if it does not exist."""
    try:
        appointment = await session.get(Appointment, appointment_id)
        if appointment is None:
            return None
        appointment.status = AppointmentStatus.cancelled
        await session.flush()
        await session.refresh(appointment)
    except SQLAlchemyError as e:
        logger.exception("Cancelling appointment %s failed", appointment_id)
        raise StorageError("Failed to cancel appointment") from e
    return appointment


async def update_appointment(
    session: AsyncSession,
    appointment_id: int,
    policy: BusinessHoursPolicy,
    tz: tzinfo | None = None,
    status: AppointmentStatus | None = None,
    scheduled_date: datetime | None = None,
    notes: str | None = None,
) -> Appointment | None:
    """Change status, time or notes. Returns None if the appointment does not exist.

    Moving to a new hour, or re-activating a completed/cancelled booking, goes through
    the same availability check as a new booking (the appointment's own row excluded).
    """
    try:
        appointment = await session.get(Appointment, appointment_id)
    except SQLAlchemyError as e:
        logger.exception("Loading appointment %s failed", appointment_id)
        raise StorageError("Failed to update appointment") from e
    if appointment is None:
        return None

    new_status = status or appointment.status
    new_slot = _to_naive_local(scheduled_date, tz) if scheduled_date is not None else appointment.scheduled_date
    moved = new_slot != appointment.scheduled_date
    reactivated = not appointment.status.occupies_slot
    if new_status.occupies_slot and (moved or reactivated):
        await _ensure_bookable(session, new_slot, policy, exclude_id=appointment_id)

    appointment.status = new_status
    appointment.scheduled_date = new_slot
    if notes is not None:
        appointment.notes = notes
    try:
        await session.flush()
        await session.refresh(appointment)
    except SQLAlchemyError as e:
        logger.exception("Updating appointment %s failed", appointment_id)
        raise StorageError("Failed to update appointment") from e
    logger.info("Updated appointment %s: status=%s at %s", appointment_id, new_status.value, new_slot.isoformat())
    return appointment
