import logging
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.deps import get_booking_fetcher, get_business_hours, get_business_timezone
from app.api.schemas.appointment import ApiResponse, AvailableSlotsResponse, SlotInfo
from app.core.errors import InvalidDateError, StorageError
from app.services.chat_service import BookingFetcher
from app.services.slot_service import BusinessHoursPolicy, compute_availability, parse_calendar_date

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/appointments", tags=["slots"])


@router.get(
    "/available-slots",
    response_model=ApiResponse[AvailableSlotsResponse],
    response_model_exclude_none=True,
)
async def available_slots(
    date_param: str | None = Query(None, alias="date"),
    fetch_bookings: BookingFetcher = Depends(get_booking_fetcher),
    policy: BusinessHoursPolicy = Depends(get_business_hours),
    tz: ZoneInfo = Depends(get_business_timezone),
) -> ApiResponse[AvailableSlotsResponse]:
    """Open hourly slots for a date (YYYY-MM-DD) in the business timezone."""
    if not date_param or not date_param.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Date is required")
    try:
        d = parse_calendar_date(date_param, tz)
    except InvalidDateError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid date format. Use YYYY-MM-DD"
        )

    try:
        bookings = await fetch_bookings(d)
    except StorageError as e:
        logger.exception("Available slots lookup failed: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch available slots") from e

    result = compute_availability(d, bookings, policy, tz)
    if result.is_closed:
        return ApiResponse(
            data=AvailableSlotsResponse(
                date=result.date.isoformat(),
                day_of_week=result.day_name,
                available_slots=[],
                message=f"Service station is closed on {result.day_name}s",
            )
        )
    return ApiResponse(
        data=AvailableSlotsResponse(
            date=result.date.isoformat(),
            day_of_week=result.day_name,
            business_hours=result.business_hours_label,
            available_slots=[SlotInfo(hour=s.hour, time=s.time, display=s.label) for s in result.slots],
            total_slots=result.total_slot_count,
            booked_slots=result.booked_slot_count,
        )
    )
