from datetime import date, datetime
from functools import partial
from zoneinfo import ZoneInfo

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db import get_session
from app.core.errors import OracleServiceError
from app.services.appointment_service import fetch_bookings_for_date
from app.services.chat_service import BookingFetcher, ChatService
from app.services.llm_service import LLMInterface
from app.services.slot_service import BusinessHoursPolicy, business_timezone


def get_business_hours() -> BusinessHoursPolicy:
    return BusinessHoursPolicy.from_settings(settings)


def get_business_timezone() -> ZoneInfo:
    return business_timezone(settings)


def get_booking_fetcher(session: AsyncSession = Depends(get_session)) -> BookingFetcher:
    """Booking lookup bound to this request's session."""
    return partial(fetch_bookings_for_date, session)


def get_llm(request: Request) -> LLMInterface:
    llm: LLMInterface | None = getattr(request.app.state, "llm", None)
    if llm is None:
        raise OracleServiceError("LLM provider is not configured (set GEMINI_API_KEY or LLM_PROVIDER=mock)")
    return llm


def get_chat_service(
    llm: LLMInterface = Depends(get_llm),
    fetch_bookings: BookingFetcher = Depends(get_booking_fetcher),
    policy: BusinessHoursPolicy = Depends(get_business_hours),
    tz: ZoneInfo = Depends(get_business_timezone),
) -> ChatService:
    def today() -> date:
        return datetime.now(tz).date()

    return ChatService(
        llm=llm,
        fetch_bookings=fetch_bookings,
        today=today,
        policy=policy,
        tz=tz,
        site_name=settings.site_name,
    )
