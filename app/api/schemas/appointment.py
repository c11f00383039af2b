from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from app.models.appointment import AppointmentStatus

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: T


class ApiMessageResponse(ApiResponse[T], Generic[T]):
    message: str


class SlotInfo(CamelModel):
    hour: int
    time: str  # HH:00
    display: str  # H:MM AM/PM


class AvailableSlotsResponse(CamelModel):
    date: str  # YYYY-MM-DD
    day_of_week: str
    business_hours: str | None = None
    available_slots: list[SlotInfo]
    total_slots: int | None = None
    booked_slots: int | None = None
    message: str | None = None


class BookAppointmentRequest(CamelModel):
    customer_id: int | None = None
    vehicle_id: int | None = None
    service_type: str | None = None
    preferred_date: str | None = None  # YYYY-MM-DD
    preferred_time: str | None = None  # HH:MM
    description: str | None = None


class AppointmentPublic(CamelModel):
    id: int
    customer_id: int
    vehicle_id: int
    service_type: str
    date: str
    time: str
    status: AppointmentStatus
    notes: str | None = None
    created_at: datetime


class UpdateAppointmentRequest(CamelModel):
    status: AppointmentStatus | None = None
    scheduled_date: datetime | None = None
    notes: str | None = None
