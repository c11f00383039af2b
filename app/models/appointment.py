from datetime import UTC, datetime
from enum import Enum

from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class AppointmentStatus(str, Enum):
    scheduled = "scheduled"
    confirmed = "confirmed"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"

    @property
    def occupies_slot(self) -> bool:
        return self in OCCUPYING_STATUSES


# Statuses that block their hour; completed and cancelled bookings free it
OCCUPYING_STATUSES = frozenset(
    {AppointmentStatus.scheduled, AppointmentStatus.confirmed, AppointmentStatus.in_progress}
)


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    id: int | None = Field(default=None, primary_key=True)
    customer_id: int = Field(index=True)
    vehicle_id: int
    service_type: str
    # Naive, in the business timezone
    scheduled_date: datetime = Field(index=True)
    status: AppointmentStatus = Field(default=AppointmentStatus.scheduled, index=True)
    notes: str | None = None
    created_at: datetime = Field(default_factory=_utc_naive_now)


class AppointmentCreate(SQLModel):
    customer_id: int
    vehicle_id: int
    service_type: str
    scheduled_date: datetime
    notes: str | None = None
