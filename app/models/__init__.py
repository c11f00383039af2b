from app.models.appointment import (
    OCCUPYING_STATUSES,
    Appointment,
    AppointmentCreate,
    AppointmentStatus,
)

__all__ = [
    "OCCUPYING_STATUSES",
    "Appointment",
    "AppointmentCreate",
    "AppointmentStatus",
]
