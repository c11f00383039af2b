"""
Pytest configuration and fixtures.

No database or language model is touched: booking lookups and the LLM are
replaced through FastAPI dependency overrides.
"""
import os
from datetime import date, datetime

import pytest
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("LLM_PROVIDER", "mock")
os.environ.setdefault("BUSINESS_TIMEZONE", "UTC")

from app.core.errors import OracleServiceError  # noqa: E402
from app.models.appointment import AppointmentStatus  # noqa: E402
from app.services.llm_service import LLMInterface  # noqa: E402
from app.services.slot_service import BookingRecord  # noqa: E402

# Calendar anchors (November 2025)
MONDAY = date(2025, 11, 3)
WEDNESDAY = date(2025, 11, 5)
SATURDAY = date(2025, 11, 8)
SUNDAY = date(2025, 11, 9)


def booking(d: date, hour: int, status: str = "confirmed", minute: int = 0) -> BookingRecord:
    return BookingRecord(
        scheduled_date=datetime(d.year, d.month, d.day, hour, minute),
        status=AppointmentStatus(status),
    )


class ScriptedLLM(LLMInterface):
    """Returns queued responses in order and records every prompt it was sent."""

    def __init__(self, *responses: str | Exception):
        self.responses = list(responses)
        self.prompts: list[str] = []

    async def generate_response(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            raise AssertionError("ScriptedLLM ran out of responses")
        nxt = self.responses.pop(0)
        if isinstance(nxt, Exception):
            raise nxt
        return nxt


class FakeBookingStore:
    def __init__(self, bookings: list[BookingRecord] | None = None):
        self.bookings = list(bookings or [])
        self.requested: list[date] = []

    async def __call__(self, d: date) -> list[BookingRecord]:
        self.requested.append(d)
        return [b for b in self.bookings if b.scheduled_date.date() == d]


@pytest.fixture
def booking_store():
    return FakeBookingStore()


@pytest.fixture
def llm():
    return ScriptedLLM()


@pytest.fixture
def quota_error():
    return OracleServiceError("429 RESOURCE_EXHAUSTED: You exceeded your current quota")


@pytest.fixture(scope="function")
async def client(booking_store, llm):
    """
    FastAPI AsyncClient with the booking lookup and the LLM overridden.
    """
    from app.api.deps import get_booking_fetcher, get_llm
    from app.main import app

    app.dependency_overrides[get_booking_fetcher] = lambda: booking_store
    app.dependency_overrides[get_llm] = lambda: llm

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
