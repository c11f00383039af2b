"""Chat assistant: free text -> intent -> slot availability -> natural-language reply."""
import json
import logging
import re
from collections.abc import Awaitable, Callable
from datetime import date, timedelta, tzinfo
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.core.errors import InvalidDateError, OracleParseError
from app.services.llm_service import LLMInterface
from app.services.slot_service import (
    DEFAULT_POLICY,
    AvailabilityResult,
    BookingRecord,
    BusinessHoursPolicy,
    compute_availability,
    parse_calendar_date,
)

logger = logging.getLogger(__name__)

Intent = Literal["appointment_query", "greeting", "general_question", "other"]
BookingFetcher = Callable[[date], Awaitable[list[BookingRecord]]]

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

INTENT_PROMPT = """
You are an AI assistant for an automobile service center. Your job is to understand customer messages about appointments.

Analyze the following message and extract:
1. The date they want an appointment (in YYYY-MM-DD format)
2. The intent (appointment_query, greeting, general_question, other)

Current date: {current_date}

Customer message: "{message}"

Respond in JSON format:
{{
  "intent": "appointment_query" or "greeting" or "general_question" or "other",
  "date": "YYYY-MM-DD" or null,
  "friendlyDate": "the date in friendly format" or null
}}

Examples:
- "I need an appointment for tomorrow" -> {{"intent": "appointment_query", "date": "{tomorrow}", "friendlyDate": "tomorrow"}}
- "Hello" -> {{"intent": "greeting", "date": null, "friendlyDate": null}}
- "What services do you offer?" -> {{"intent": "general_question", "date": null, "friendlyDate": null}}

Return ONLY the JSON object, no other text.
"""

SLOTS_PROMPT = """
You are a friendly assistant at {site_name} automobile service center.

The customer asked about appointments for {friendly_date} ({date}, a {day_name}).

{availability}

Generate a friendly, natural response that:
1. Confirms the date they asked about
2. Lists the available time slots, or explains that none are open
3. Asks them to choose a time slot or another date
4. Is warm and professional

Keep it concise and conversational.
"""

GENERAL_PROMPT = """
You are a helpful assistant at {site_name} automobile service center.

Customer message: "{message}"
Intent: {intent}

Generate a friendly, helpful response. Keep it concise.

If it's a greeting, greet them back and mention you can help with appointments.
If it's a general question about services, mention common services (oil change, brake repair, tire service, engine diagnostics) and ask if they'd like to schedule an appointment.
For other queries, be helpful and guide them toward booking an appointment.
"""


class ParsedIntent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    intent: Intent = "other"
    date: str | None = None
    friendly_date: str | None = Field(
        default=None, validation_alias="friendlyDate", serialization_alias="friendlyDate"
    )

    @field_validator("friendly_date", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        return v or None

    @classmethod
    def fallback(cls) -> "ParsedIntent":
        return cls(intent="other", date=None, friendly_date=None)


class ChatReply(BaseModel):
    reply: str
    intent: str
    available_slots: list[str] | None = None
    date: str | None = None


def _decode_intent(raw: str) -> ParsedIntent:
    match = _JSON_OBJECT_RE.search(raw or "")
    if not match:
        raise OracleParseError("no JSON object in model output")
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise OracleParseError(f"malformed JSON: {e}") from e
    if not isinstance(payload, dict):
        raise OracleParseError("model output is not a JSON object")
    if "friendlyDate" not in payload and "userFriendlyDate" in payload:
        payload["friendlyDate"] = payload.pop("userFriendlyDate")
    try:
        parsed = ParsedIntent.model_validate(payload)
    except ValidationError as e:
        raise OracleParseError(f"unexpected intent shape: {e.error_count()} error(s)") from e
    if parsed.date is not None:
        try:
            parsed.date = parse_calendar_date(parsed.date).isoformat()
        except InvalidDateError as e:
            raise OracleParseError(f"date {parsed.date!r} is not a calendar date") from e
    return parsed


def parse_intent_text(raw: str) -> ParsedIntent:
    """Read the intent extractor's output; anything unusable becomes intent 'other'."""
    try:
        return _decode_intent(raw)
    except OracleParseError as e:
        logger.warning("Intent extraction output unusable (%s); falling back to 'other'", e)
        return ParsedIntent.fallback()


class IntentExtractor:
    def __init__(self, llm: LLMInterface):
        self.llm = llm

    async def extract_intent(self, message: str, today: date) -> ParsedIntent:
        tomorrow = today + timedelta(days=1)
        prompt = INTENT_PROMPT.format(
            current_date=today.isoformat(), tomorrow=tomorrow.isoformat(), message=message
        )
        raw = await self.llm.generate_response(prompt)
        return parse_intent_text(raw)


class ReplyComposer:
    def __init__(self, llm: LLMInterface, site_name: str = "WheelsDoc Autocare"):
        self.llm = llm
        self.site_name = site_name

    async def compose_slots_reply(self, result: AvailabilityResult, friendly_date: str | None) -> str:
        if result.is_closed:
            availability = f"The service station is closed on {result.day_name}s, so there are no time slots."
        elif result.slots:
            availability = (
                f"Business hours: {result.business_hours_label}.\n"
                f"Available time slots: {', '.join(result.slot_labels)}"
            )
        else:
            availability = "Unfortunately, there are no available slots on that day."
        prompt = SLOTS_PROMPT.format(
            site_name=self.site_name,
            friendly_date=friendly_date or result.date.isoformat(),
            date=result.date.isoformat(),
            day_name=result.day_name,
            availability=availability,
        )
        return await self.llm.generate_response(prompt)

    async def compose_general_reply(self, message: str, intent: str) -> str:
        prompt = GENERAL_PROMPT.format(site_name=self.site_name, message=message, intent=intent)
        return await self.llm.generate_response(prompt)


class ChatService:
    """Bridges chat messages to the slot engine.

    Steps run strictly in sequence (extract, fetch, compose) and nothing is retried:
    OracleServiceError and StorageError propagate to the HTTP layer.
    """

    def __init__(
        self,
        llm: LLMInterface,
        fetch_bookings: BookingFetcher,
        today: Callable[[], date],
        policy: BusinessHoursPolicy = DEFAULT_POLICY,
        tz: tzinfo | None = None,
        site_name: str = "WheelsDoc Autocare",
    ):
        self.extractor = IntentExtractor(llm)
        self.composer = ReplyComposer(llm, site_name=site_name)
        self.fetch_bookings = fetch_bookings
        self.today = today
        self.policy = policy
        self.tz = tz

    async def handle_appointment_query(self, message: str) -> ChatReply:
        parsed = await self.extractor.extract_intent(message, self.today())
        logger.debug("Chat intent=%s date=%s", parsed.intent, parsed.date)

        if parsed.intent == "appointment_query" and parsed.date:
            d = date.fromisoformat(parsed.date)
            bookings = await self.fetch_bookings(d)
            result = compute_availability(d, bookings, self.policy, self.tz)
            reply = await self.composer.compose_slots_reply(result, parsed.friendly_date)
            return ChatReply(
                reply=reply,
                intent=parsed.intent,
                available_slots=result.slot_labels,
                date=d.isoformat(),
            )

        reply = await self.composer.compose_general_reply(message, parsed.intent)
        return ChatReply(reply=reply, intent=parsed.intent, available_slots=None, date=None)
