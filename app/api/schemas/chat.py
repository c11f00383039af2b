from app.api.schemas.appointment import CamelModel


class ChatRequest(CamelModel):
    message: str | None = None


class ChatResponse(CamelModel):
    reply: str
    intent: str
    available_slots: list[str] | None
    date: str | None
