import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_chat_service
from app.api.schemas.appointment import ApiResponse
from app.api.schemas.chat import ChatRequest, ChatResponse
from app.core.errors import OracleServiceError, StorageError
from app.services.chat_service import ChatService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/chatbot", tags=["chatbot"])


def _require_message(body: ChatRequest | None = None) -> str:
    if body is None or not body.message or not body.message.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message is required")
    return body.message


@router.post("/message", response_model=ApiResponse[ChatResponse])
async def chat_message(
    message: str = Depends(_require_message),
    chat: ChatService = Depends(get_chat_service),
) -> ApiResponse[ChatResponse]:
    """Answer a customer's chat message, including "what times are open on ..." questions."""
    try:
        result = await chat.handle_appointment_query(message)
    except OracleServiceError as e:
        logger.exception("Chatbot oracle failure (%s): %s", e.category, e)
        raise HTTPException(status_code=500, detail=e.user_message) from e
    except StorageError as e:
        logger.exception("Chatbot booking lookup failed: %s", e)
        raise HTTPException(
            status_code=500, detail=OracleServiceError.USER_MESSAGES[OracleServiceError.UNKNOWN]
        ) from e
    return ApiResponse(
        data=ChatResponse(
            reply=result.reply,
            intent=result.intent,
            available_slots=result.available_slots,
            date=result.date,
        )
    )
