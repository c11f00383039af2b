import asyncio
import logging
from abc import ABC, abstractmethod

from google import genai
from google.genai import errors, types

from app.core.config import Settings
from app.core.errors import OracleServiceError

logger = logging.getLogger(__name__)


class LLMInterface(ABC):
    """
    Abstract base class for text-completion providers.
    The chat flow only ever sends a prompt and reads back text, so fakes
    in tests need nothing more than 'generate_response'.
    """

    @abstractmethod
    async def generate_response(self, prompt: str) -> str:
        """
        Takes a prompt and returns the model's text completion.
        Raises OracleServiceError when the provider call fails.
        """


class GeminiService(LLMInterface):
    def __init__(self, api_key: str, model_id: str, temperature: float = 0.7, timeout_seconds: float = 30.0):
        if not api_key:
            raise ValueError("GEMINI_API_KEY not found in environment variables")
        self.client = genai.Client(api_key=api_key)
        self.model_id = model_id
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds

    async def generate_response(self, prompt: str) -> str:
        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model_id,
                    contents=prompt,
                    config=types.GenerateContentConfig(temperature=self.temperature),
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise OracleServiceError(
                f"Gemini call timed out after {self.timeout_seconds}s", OracleServiceError.TIMEOUT
            ) from e
        except errors.APIError as e:
            raise OracleServiceError(f"Gemini API error {e.code}: {e.message}") from e
        except Exception as e:
            # Transport and credential failures (httpx, google-auth) land here
            raise OracleServiceError(f"Gemini call failed: {e}") from e
        return response.text or ""


class MockLLMService(LLMInterface):
    async def generate_response(self, prompt: str) -> str:
        return "I am a fake AI for testing. I don't use any API credits!"


def build_llm_service(settings: Settings) -> LLMInterface:
    if settings.llm_provider == "mock":
        logger.warning("LLM provider is 'mock'; chat replies are canned")
        return MockLLMService()
    if settings.llm_provider != "gemini":
        raise ValueError(f"Unknown LLM_PROVIDER '{settings.llm_provider}'; expected 'gemini' or 'mock'")
    return GeminiService(
        api_key=settings.gemini_api_key,
        model_id=settings.gemini_model,
        temperature=settings.llm_temperature,
        timeout_seconds=settings.llm_timeout_seconds,
    )
