"""
Tests for the Gemini adapter and provider selection.

The genai client is swapped for a stub, so nothing leaves the process.

Run with: pytest tests/test_llm_service.py -v
"""
import asyncio
from types import SimpleNamespace

import httpx
import pytest
from google.genai import errors

from app.core.config import Settings
from app.core.errors import OracleServiceError
from app.services.llm_service import GeminiService, MockLLMService, build_llm_service


def _gemini(generate_content, timeout_seconds: float = 5.0) -> GeminiService:
    svc = GeminiService(api_key="test-key", model_id="gemini-2.5-pro", timeout_seconds=timeout_seconds)
    svc.client = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content)))
    return svc


def _api_error(code: int, status: str, message: str) -> errors.APIError:
    return errors.ClientError(code, {"error": {"code": code, "status": status, "message": message}})


# ============================================================================
# GeminiService.generate_response
# ============================================================================

class TestGeminiService:

    async def test_returns_text_and_sends_prompt(self):
        calls = []

        async def generate_content(**kwargs):
            calls.append(kwargs)
            return SimpleNamespace(text="We open at 9.")

        result = await _gemini(generate_content).generate_response("When do you open?")

        assert result == "We open at 9."
        assert calls[0]["model"] == "gemini-2.5-pro"
        assert calls[0]["contents"] == "When do you open?"

    async def test_missing_text_becomes_empty_string(self):
        async def generate_content(**kwargs):
            return SimpleNamespace(text=None)

        assert await _gemini(generate_content).generate_response("hi") == ""

    async def test_timeout(self):
        async def generate_content(**kwargs):
            await asyncio.sleep(1)
            return SimpleNamespace(text="too late")

        with pytest.raises(OracleServiceError) as exc_info:
            await _gemini(generate_content, timeout_seconds=0.01).generate_response("hi")

        assert exc_info.value.category == OracleServiceError.TIMEOUT

    @pytest.mark.parametrize(
        "code,status,message,category",
        [
            (429, "RESOURCE_EXHAUSTED", "You exceeded your current quota", OracleServiceError.QUOTA),
            (400, "INVALID_ARGUMENT", "API key expired. Please renew the API key.", OracleServiceError.API_KEY_EXPIRED),
            (403, "PERMISSION_DENIED", "Permission denied", OracleServiceError.UNKNOWN),
        ],
    )
    async def test_api_error_classified_from_message(self, code, status, message, category):
        async def generate_content(**kwargs):
            raise _api_error(code, status, message)

        with pytest.raises(OracleServiceError) as exc_info:
            await _gemini(generate_content).generate_response("hi")

        assert exc_info.value.category == category
        assert isinstance(exc_info.value.__cause__, errors.APIError)

    async def test_transport_failure_wrapped(self):
        async def generate_content(**kwargs):
            raise httpx.ConnectError("connection refused")

        with pytest.raises(OracleServiceError) as exc_info:
            await _gemini(generate_content).generate_response("hi")

        assert exc_info.value.category == OracleServiceError.UNKNOWN
        assert exc_info.value.user_message == "Failed to process message. Please try again."

    def test_missing_key(self):
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            GeminiService(api_key="", model_id="gemini-2.5-pro")


# ============================================================================
# build_llm_service
# ============================================================================

class TestBuildLLMService:

    def test_mock_provider(self):
        svc = build_llm_service(Settings(llm_provider="mock", gemini_api_key=""))
        assert isinstance(svc, MockLLMService)

    async def test_mock_reply_is_canned(self):
        assert "fake AI" in await MockLLMService().generate_response("anything")

    def test_gemini_provider(self):
        svc = build_llm_service(
            Settings(llm_provider="gemini", gemini_api_key="test-key", gemini_model="gemini-2.0-flash", llm_timeout_seconds=12)
        )
        assert isinstance(svc, GeminiService)
        assert svc.model_id == "gemini-2.0-flash"
        assert svc.timeout_seconds == 12

    def test_gemini_without_key(self):
        with pytest.raises(ValueError):
            build_llm_service(Settings(llm_provider="gemini", gemini_api_key=""))

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown LLM_PROVIDER"):
            build_llm_service(Settings(llm_provider="gemnii", gemini_api_key="test-key"))
