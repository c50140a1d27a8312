"""
Unit tests for the LLM gateways.

The Groq gateway is exercised against ``httpx.MockTransport``; the Gemini
gateway against a patched google-generativeai module.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from app.core.config import Settings
from app.exceptions.llm import LLMConfigurationError, LLMProviderError
from app.services.llm_gateway import (
    ChatSessionCache,
    GeminiChatGateway,
    GroqGateway,
    build_attachment_manifest,
    build_llm_gateways,
    format_history,
)

HISTORY = [
    {"role": "system", "content": "Tu es un coach."},
    {"role": "user", "content": "Bonjour"},
    {"role": "assistant", "content": "Bonjour !"},
    {"role": "user", "content": "Peux-tu relire mon CV ?"},
]


def groq_gateway(handler, api_key="gsk_test") -> GroqGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GroqGateway(
        client=client,
        api_key=api_key,
        model="llama-3.3-70b-versatile",
        base_url="https://api.groq.test/openai/v1/",
    )


class TestFormatHistory:
    """Test cases for shaping history and attachments."""

    def test_system_messages_come_first(self):
        history = [
            {"role": "user", "content": "Salut"},
            {"role": "system", "content": "Persona"},
        ]

        assert format_history(history) == [
            {"role": "system", "content": "Persona"},
            {"role": "user", "content": "Salut"},
        ]

    def test_manifest_appended_to_last_user_turn(self):
        attachments = [{"name": "cv.pdf", "type": "application/pdf", "size": 1200}]

        messages = format_history(HISTORY, attachments)

        assert messages[-1]["content"] == (
            "Peux-tu relire mon CV ?\n\n[Pièces jointes]\n- cv.pdf (application/pdf)"
        )
        assert messages[1]["content"] == "Bonjour"

    def test_manifest_without_user_turn(self):
        messages = format_history([], [{"name": "photo.png"}])

        assert messages == [{"role": "user", "content": "[Pièces jointes]\n- photo.png (unknown type)"}]

    def test_empty_manifest(self):
        assert build_attachment_manifest([]) == ""


class TestGroqGateway:
    """Test cases for GroqGateway."""

    @pytest.mark.asyncio
    async def test_successful_completion(self):
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["auth"] = request.headers["Authorization"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "model": "llama-3.3-70b-versatile",
                    "choices": [{"message": {"role": "assistant", "content": "Bien sûr !"}}],
                    "usage": {"total_tokens": 57},
                },
            )

        gateway = groq_gateway(handler)

        response = await gateway.generate_response(HISTORY, [{"name": "cv.pdf", "type": "application/pdf"}])

        assert response.content == "Bien sûr !"
        assert response.model == "llama-3.3-70b-versatile"
        assert response.tokens_used == 57
        assert captured["url"] == "https://api.groq.test/openai/v1/chat/completions"
        assert captured["auth"] == "Bearer gsk_test"
        assert captured["body"]["temperature"] == 0.7
        assert captured["body"]["max_tokens"] == 1024
        assert captured["body"]["messages"][0] == {"role": "system", "content": "Tu es un coach."}
        assert "cv.pdf" in captured["body"]["messages"][-1]["content"]

    @pytest.mark.asyncio
    async def test_call_overrides(self):
        captured = {}

        def handler(request):
            captured.update(json.loads(request.content))
            return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

        response = await groq_gateway(handler).generate_response(HISTORY, temperature=0.0, max_tokens=30)

        assert captured["temperature"] == 0.0
        assert captured["max_tokens"] == 30
        assert response.tokens_used is None
        assert response.model == "llama-3.3-70b-versatile"

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        handler = MagicMock()

        with pytest.raises(LLMConfigurationError):
            await groq_gateway(handler, api_key=None).generate_response(HISTORY)

        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_http_error_status_is_sanitized(self):
        def handler(request):
            return httpx.Response(429, json={"error": {"message": "Rate limit reached for key gsk_secret"}})

        with pytest.raises(LLMProviderError) as exc_info:
            await groq_gateway(handler).generate_response(HISTORY)

        assert exc_info.value.status_code == 500
        assert "gsk_secret" not in exc_info.value.message
        assert exc_info.value.details == {"status_code": 429}

    @pytest.mark.asyncio
    async def test_network_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(LLMProviderError):
            await groq_gateway(handler).generate_response(HISTORY)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"choices": []},
            {"unexpected": True},
            {"choices": [{"message": {"content": "   "}}]},
        ],
    )
    async def test_unusable_response(self, body):
        with pytest.raises(LLMProviderError):
            await groq_gateway(lambda request: httpx.Response(200, json=body)).generate_response(HISTORY)

    def test_available_models(self):
        models = groq_gateway(MagicMock()).available_models()

        assert models[0].id == "llama-3.3-70b-versatile"
        assert all(model.provider == "groq" for model in models)


class TestChatSessionCache:
    """Test cases for ChatSessionCache."""

    def test_set_get_clear(self):
        cache = ChatSessionCache()
        session = object()

        cache.set("conv-1", session)

        assert cache.get("conv-1") is session
        assert "conv-1" in cache
        assert cache.clear("conv-1") is True
        assert cache.clear("conv-1") is False
        assert cache.get("conv-1") is None

    def test_clear_all(self):
        cache = ChatSessionCache()
        cache.set("a", 1)
        cache.set("b", 2)

        cache.clear_all()

        assert len(cache) == 0


class TestGeminiChatGateway:
    """Test cases for GeminiChatGateway."""

    def make_chat(self, text="Réponse Gemini", tokens=33, history=()):
        chat = MagicMock()
        chat.history = list(history)
        chat.send_message_async = AsyncMock(
            return_value=SimpleNamespace(text=text, usage_metadata=SimpleNamespace(total_token_count=tokens))
        )
        return chat

    @pytest.mark.asyncio
    async def test_builds_session_from_history_and_caches_it(self):
        sessions = ChatSessionCache()
        chat = self.make_chat()
        gateway = GeminiChatGateway(api_key="gemini-key", model="gemini-1.5-flash", sessions=sessions)

        with patch("app.services.llm_gateway.genai") as genai:
            genai.GenerativeModel.return_value.start_chat.return_value = chat
            response = await gateway.generate_response(HISTORY, conversation_id="conv-1")

        assert response.content == "Réponse Gemini"
        assert response.tokens_used == 33
        assert response.model == "gemini-1.5-flash"
        assert genai.GenerativeModel.call_args.kwargs["system_instruction"] == "Tu es un coach."
        history = genai.GenerativeModel.return_value.start_chat.call_args.kwargs["history"]
        assert history == [
            {"role": "user", "parts": ["Bonjour"]},
            {"role": "model", "parts": ["Bonjour !"]},
        ]
        chat.send_message_async.assert_awaited_once_with("Peux-tu relire mon CV ?")
        assert sessions.get("conv-1") is chat

    @pytest.mark.asyncio
    async def test_reuses_cached_session(self):
        sessions = ChatSessionCache()
        chat = self.make_chat(history=["Bonjour", "Bonjour !"])
        sessions.set("conv-1", chat)
        gateway = GeminiChatGateway(api_key="gemini-key", model="gemini-1.5-flash", sessions=sessions)

        with patch("app.services.llm_gateway.genai") as genai:
            await gateway.generate_response(HISTORY, conversation_id="conv-1")

        genai.GenerativeModel.assert_not_called()
        chat.send_message_async.assert_awaited_once_with("Peux-tu relire mon CV ?")

    @pytest.mark.asyncio
    async def test_rebuilds_session_missing_turns(self):
        sessions = ChatSessionCache()
        stale = self.make_chat(history=[])
        sessions.set("conv-1", stale)
        fresh = self.make_chat()
        gateway = GeminiChatGateway(api_key="gemini-key", model="gemini-1.5-flash", sessions=sessions)

        with patch("app.services.llm_gateway.genai") as genai:
            genai.GenerativeModel.return_value.start_chat.return_value = fresh
            await gateway.generate_response(HISTORY, conversation_id="conv-1")

        stale.send_message_async.assert_not_awaited()
        assert len(genai.GenerativeModel.return_value.start_chat.call_args.kwargs["history"]) == 2
        fresh.send_message_async.assert_awaited_once_with("Peux-tu relire mon CV ?")
        assert sessions.get("conv-1") is fresh

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        gateway = GeminiChatGateway(api_key=None, model="gemini-1.5-flash", sessions=ChatSessionCache())

        with pytest.raises(LLMConfigurationError):
            await gateway.generate_response(HISTORY)

    @pytest.mark.asyncio
    async def test_provider_failure(self):
        chat = MagicMock()
        chat.send_message_async = AsyncMock(side_effect=RuntimeError("quota exceeded"))
        gateway = GeminiChatGateway(api_key="gemini-key", model="gemini-1.5-flash", sessions=ChatSessionCache())

        with patch("app.services.llm_gateway.genai") as genai:
            genai.GenerativeModel.return_value.start_chat.return_value = chat
            with pytest.raises(LLMProviderError):
                await gateway.generate_response(HISTORY, conversation_id="conv-1")

    @pytest.mark.asyncio
    async def test_history_must_end_with_user_turn(self):
        gateway = GeminiChatGateway(api_key="gemini-key", model="gemini-1.5-flash", sessions=ChatSessionCache())

        with pytest.raises(LLMProviderError):
            await gateway.generate_response(HISTORY[:3])


def test_build_llm_gateways_uses_settings():
    config = Settings(groq_api_key="gsk_x", gemini_api_key=None, groq_model="llama-3.1-8b-instant")
    client = httpx.AsyncClient()

    gateways = build_llm_gateways(client, ChatSessionCache(), config)

    assert set(gateways) == {"groq", "gemini"}
    assert gateways["groq"].client is client
    assert gateways["groq"].model == "llama-3.1-8b-instant"
    assert gateways["gemini"].api_key is None
