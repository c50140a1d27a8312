"""LLM gateways translating stored conversation history into provider calls.

Two adapters share one contract, ``generate_response(history, attachments)``:

* ``GroqGateway`` posts to an OpenAI-compatible chat-completions endpoint
  through an injected ``httpx.AsyncClient``. This is the primary path.
* ``GeminiChatGateway`` drives google-generativeai chat sessions and keeps
  them in a ``ChatSessionCache`` keyed by conversation id.

Neither gateway retries. Missing credentials raise ``LLMConfigurationError``
and any provider failure raises ``LLMProviderError``.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

import google.generativeai as genai
import httpx

from app.core.config import Settings, settings
from app.exceptions.llm import LLMConfigurationError, LLMProviderError
from app.schemas.llm import LLMModelInfo, LLMResponse


logger = logging.getLogger(__name__)

ATTACHMENT_MANIFEST_HEADER = "[Pièces jointes]"

GROQ_MODELS = [
    {
        "id": "llama-3.3-70b-versatile",
        "name": "Llama 3.3 70B",
        "description": "Most capable, best for complex tasks",
    },
    {
        "id": "llama-3.1-8b-instant",
        "name": "Llama 3.1 8B",
        "description": "Very fast, good for simple answers",
    },
    {
        "id": "mixtral-8x7b-32768",
        "name": "Mixtral 8x7B",
        "description": "Balanced speed and quality",
    },
    {
        "id": "gemma2-9b-it",
        "name": "Gemma 2 9B",
        "description": "General purpose model from Google",
    },
]


def build_attachment_manifest(attachments: Iterable[Mapping[str, Any]]) -> str:
    """Describe attachments by name and MIME type. No file content is included."""
    lines = []
    for attachment in attachments:
        name = attachment.get("name") or "file"
        mime_type = attachment.get("type") or "unknown type"
        lines.append(f"- {name} ({mime_type})")
    if not lines:
        return ""
    return "\n".join([ATTACHMENT_MANIFEST_HEADER, *lines])


def format_history(
    history: Iterable[Mapping[str, Any]],
    attachments: Iterable[Mapping[str, Any]] | None = None,
) -> list[dict[str, str]]:
    """Shape stored messages as ``[{role, content}]`` with system turns first.

    The attachment manifest, if any, is appended to the last user turn.
    """
    system = []
    dialogue = []
    for item in history:
        message = {"role": str(item["role"]), "content": item.get("content") or ""}
        (system if message["role"] == "system" else dialogue).append(message)

    manifest = build_attachment_manifest(attachments or [])
    if manifest:
        for message in reversed(dialogue):
            if message["role"] == "user":
                message["content"] = f"{message['content']}\n\n{manifest}".strip()
                break
        else:
            dialogue.append({"role": "user", "content": manifest})

    return system + dialogue


class BaseLLMGateway:
    """Contract shared by every provider adapter."""

    name = "base"
    uses_chat_sessions = False

    def __init__(self, model: str, temperature: float = 0.7, max_tokens: int = 1024):
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate_response(
        self,
        history: list[Mapping[str, Any]],
        attachments: list[Mapping[str, Any]] | None = None,
        *,
        conversation_id: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        raise NotImplementedError

    def available_models(self) -> list[LLMModelInfo]:
        return [
            LLMModelInfo(id=self.model, name=self.model, description="Configured model", provider=self.name)
        ]


class GroqGateway(BaseLLMGateway):
    """OpenAI-compatible chat-completions gateway."""

    name = "groq"

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str | None,
        model: str,
        base_url: str,
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ):
        super().__init__(model, temperature, max_tokens)
        self.client = client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    async def generate_response(
        self,
        history,
        attachments=None,
        *,
        conversation_id=None,
        temperature=None,
        max_tokens=None,
    ) -> LLMResponse:
        if not self.api_key:
            raise LLMConfigurationError("Groq API key not configured")

        payload = {
            "model": self.model,
            "messages": format_history(history, attachments),
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.max_tokens,
        }

        try:
            response = await self.client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as e:
            logger.error(f"Groq request failed: {str(e)}")
            raise LLMProviderError("LLM provider request failed") from e

        if not response.is_success:
            logger.error(f"Groq API error {response.status_code}: {self._error_detail(response)}")
            raise LLMProviderError(
                "LLM provider returned an error",
                details={"status_code": response.status_code},
            )

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Malformed Groq response: {str(e)}")
            raise LLMProviderError("Malformed response from LLM provider") from e

        if not content or not content.strip():
            raise LLMProviderError("Empty response from LLM provider")

        usage = data.get("usage") or {}
        return LLMResponse(
            content=content,
            model=data.get("model") or self.model,
            tokens_used=usage.get("total_tokens"),
        )

    def available_models(self) -> list[LLMModelInfo]:
        return [LLMModelInfo(provider=self.name, **model) for model in GROQ_MODELS]

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            return str(error.get("message") or "Unknown error")
        return str(error or "Unknown error")


class ChatSessionCache:
    """In-memory chat session handles keyed by conversation id.

    Purely an optimization: losing an entry only means the next call rebuilds
    the session from stored history.
    """

    def __init__(self):
        self._sessions: dict[str, Any] = {}

    def get(self, conversation_id: str) -> Any | None:
        return self._sessions.get(str(conversation_id))

    def set(self, conversation_id: str, session: Any) -> None:
        self._sessions[str(conversation_id)] = session

    def clear(self, conversation_id: str) -> bool:
        return self._sessions.pop(str(conversation_id), None) is not None

    def clear_all(self) -> None:
        self._sessions.clear()

    def __contains__(self, conversation_id) -> bool:
        return str(conversation_id) in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)


class GeminiChatGateway(BaseLLMGateway):
    """Google Gemini gateway reusing chat sessions per conversation."""

    name = "gemini"
    uses_chat_sessions = True

    def __init__(
        self,
        api_key: str | None,
        model: str,
        sessions: ChatSessionCache,
        temperature: float = 0.7,
        max_tokens: int = 1024,
    ):
        super().__init__(model, temperature, max_tokens)
        self.api_key = api_key
        self.sessions = sessions

    def _build_model(self, system_instruction: str | None, temperature: float, max_tokens: int):
        try:
            genai.configure(api_key=self.api_key)
            return genai.GenerativeModel(
                model_name=self.model,
                system_instruction=system_instruction or None,
                generation_config=genai.types.GenerationConfig(
                    candidate_count=1,
                    max_output_tokens=max_tokens,
                    temperature=temperature,
                ),
            )
        except Exception as e:
            logger.error(f"Failed to initialize Gemini client: {str(e)}")
            raise LLMConfigurationError("Failed to initialize Gemini client") from e

    async def generate_response(
        self,
        history,
        attachments=None,
        *,
        conversation_id=None,
        temperature=None,
        max_tokens=None,
    ) -> LLMResponse:
        if not self.api_key:
            raise LLMConfigurationError("Gemini API key not configured")

        messages = format_history(history, attachments)
        system_instruction = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        turns = [m for m in messages if m["role"] != "system"]
        if not turns or turns[-1]["role"] != "user":
            raise LLMProviderError("Conversation history must end with a user message")

        chat = self.sessions.get(conversation_id) if conversation_id else None
        if chat is not None and len(chat.history) != len(turns) - 1:
            # Turns were added or removed outside this session
            chat = None
        if chat is None:
            model = self._build_model(
                system_instruction,
                self.temperature if temperature is None else temperature,
                max_tokens or self.max_tokens,
            )
            chat = model.start_chat(
                history=[
                    {"role": "model" if turn["role"] == "assistant" else "user", "parts": [turn["content"]]}
                    for turn in turns[:-1]
                ]
            )
            if conversation_id:
                self.sessions.set(conversation_id, chat)

        try:
            response = await chat.send_message_async(turns[-1]["content"])
            text = response.text
        except Exception as e:
            logger.error(f"Gemini API call failed: {str(e)}")
            raise LLMProviderError("LLM provider request failed") from e

        if not text or not text.strip():
            raise LLMProviderError("Empty response from LLM provider")

        usage = getattr(response, "usage_metadata", None)
        return LLMResponse(
            content=text,
            model=self.model,
            tokens_used=getattr(usage, "total_token_count", None),
        )


def build_llm_gateways(
    http_client: httpx.AsyncClient,
    chat_sessions: ChatSessionCache,
    config: Settings = settings,
) -> dict[str, BaseLLMGateway]:
    """Construct every gateway from configuration and process-wide clients."""
    return {
        GroqGateway.name: GroqGateway(
            client=http_client,
            api_key=config.groq_api_key,
            model=config.groq_model,
            base_url=config.groq_api_url,
            temperature=config.llm_temperature,
            max_tokens=config.llm_max_tokens,
        ),
        GeminiChatGateway.name: GeminiChatGateway(
            api_key=config.gemini_api_key,
            model=config.gemini_model,
            sessions=chat_sessions,
            temperature=config.llm_temperature,
            max_tokens=config.llm_max_tokens,
        ),
    }
