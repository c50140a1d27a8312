"""
Unit tests for MessageService.

The LLM gateways are replaced by ``FakeLLMGateway`` doubles so the tests can
inspect the history sent to the provider.
"""

import uuid
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from sqlalchemy import select

from app.domains.message.service import MessageService
from app.exceptions.base import NotFoundError, ValidationError
from app.exceptions.llm import LLMProviderError
from app.services.llm_gateway import ChatSessionCache, GeminiChatGateway
from app.services.title_generator import TitleGenerator
from models import Conversation, Message, MessageRole
from tests.conftest import FakeLLMGateway
from tests.factories import create_conversation_with_messages


async def stored_messages(db, conversation_id):
    result = await db.execute(
        select(Message).where(Message.conversation_id == conversation_id).order_by(Message.created_at)
    )
    return result.scalars().all()


class RecordingChat:
    """Chat session double that keeps its own history like a Gemini session."""

    def __init__(self, history, contexts):
        self.history = [turn["parts"][0] for turn in history]
        self.contexts = contexts

    async def send_message_async(self, text):
        self.history.append(text)
        self.contexts.append(list(self.history))
        reply = f"gemini-reply-{len(self.contexts)}"
        self.history.append(reply)
        return SimpleNamespace(text=reply, usage_metadata=None)


@pytest.fixture
def title_llm():
    return FakeLLMGateway(reply="Préparer un entretien")


@pytest.fixture
def message_service(test_db, fake_llm, fake_gemini, title_llm):
    return MessageService(
        test_db,
        gateways={"groq": fake_llm, "gemini": fake_gemini},
        title_generator=TitleGenerator(title_llm),
        chat_sessions=ChatSessionCache(),
    )


class TestSendMessage:
    """Test cases for the send/answer exchange."""

    @pytest.mark.asyncio
    async def test_first_exchange_stores_both_turns_and_retitles(
        self, test_db, test_user, message_service, fake_llm, title_llm
    ):
        conversation = await create_conversation_with_messages(
            test_db, test_user.id, [(MessageRole.SYSTEM, "Tu es un coach carrière.")]
        )

        result = await message_service.send_message(
            conversation.id, test_user.id, "Comment préparer un entretien ?"
        )

        assert result.user_message.role == MessageRole.USER
        assert result.user_message.user_id == test_user.id
        assert result.user_message.content == "Comment préparer un entretien ?"
        assert result.assistant_message.role == MessageRole.ASSISTANT
        assert result.assistant_message.content == "Assistant reply"
        assert result.assistant_message.model == "fake-model"
        assert result.assistant_message.tokens == 42
        assert result.assistant_message.user_id is None

        assert fake_llm.calls[0]["conversation_id"] == str(conversation.id)
        assert fake_llm.calls[0]["history"] == [
            {"role": "system", "content": "Tu es un coach carrière."},
            {"role": "user", "content": "Comment préparer un entretien ?"},
        ]
        assert len(title_llm.calls) == 1

        stored = await test_db.get(Conversation, conversation.id)
        await test_db.refresh(stored)
        assert stored.title == "Préparer un entretien"
        assert [m.role for m in await stored_messages(test_db, conversation.id)] == [
            MessageRole.SYSTEM,
            MessageRole.USER,
            MessageRole.ASSISTANT,
        ]

    @pytest.mark.asyncio
    async def test_later_exchange_keeps_title_and_sends_full_history(
        self, test_db, test_user, message_service, fake_llm, title_llm
    ):
        conversation = await create_conversation_with_messages(
            test_db,
            test_user.id,
            [(MessageRole.USER, "Bonjour"), (MessageRole.ASSISTANT, "Bonjour, que puis-je faire ?")],
            title="Titre existant",
        )

        await message_service.send_message(conversation.id, test_user.id, "Parle-moi de SQL")

        assert title_llm.calls == []
        assert [m["content"] for m in fake_llm.calls[0]["history"]] == [
            "Bonjour",
            "Bonjour, que puis-je faire ?",
            "Parle-moi de SQL",
        ]
        stored = await test_db.get(Conversation, conversation.id)
        await test_db.refresh(stored)
        assert stored.title == "Titre existant"

    @pytest.mark.asyncio
    async def test_llm_failure_keeps_user_message(self, test_db, test_user, message_service, fake_llm):
        conversation = await create_conversation_with_messages(test_db, test_user.id)
        fake_llm.error = LLMProviderError()

        with pytest.raises(LLMProviderError):
            await message_service.send_message(conversation.id, test_user.id, "Tu es là ?")

        messages = await stored_messages(test_db, conversation.id)
        assert [(m.role, m.content) for m in messages] == [(MessageRole.USER, "Tu es là ?")]

    @pytest.mark.asyncio
    async def test_title_failure_does_not_block_the_exchange(
        self, test_db, test_user, message_service, title_llm
    ):
        conversation = await create_conversation_with_messages(test_db, test_user.id)
        title_llm.error = LLMProviderError()

        result = await message_service.send_message(conversation.id, test_user.id, "Idées de recettes végétariennes faciles ?")

        assert result.assistant_message.content == "Assistant reply"
        stored = await test_db.get(Conversation, conversation.id)
        await test_db.refresh(stored)
        assert stored.title == "Idées de recettes végétariennes faciles"

    @pytest.mark.asyncio
    async def test_attachments_are_stored_and_forwarded(self, test_db, test_user, message_service, fake_llm):
        conversation = await create_conversation_with_messages(test_db, test_user.id)
        files = [{"name": "cv.pdf", "type": "application/pdf", "size": 2048}]

        result = await message_service.send_message(conversation.id, test_user.id, "", files=files)

        assert result.user_message.content == ""
        assert result.user_message.files[0].name == "cv.pdf"
        assert fake_llm.calls[0]["attachments"] == files

    @pytest.mark.asyncio
    async def test_explicit_provider(self, test_db, test_user, message_service, fake_llm, fake_gemini):
        conversation = await create_conversation_with_messages(test_db, test_user.id)

        result = await message_service.send_message(conversation.id, test_user.id, "Salut", provider="Gemini")

        assert result.assistant_message.content == "Gemini reply"
        assert result.assistant_message.model == "fake-gemini"
        assert fake_llm.chat_calls == []

    @pytest.mark.asyncio
    async def test_gemini_session_sees_turns_answered_by_groq(self, test_db, test_user, fake_llm, title_llm):
        sessions = ChatSessionCache()
        gemini = GeminiChatGateway(api_key="gemini-key", model="gemini-1.5-flash", sessions=sessions)
        service = MessageService(
            test_db,
            gateways={"groq": fake_llm, "gemini": gemini},
            title_generator=TitleGenerator(title_llm),
            chat_sessions=sessions,
        )
        conversation = await create_conversation_with_messages(test_db, test_user.id)
        contexts = []

        with patch("app.services.llm_gateway.genai") as genai:
            genai.GenerativeModel.return_value.start_chat.side_effect = lambda history: RecordingChat(
                history, contexts
            )
            await service.send_message(conversation.id, test_user.id, "Premier tour", provider="gemini")
            await service.send_message(conversation.id, test_user.id, "Tour répondu par Groq", provider="groq")
            await service.send_message(conversation.id, test_user.id, "Troisième tour", provider="gemini")

        assert contexts[-1] == [
            "Premier tour",
            "gemini-reply-1",
            "Tour répondu par Groq",
            "Assistant reply",
            "Troisième tour",
        ]

    @pytest.mark.asyncio
    async def test_llm_failure_forgets_chat_session(self, test_db, test_user, message_service, fake_llm):
        conversation = await create_conversation_with_messages(test_db, test_user.id)
        sessions = message_service.conversations.chat_sessions
        sessions.set(str(conversation.id), object())
        fake_llm.error = LLMProviderError()

        with pytest.raises(LLMProviderError):
            await message_service.send_message(conversation.id, test_user.id, "Tu es là ?")

        assert str(conversation.id) not in sessions

    @pytest.mark.asyncio
    async def test_unknown_provider(self, test_db, test_user, message_service):
        conversation = await create_conversation_with_messages(test_db, test_user.id)

        with pytest.raises(ValidationError) as exc_info:
            await message_service.send_message(conversation.id, test_user.id, "Salut", provider="openai")

        assert exc_info.value.details == {"available_providers": ["gemini", "groq"]}
        assert await stored_messages(test_db, conversation.id) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "   "])
    async def test_empty_message_without_files(self, test_db, test_user, message_service, content):
        conversation = await create_conversation_with_messages(test_db, test_user.id)

        with pytest.raises(ValidationError):
            await message_service.send_message(conversation.id, test_user.id, content)

    @pytest.mark.asyncio
    async def test_someone_elses_conversation(self, test_db, test_user, test_user_2, message_service, fake_llm):
        conversation = await create_conversation_with_messages(test_db, test_user_2.id)

        with pytest.raises(NotFoundError):
            await message_service.send_message(conversation.id, test_user.id, "Intrusion")

        assert fake_llm.calls == []
        assert await stored_messages(test_db, conversation.id) == []


class TestMessageQueries:
    """Test cases for reading, deleting and counting messages."""

    @pytest.mark.asyncio
    async def test_get_conversation_messages(self, test_db, test_user, message_service):
        conversation = await create_conversation_with_messages(
            test_db, test_user.id, [(MessageRole.USER, "A"), (MessageRole.ASSISTANT, "B")]
        )

        messages = await message_service.get_conversation_messages(conversation.id, test_user.id)

        assert [m.content for m in messages] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_get_message_of_someone_else(self, test_db, test_user, test_user_2, message_service):
        conversation = await create_conversation_with_messages(test_db, test_user_2.id, [(MessageRole.USER, "Secret")])
        message = (await stored_messages(test_db, conversation.id))[0]

        with pytest.raises(NotFoundError, match="Message not found"):
            await message_service.get_message_by_id(message.id, test_user.id)

    @pytest.mark.asyncio
    async def test_get_unknown_message(self, test_user, message_service):
        with pytest.raises(NotFoundError):
            await message_service.get_message_by_id(uuid.uuid4(), test_user.id)

    @pytest.mark.asyncio
    async def test_delete_message_forgets_chat_session(self, test_db, test_user, message_service):
        conversation = await create_conversation_with_messages(
            test_db, test_user.id, [(MessageRole.USER, "Garder"), (MessageRole.USER, "Supprimer")]
        )
        target = (await stored_messages(test_db, conversation.id))[1]
        sessions = message_service.conversations.chat_sessions
        sessions.set(str(conversation.id), object())

        assert await message_service.delete_message(target.id, test_user.id) is True

        assert [m.content for m in await stored_messages(test_db, conversation.id)] == ["Garder"]
        assert str(conversation.id) not in sessions

    @pytest.mark.asyncio
    async def test_stats(self, test_db, test_user, message_service):
        conversation = await create_conversation_with_messages(
            test_db,
            test_user.id,
            [
                (MessageRole.SYSTEM, "Persona"),
                (MessageRole.USER, "Question"),
                (MessageRole.ASSISTANT, "Réponse"),
            ],
        )
        await message_service.create_message(
            conversation.id,
            MessageRole.USER,
            "Voici mon CV",
            user_id=test_user.id,
            files=[{"name": "cv.pdf", "type": "application/pdf"}],
        )

        stats = await message_service.get_conversation_stats(conversation.id, test_user.id)

        assert stats.total == 4
        assert stats.user_messages == 2
        assert stats.assistant_messages == 1
        assert stats.messages_with_files == 1

    @pytest.mark.asyncio
    async def test_create_message_drops_user_id_on_assistant_turns(self, test_db, test_user, message_service):
        conversation = await create_conversation_with_messages(test_db, test_user.id)

        message = await message_service.create_message(
            conversation.id, MessageRole.ASSISTANT, "Réponse", user_id=test_user.id, files=[]
        )

        assert message.user_id is None
        assert message.files is None
