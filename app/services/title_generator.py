"""Conversation title generation with a deterministic fallback."""

import logging

from app.services.llm_gateway import BaseLLMGateway
from models.conversation import DEFAULT_CONVERSATION_TITLE


logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 50
SIMPLE_TITLE_WORDS = 5

QUOTE_CHARS = "\"'`«»“”‘’"
TRAILING_PUNCTUATION = ".,;:!?…"

TITLE_SYSTEM_PROMPT = (
    "Tu es un assistant qui génère des titres courts et descriptifs pour des conversations. "
    "Réponds uniquement avec le titre, en 3 à 6 mots, sans guillemets ni ponctuation finale."
)


def generate_simple_title(message: str | None) -> str:
    """First five words of the message, or the default title when empty.

    Never raises and never calls an external service.
    """
    words = (message or "").split()
    if not words:
        return DEFAULT_CONVERSATION_TITLE

    title = " ".join(words[:SIMPLE_TITLE_WORDS])
    if len(title) > MAX_TITLE_LENGTH:
        title = title[:MAX_TITLE_LENGTH] + "..."
    return title


def clean_generated_title(raw: str | None) -> str:
    """Strip quotes and trailing punctuation, keep the first line, cap the length."""
    lines = (raw or "").strip().splitlines()
    title = lines[0] if lines else ""

    previous = None
    while title != previous:
        previous = title
        title = title.strip().strip(QUOTE_CHARS).rstrip(TRAILING_PUNCTUATION)

    return title[:MAX_TITLE_LENGTH].strip()


class TitleGenerator:
    """Ask the LLM for a 3 to 6 word title, falling back to the first words."""

    def __init__(self, gateway: BaseLLMGateway | None):
        self.gateway = gateway

    async def generate_conversation_title(self, first_message: str | None) -> str:
        if not first_message or not first_message.strip() or self.gateway is None:
            return generate_simple_title(first_message)

        messages = [
            {"role": "system", "content": TITLE_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": f'Génère un titre de 3 à 6 mots pour cette conversation : "{first_message.strip()}"',
            },
        ]

        try:
            response = await self.gateway.generate_response(messages, temperature=0.3, max_tokens=30)
        except Exception as e:
            logger.warning(f"Title generation failed, using fallback: {str(e)}")
            return generate_simple_title(first_message)

        title = clean_generated_title(response.content)
        if not title:
            logger.warning("Title generation returned an empty title, using fallback")
            return generate_simple_title(first_message)
        return title
