"""Document pipeline: CV tailoring and interview quiz generation from PDFs."""

import asyncio
import json
import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.domains.document.quiz import normalize_quiz
from app.domains.document.resume import convert_to_json_resume
from app.exceptions.base import FeatureUnavailableError, ValidationError
from app.exceptions.llm import LLMResponseParsingError
from app.schemas.document import CvResponse, QuizResponse
from app.services.llm_gateway import BaseLLMGateway
from app.services.text_extractor import TextExtractor
from models import Prompt

logger = logging.getLogger(__name__)

DEFAULT_POSTE = "Non précisé : déduis-le de l'offre d'emploi."


def parse_json_answer(response: str) -> dict[str, Any]:
    """Extract the outermost JSON object from a model answer."""
    json_start = response.find("{")
    json_end = response.rfind("}") + 1

    if json_start == -1 or json_end <= json_start:
        raise LLMResponseParsingError("No JSON object found in LLM response")

    try:
        data = json.loads(response[json_start:json_end])
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse LLM JSON answer: {str(e)}")
        raise LLMResponseParsingError("Invalid JSON in LLM response") from e

    if not isinstance(data, dict):
        raise LLMResponseParsingError("LLM response is not a JSON object")
    return data


class PromptRepository:
    """Named instruction templates stored in the database."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_prompt_by_name(self, name: str) -> Optional[Prompt]:
        result = await self.db.execute(select(Prompt).where(Prompt.name == name))
        return result.scalar_one_or_none()


class DocumentService:
    """Feeds extracted PDF text and stored instructions to the LLM.

    Each feature needs its instruction prompt in the ``prompts`` table; without
    it the feature is reported unavailable before any extraction or LLM call.
    """

    def __init__(
        self,
        db: AsyncSession,
        gateway: BaseLLMGateway,
        extractor: Optional[TextExtractor] = None,
    ):
        self.prompts = PromptRepository(db)
        self.gateway = gateway
        self.extractor = extractor or TextExtractor()

    async def extract_text(self, data: bytes) -> str:
        if len(data) > settings.max_file_size:
            raise ValidationError(
                "File too large",
                details={"max_file_size": settings.max_file_size},
            )
        return await asyncio.to_thread(self.extractor.extract_from_pdf, data)

    async def read_job_description(self, offre: Optional[str], offre_pdf: Optional[bytes] = None) -> str:
        """Job description from the form text, or from an uploaded PDF."""
        if offre and offre.strip():
            return offre.strip()
        if offre_pdf:
            return await self.extract_text(offre_pdf)
        raise ValidationError("A job description is required")

    async def generate_cv(self, offre: str, cv_pdf: bytes, poste: Optional[str] = None) -> CvResponse:
        """Rewrite the CV for the job offer and draft a cover letter."""
        prompt = await self._require_prompt(settings.cv_prompt_name)
        cv_text = await self.extract_text(cv_pdf)

        messages = [
            {"role": "system", "content": prompt.content},
            {
                "role": "user",
                "content": (
                    f"Poste visé : {(poste or '').strip() or DEFAULT_POSTE}\n\n"
                    f"Offre d'emploi :\n{offre}\n\n"
                    f"CV existant :\n{cv_text}\n\n"
                    'Réponds uniquement avec un objet JSON de la forme {"cv": {...}, "letter": "..."}.'
                ),
            },
        ]
        response = await self.gateway.generate_response(
            messages, temperature=0.4, max_tokens=settings.document_max_tokens
        )

        data = parse_json_answer(response.content)
        if not isinstance(data.get("cv"), dict):
            raise LLMResponseParsingError("LLM response has no 'cv' object")

        letter = data.get("letter")
        logger.info(f"Generated CV with {len(response.content)} characters of model output")
        return CvResponse(
            cv=convert_to_json_resume(data["cv"]),
            letter=letter if isinstance(letter, str) else "",
        )

    async def generate_quiz(self, cv_pdf: bytes, offre: str) -> QuizResponse:
        """Interview quiz on the gaps between the CV and the job offer."""
        prompt = await self._require_prompt(settings.quiz_prompt_name)
        cv_text = await self.extract_text(cv_pdf)

        messages = [
            {"role": "system", "content": prompt.content},
            {
                "role": "user",
                "content": (
                    f"CV du candidat :\n{cv_text}\n\n"
                    f"Offre d'emploi :\n{offre}\n\n"
                    "Réponds uniquement avec un objet JSON."
                ),
            },
        ]
        response = await self.gateway.generate_response(
            messages, temperature=0.5, max_tokens=settings.document_max_tokens
        )

        data = parse_json_answer(response.content)
        return QuizResponse(**normalize_quiz(data), raw=data)

    async def _require_prompt(self, name: str) -> Prompt:
        prompt = await self.prompts.get_prompt_by_name(name)
        if not prompt:
            logger.warning(f"Prompt '{name}' is missing; feature disabled")
            raise FeatureUnavailableError(
                "This feature is not operational yet",
                details={"prompt": name},
            )
        return prompt
