"""CV and quiz schemas."""

from typing import Any

from pydantic import Field

from .base import BaseSchema


class CvResponse(BaseSchema):
    """Generated résumé (JSON Resume layout) and cover letter."""

    cv: dict[str, Any]
    letter: str = ""


class QuizQuestion(BaseSchema):
    id: str
    type: str
    question: str
    choices: list[str] = Field(default_factory=list)
    answer_index: int | None = None
    correct_bool: bool | None = None
    explanation: str | None = None
    topic: str | None = None
    gradable: bool = False


class QuizResponse(BaseSchema):
    """Generated quiz, normalised for grading, with the raw model answer."""

    job_title: str | None = None
    score_match: float | None = None
    questions: list[QuizQuestion] = Field(default_factory=list)
    raw: dict[str, Any] = Field(default_factory=dict)
