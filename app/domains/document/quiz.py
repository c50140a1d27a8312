"""Normalization of the model's quiz answer into gradable questions."""

from typing import Any

TRUE_FALSE_CHOICES = ["Vrai", "Faux"]


def _optional_text(value: Any) -> str | None:
    return None if value is None else str(value)


def _answer_index_from_letter(answer: Any, choice_count: int) -> int | None:
    if not isinstance(answer, str):
        return None
    letter = answer.strip().upper()
    if not letter or not ("A" <= letter[0] <= "Z"):
        return None
    index = ord(letter[0]) - ord("A")
    return index if index < choice_count else None


def normalize_question(question: Any, position: int) -> dict:
    q = question if isinstance(question, dict) else {}
    question_type = str(q.get("type") or "open")

    normalized = {
        "id": str(q.get("id") or f"q_{position + 1}"),
        "type": question_type,
        "question": str(q.get("question") or ""),
        "choices": [],
        "answer_index": None,
        "correct_bool": None,
        "explanation": _optional_text(q.get("why")),
        "topic": _optional_text(q.get("related_skill")),
        "gradable": False,
    }

    if question_type == "mcq":
        options = q.get("options") if isinstance(q.get("options"), list) else []
        choices = [str(option) for option in options if option is not None]
        answer_index = _answer_index_from_letter(q.get("correct_answer"), len(choices))
        normalized.update(choices=choices, answer_index=answer_index, gradable=answer_index is not None)

    elif question_type == "true_false":
        answer = q.get("correct_answer")
        correct_bool = answer if isinstance(answer, bool) else None
        answer_index = None if correct_bool is None else (0 if correct_bool else 1)
        normalized.update(
            choices=list(TRUE_FALSE_CHOICES),
            correct_bool=correct_bool,
            answer_index=answer_index,
            gradable=answer_index is not None,
        )

    return normalized


def normalize_quiz(payload: Any) -> dict:
    """Shape a raw quiz answer as ``{job_title, score_match, questions}``.

    Accepts the quiz either at the top level or under ``data``. Open
    questions are kept but never gradable.
    """
    root = payload if isinstance(payload, dict) else {}
    if isinstance(root.get("data"), dict):
        root = root["data"]

    questions = root.get("quiz")
    if not isinstance(questions, list):
        questions = []

    score = root.get("matching_score_estimation")
    return {
        "job_title": _optional_text(root.get("job_title")),
        "score_match": score if isinstance(score, (int, float)) and not isinstance(score, bool) else None,
        "questions": [normalize_question(q, i) for i, q in enumerate(questions)],
    }
