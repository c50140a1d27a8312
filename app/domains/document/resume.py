"""Conversion of the model's CV answer into the JSON Resume layout.

The model's answer is loosely structured, so every field is optional here:
missing sections become empty lists and missing scalars empty strings.
"""

from typing import Any


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _items(value: Any) -> list[dict]:
    return [item for item in _as_list(value) if isinstance(item, dict)]


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def convert_custom_sections(cv_json: dict | None) -> list[dict]:
    """Free-form sections as ``[{title, items: [{name, highlights}]}]``."""
    sections = []
    for section in _items(_as_dict(cv_json).get("custom_sections")):
        sections.append(
            {
                "title": _text(section.get("title")),
                "items": [
                    {"name": _text(item.get("label")), "highlights": _as_list(item.get("details"))}
                    for item in _items(section.get("items"))
                ],
            }
        )
    return sections


def convert_to_json_resume(cv_json: dict | None) -> dict:
    """Map the normalized CV onto JSON Resume sections plus a ``meta`` match score."""
    cv = _as_dict(cv_json)
    info = _as_dict(cv.get("personal_info"))
    skills = _as_dict(cv.get("skills"))
    matching = _as_dict(cv.get("matching_index"))

    return {
        "basics": {
            "name": _text(info.get("full_name")),
            "email": _text(info.get("email")),
            "phone": _text(info.get("phone")),
            "location": {"address": _text(info.get("location"))},
            "url": _text(info.get("website")),
            "summary": _text(cv.get("summary")),
        },
        "skills": [
            {"name": "Hard Skills", "keywords": _as_list(skills.get("hard_skills"))},
            {"name": "Soft Skills", "keywords": _as_list(skills.get("soft_skills"))},
        ],
        "work": [
            {
                "name": _text(exp.get("company")),
                "position": _text(exp.get("position")),
                "location": _text(exp.get("location")),
                "startDate": _text(exp.get("start_date")),
                "endDate": _text(exp.get("end_date")),
                "summary": "",
                "highlights": _as_list(exp.get("tasks")),
            }
            for exp in _items(cv.get("experience"))
        ],
        "education": [
            {
                "institution": _text(ed.get("school")),
                "studyType": _text(ed.get("degree")),
                "area": ", ".join(_text(detail) for detail in _as_list(ed.get("details"))),
                "startDate": _text(ed.get("start_date")),
                "endDate": _text(ed.get("end_date")),
            }
            for ed in _items(cv.get("education"))
        ],
        "projects": [
            {
                "name": _text(project.get("title")),
                "description": _text(project.get("description")),
                "keywords": _as_list(project.get("technologies")),
            }
            for project in _items(cv.get("projects"))
        ],
        "certificates": [
            {"name": _text(cert.get("name") if isinstance(cert, dict) else cert), "date": ""}
            for cert in _as_list(cv.get("certifications"))
        ],
        "interests": [{"name": _text(interest)} for interest in _as_list(cv.get("interests"))],
        "custom_sections": convert_custom_sections(cv),
        "meta": {
            "match_score": matching.get("score"),
            "match_details": matching.get("justification"),
        },
    }
