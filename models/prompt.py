"""
Prompt model holding named instruction templates.
"""

from sqlalchemy import Column, String, Text

from .base import BaseModel


class Prompt(BaseModel):
    """Instruction template looked up by name, e.g. ``cv_normalizer_prompt``."""

    __tablename__ = "prompts"

    name = Column(String(255), nullable=False, unique=True)
    content = Column(Text, nullable=False)
