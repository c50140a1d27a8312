# ruff: noqa: F403, F401
"""Schemas package initialization."""

from .base import *
from .conversation import *
from .document import *
from .llm import *
from .role import *
from .share import *
from .user import *
