"""
memory_core - flashcard memory trainer core

Storage, scheduling, study sessions, confusion tracking and dashboard
analytics for question/answer datasets.
"""

from memory_core.errors import (
    FormatError,
    MemoryAppError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from memory_core.session import StudySession
from memory_core.store import EntityStore

__all__ = [
    "EntityStore",
    "StudySession",
    "MemoryAppError",
    "ValidationError",
    "FormatError",
    "NotFoundError",
    "PersistenceError",
]
