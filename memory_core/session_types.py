"""
Session item and state types used by the study session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

from memory_core.fsrs.memory_state import CardState
from memory_core.schemas import Card


SessionStatus = Literal["idle", "loading", "question", "reviewing", "done"]


@dataclass(frozen=True)
class StudyQueueItem:
    """
    A single card in the due queue with its current scheduling state.
    """
    card: Card
    card_state: Optional[CardState] = None


@dataclass(frozen=True)
class SessionState:
    """
    Immutable snapshot of a study session.
    """
    status: SessionStatus = "idle"
    dataset_id: Optional[str] = None
    queue: tuple[StudyQueueItem, ...] = field(default_factory=tuple)
    index: int = 0
    total: int = 0
    correct_count: int = 0
    incorrect_count: int = 0
    current: Optional[StudyQueueItem] = None
    user_answer: str = ""
    is_correct: Optional[bool] = None
    matched_answer: Optional[str] = None
    response_ms: Optional[int] = None
    submitted_at: Optional[int] = None
    error: Optional[str] = None
