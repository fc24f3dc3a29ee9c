"""
Study session lifecycle.

States: idle -> loading -> question -> reviewing -> (question | done).
reset() returns to idle from anywhere. Each action requires a specific
current state; calls made in any other state are ignored.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Callable, Optional

from memory_core import confusion
from memory_core.errors import MemoryAppError
from memory_core.fsrs import Grade, schedule_next
from memory_core.fsrs.memory_state import now_ms
from memory_core.schemas import AppSettings, Review
from memory_core.session_types import SessionState
from memory_core.store import EntityStore
from memory_core.text import check_answer

logger = logging.getLogger(__name__)


class StudySession:
    """
    One learner working through the due queue of a dataset.

    The store is passed in explicitly; settings are read through
    settings_provider at grade time so changes apply immediately.
    on_persisted runs after every successfully stored grade (e.g. to refresh
    dashboard stats); its failures are logged and do not stop the session.
    """

    def __init__(
        self,
        store: EntityStore,
        settings_provider: Optional[Callable[[], AppSettings]] = None,
        on_persisted: Optional[Callable[[], None]] = None,
        clock: Optional[Callable[[], int]] = None
    ) -> None:
        self.store = store
        self.settings_provider = settings_provider or store.get_settings
        self.on_persisted = on_persisted
        self.clock = clock or store.clock or now_ms
        self.state = SessionState()
        self._grading = False

    # ---- Transitions ----

    def start(self, dataset_id: str) -> SessionState:
        """
        Start a session over the dataset's due queue.
        """
        if self.state.status not in ("idle", "done"):
            logger.debug("start() ignored in state %s", self.state.status)
            return self.state

        self.state = SessionState(status="loading", dataset_id=dataset_id)
        try:
            queue = tuple(self.store.build_due_queue(dataset_id))
        except MemoryAppError as exc:
            logger.error("Failed to load due queue for %s: %s", dataset_id, exc)
            self.state = dataclasses.replace(self.state, status="idle", error=str(exc))
            return self.state

        if not queue:
            self.state = SessionState(status="done", dataset_id=dataset_id, total=0)
            return self.state

        self.state = SessionState(
            status="question",
            dataset_id=dataset_id,
            queue=queue,
            total=len(queue),
            index=0,
            current=queue[0],
            submitted_at=self.clock(),
        )
        logger.info("Session started on %s with %d cards", dataset_id, len(queue))
        return self.state

    def submit_answer(self, text: str) -> SessionState:
        """
        Check a typed answer and move to reviewing.

        A wrong answer is passed to confusion detection; failures there are
        logged and ignored.
        """
        state = self.state
        if state.status != "question" or state.current is None or state.dataset_id is None:
            return state

        card = state.current.card
        result = check_answer(card.answers, text)
        if not result.is_correct:
            try:
                confusion.detect_confusion(self.store, state.dataset_id, card.id, text)
            except Exception:
                logger.warning("Confusion detection failed for %s/%s", state.dataset_id, card.id, exc_info=True)

        now = self.clock()
        self.state = dataclasses.replace(
            state,
            status="reviewing",
            user_answer=text,
            is_correct=result.is_correct,
            matched_answer=result.matched_answer,
            response_ms=max(0, now - state.submitted_at) if state.submitted_at is not None else 0,
            error=None,
        )
        return self.state

    def submit_grade(self, grade: Grade | int) -> bool:
        """
        Schedule the current card, persist state + review, and advance.

        Returns True when the grade was stored. On a storage failure the
        session stays in reviewing with `error` set so the grade can be
        retried without answering again.
        """
        state = self.state
        if self._grading or state.status != "reviewing" or state.current is None or state.dataset_id is None:
            return False

        grade = Grade(grade)
        self._grading = True
        try:
            now = self.clock()
            card = state.current.card
            try:
                settings = self.settings_provider()
            except MemoryAppError as exc:
                logger.error("Failed to read settings: %s", exc)
                self.state = dataclasses.replace(state, error=str(exc))
                return False

            next_state = schedule_next(
                state.current.card_state,
                grade,
                target_r=settings.target_retention_rate,
                exam_date=settings.exam_date,
                now=now,
                card_id=card.id,
                dataset_id=state.dataset_id,
            )
            review = Review(
                card_id=card.id,
                dataset_id=state.dataset_id,
                grade=int(grade),
                response_ms=state.response_ms or 0,
                reviewed_at=now,
            )

            try:
                self.store.record_grade(next_state, review)
            except MemoryAppError as exc:
                logger.error("Failed to store grade for %s/%s: %s", state.dataset_id, card.id, exc)
                self.state = dataclasses.replace(state, error=str(exc))
                return False

            self._notify_persisted()

            queue = list(state.queue)
            queue[state.index] = dataclasses.replace(queue[state.index], card_state=next_state)
            advanced = dataclasses.replace(
                state,
                queue=tuple(queue),
                correct_count=state.correct_count + (1 if state.is_correct else 0),
                incorrect_count=state.incorrect_count + (0 if state.is_correct else 1),
            )
            self.state = self._to_question(advanced, state.index + 1)
            return True
        finally:
            self._grading = False

    def reset(self) -> SessionState:
        """Back to idle. Already stored reviews are kept."""
        self.state = SessionState()
        self._grading = False
        return self.state

    # ---- Helpers ----

    def _notify_persisted(self) -> None:
        if self.on_persisted is None:
            return
        try:
            self.on_persisted()
        except Exception:
            logger.warning("Post-grade refresh failed", exc_info=True)

    def _to_question(self, base: SessionState, index: int) -> SessionState:
        cleared = dict(
            index=index,
            user_answer="",
            is_correct=None,
            matched_answer=None,
            response_ms=None,
            error=None,
        )
        if index >= len(base.queue):
            logger.info(
                "Session on %s done: %d correct, %d incorrect",
                base.dataset_id, base.correct_count, base.incorrect_count,
            )
            return dataclasses.replace(base, status="done", current=None, submitted_at=None, **cleared)

        return dataclasses.replace(
            base,
            status="question",
            current=base.queue[index],
            submitted_at=self.clock(),
            **cleared,
        )
