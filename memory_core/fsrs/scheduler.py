"""
Scheduler - FSRS Algorithm Logic

Pure scheduling and state updates (no database calls).

Main workflow:
1. Load card state (caller's responsibility, None for a new card)
2. Seed (first review) or update (later reviews) stability and difficulty
3. Pick the interval from the target retention, clamped by the exam date
4. Return a new CardState ready to persist

This module handles ONLY the algorithm logic.
Database I/O is handled by the store package.
"""

from __future__ import annotations

import math
from typing import Optional

from memory_core.fsrs import memory_state
from memory_core.fsrs.constants import (
    D_MAX,
    D_MIN,
    DAY_MS,
    DEFAULT_TARGET_R,
    DIFFICULTY_DELTA,
    DIFFICULTY_PENALTY_RATE,
    INITIAL_DIFFICULTY,
    INITIAL_STABILITY,
    LAPSE_BASE,
    LAPSE_R_WEIGHT,
    LAPSE_STABILITY_FLOOR,
    STABILITY_BONUS,
    SUCCESS_STABILITY_FLOOR,
    TARGET_R_MAX,
    TARGET_R_MIN,
    Grade,
)


def update_stability_on_lapse(stability: float, retrievability: float) -> float:
    """
    Shrink stability after an UNKNOWN grade.

    Formula:
        S_new = max(0.2, S * (0.35 + 0.25 * R))

    A lapse at high R keeps more stability than a lapse at low R.
    """
    factor = LAPSE_BASE + LAPSE_R_WEIGHT * retrievability
    return max(LAPSE_STABILITY_FLOOR, stability * factor)


def update_stability_on_success(
    stability: float,
    retrievability: float,
    difficulty: float,
    grade: Grade
) -> float:
    """
    Grow stability after a HARD/GOOD/EASY grade.

    Formula:
        S_new = max(0.3, S * (1 + (1 - R) * bonus(grade) * penalty(D)))
        penalty(D) = 1 + (10 - D) * 0.03

    Where:
        - (1 - R) rewards well-spaced success
        - penalty(D) gives easier cards a stronger boost

    Args:
        stability: Current stability (S)
        retrievability: Retrievability at review time (R)
        difficulty: Difficulty after this review's adjustment
        grade: HARD, GOOD or EASY

    Returns:
        New stability value
    """
    if grade == Grade.UNKNOWN:
        raise ValueError("Use update_stability_on_lapse for UNKNOWN grades")

    difficulty_penalty = 1.0 + (D_MAX - difficulty) * DIFFICULTY_PENALTY_RATE
    growth = 1.0 + (1.0 - retrievability) * STABILITY_BONUS[grade] * difficulty_penalty
    return max(SUCCESS_STABILITY_FLOOR, stability * growth)


def update_difficulty(difficulty: float, grade: Grade) -> float:
    """Nudge difficulty by the per-grade delta, clipped to [1, 10]."""
    return memory_state.clamp(difficulty + DIFFICULTY_DELTA[grade], D_MIN, D_MAX)


def compute_interval(
    stability: float,
    grade: Grade,
    target_r: float,
    now: int,
    exam_date: Optional[str] = None
) -> int:
    """
    Choose the next interval in whole days.

    UNKNOWN always yields 1 day. With an exam date set, the interval never
    reaches past the end of the exam day.
    """
    if grade == Grade.UNKNOWN:
        interval_days = 1
    else:
        interval_days = memory_state.interval_from_target_r(target_r, stability)

    exam_ts = memory_state.parse_exam_date(exam_date)
    if exam_ts is not None:
        max_days = math.floor((exam_ts - now) / DAY_MS)
        interval_days = int(memory_state.clamp(interval_days, 1, max(1, max_days)))

    return interval_days


def schedule_next(
    card_state: Optional[memory_state.CardState],
    grade: Grade | int,
    target_r: float = DEFAULT_TARGET_R,
    exam_date: Optional[str] = None,
    now: Optional[int] = None,
    card_id: Optional[str] = None,
    dataset_id: Optional[str] = None
) -> memory_state.CardState:
    """
    Process a grade and return the card's next scheduling state.

    This is the core algorithm. No database calls, and the input state is
    not modified. Caller is responsible for:
    1. Loading the prior state (None for a never-reviewed card)
    2. Persisting the returned state and the review log entry

    Args:
        card_state: Prior state, or None on the first review
        grade: 1=UNKNOWN, 2=HARD, 3=GOOD, 4=EASY
        target_r: Target retention rate (clamped to [0.70, 0.97])
        exam_date: Optional ISO date; intervals never pass it
        now: Review timestamp in ms (defaults to now)
        card_id: Card id for a first review (taken from card_state otherwise)
        dataset_id: Dataset id for a first review

    Returns:
        New CardState with interval_days set
    """
    grade = Grade(grade)
    if now is None:
        now = memory_state.now_ms()
    target_r = memory_state.clamp(target_r, TARGET_R_MIN, TARGET_R_MAX)

    if card_state is None:
        # First review: seed from fixed tables
        stability = INITIAL_STABILITY[grade]
        difficulty = INITIAL_DIFFICULTY[grade]
        reps = 1
        lapses = 0
    else:
        retrievability = memory_state.calculate_retrievability(
            now,
            card_state.last_review_at,
            card_state.stability
        )
        difficulty = update_difficulty(card_state.difficulty, grade)
        reps = card_state.reps + 1
        lapses = card_state.lapses

        if grade == Grade.UNKNOWN:
            lapses += 1
            stability = update_stability_on_lapse(card_state.stability, retrievability)
        else:
            stability = update_stability_on_success(
                card_state.stability, retrievability, difficulty, grade
            )

    interval_days = compute_interval(stability, grade, target_r, now, exam_date)

    return memory_state.CardState(
        card_id=card_id if card_id is not None else (card_state.card_id if card_state else ""),
        dataset_id=dataset_id if dataset_id is not None else (card_state.dataset_id if card_state else ""),
        stability=stability,
        difficulty=difficulty,
        last_review_at=now,
        due_at=now + interval_days * DAY_MS,
        reps=reps,
        lapses=lapses,
        interval_days=interval_days,
    )
