"""
FSRS - spaced repetition scheduler for flashcard study

This package implements an FSRS-inspired scheduler with:
- Exponential forgetting curve: R = 0.9 ** (Δt/S)
- Per-grade seeds for the first review
- Multiplicative stability updates for later reviews
- Interval selection from a target retention rate, clamped by an exam date

Quick start:
    from memory_core import fsrs

    # Schedule a first review (algorithm only, no DB calls)
    state = fsrs.schedule_next(None, fsrs.Grade.GOOD, target_r=0.9,
                               card_id="c1", dataset_id="ds")

    # Probability of recall right now
    r = fsrs.calculate_retrievability(fsrs.now_ms(), state.last_review_at, state.stability)
"""

# Core scheduler API (algorithm logic)
from memory_core.fsrs.scheduler import (
    schedule_next,
    compute_interval,
    update_difficulty,
    update_stability_on_lapse,
    update_stability_on_success,
)

# Constants and parameters
from memory_core.fsrs.constants import (
    Grade,
    DAY_MS,
    DEFAULT_TARGET_R,
    TARGET_R_MIN,
    TARGET_R_MAX,
    D_MIN,
    D_MAX,
    INITIAL_STABILITY,
    INITIAL_DIFFICULTY,
    DIFFICULTY_DELTA,
    STABILITY_BONUS,
)

# Memory state and retention model
from memory_core.fsrs.memory_state import (
    CardState,
    calculate_retrievability,
    interval_from_target_r,
    parse_exam_date,
    end_of_local_day,
    now_ms,
)


__all__ = [
    # Core algorithm
    "schedule_next",
    "compute_interval",
    "update_difficulty",
    "update_stability_on_lapse",
    "update_stability_on_success",

    # Enums
    "Grade",

    # Memory state
    "CardState",
    "calculate_retrievability",
    "interval_from_target_r",
    "parse_exam_date",
    "end_of_local_day",
    "now_ms",

    # Parameters
    "DAY_MS",
    "DEFAULT_TARGET_R",
    "TARGET_R_MIN",
    "TARGET_R_MAX",
    "D_MIN",
    "D_MAX",
    "INITIAL_STABILITY",
    "INITIAL_DIFFICULTY",
    "DIFFICULTY_DELTA",
    "STABILITY_BONUS",
]
