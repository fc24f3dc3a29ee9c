"""
Memory State - Card State and Retrievability

Defines the per-card scheduling memory and the retention model.

Key concepts:
- Stability (S): How slowly memory decays (in days)
- Difficulty (D): How hard the card is to learn (1-10 scale)
- Retrievability (R): Probability of successful recall at time t

All timestamps are epoch milliseconds.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from datetime import date, datetime, time as dt_time
from typing import Optional

from memory_core.fsrs.constants import (
    DAY_MS,
    DECAY_BASE,
    INTERVAL_STABILITY_FLOOR,
    TARGET_R_MAX,
    TARGET_R_MIN,
)

LOG_DECAY = math.log(DECAY_BASE)


@dataclass
class CardState:
    """
    Scheduling memory for a single card.

    A card is identified by (dataset_id, card_id). A missing CardState
    means the card was never reviewed.
    """
    card_id: str
    dataset_id: str

    # Long-term memory parameters
    stability: float  # S, in days
    difficulty: float  # D, range 1-10

    # Review tracking
    last_review_at: Optional[int]  # Most recent review (ms)
    due_at: int  # Next review (ms)
    reps: int = 0  # Total number of reviews
    lapses: int = 0  # Number of UNKNOWN grades

    # Interval chosen by the last scheduling step (not persisted)
    interval_days: Optional[int] = None


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def clamp(value: float, lower: float, upper: float) -> float:
    return min(upper, max(lower, value))


def calculate_retrievability(
    now: int,
    last_review_at: Optional[int],
    stability: float
) -> float:
    """
    Calculate retrievability using exponential decay.

    Formula: R = 0.9 ** (elapsed_days / S)

    Interpretation:
    - Immediately after review: R = 1.0
    - After exactly S days: R = 0.9
    - Never reviewed (last_review_at missing or 0) or degenerate stability: R = 0.0

    Args:
        now: Current time (ms)
        last_review_at: Time of last review (ms), or None for new cards
        stability: Current stability in days

    Returns:
        Retrievability between 0 and 1
    """
    if not last_review_at or stability <= 0:
        return 0.0

    elapsed_days = max(0.0, (now - last_review_at) / DAY_MS)
    r = math.exp(LOG_DECAY * elapsed_days / stability)
    return clamp(r, 0.0, 1.0)


def interval_from_target_r(target_r: float, stability: float) -> int:
    """
    Invert the retention curve: days until R decays to target_r.

    Formula: days = S * ln(target_r) / ln(0.9)

    target_r is forced into [0.70, 0.97] and stability floored at 0.05.

    Args:
        target_r: Desired retrievability at the next review
        stability: Current stability in days

    Returns:
        Whole number of days, at least 1
    """
    target_r = clamp(target_r, TARGET_R_MIN, TARGET_R_MAX)
    stability = max(stability, INTERVAL_STABILITY_FLOOR)
    interval_days = stability * math.log(target_r) / LOG_DECAY
    # Half-up rounding
    return max(1, math.floor(interval_days + 0.5))


def parse_exam_date(exam_date: Optional[str]) -> Optional[int]:
    """
    Convert an ISO date (YYYY-MM-DD) to the last millisecond of that local day.

    Returns None for missing or unparseable values.
    """
    if not exam_date:
        return None
    try:
        day = date.fromisoformat(exam_date)
    except (TypeError, ValueError):
        return None
    end = datetime.combine(day, dt_time(23, 59, 59, 999000))
    return int(end.timestamp() * 1000)


def end_of_local_day(now: int) -> int:
    """Last millisecond of the local calendar day containing `now`."""
    current = datetime.fromtimestamp(now / 1000)
    end = current.replace(hour=23, minute=59, second=59, microsecond=999000)
    return int(end.timestamp() * 1000)
