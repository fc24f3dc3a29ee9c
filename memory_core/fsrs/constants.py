"""
FSRS Constants and Parameters

All configurable parameters for the scheduler in one place.
"""

from enum import IntEnum


# ---- Grades ----

class Grade(IntEnum):
    """Self-reported recall quality for one review."""
    UNKNOWN = 1  # Forgotten (lapse)
    HARD = 2     # Recalled with high effort
    GOOD = 3     # Recalled normally
    EASY = 4     # Recalled fluently


# ---- Time ----

DAY_MS = 24 * 60 * 60 * 1000

# Retrievability after exactly one stability period
DECAY_BASE = 0.9


# ---- Bounds ----

TARGET_R_MIN = 0.70
TARGET_R_MAX = 0.97
DEFAULT_TARGET_R = 0.9

D_MIN = 1.0
D_MAX = 10.0

INTERVAL_STABILITY_FLOOR = 0.05  # Stability floor for the interval formula
LAPSE_STABILITY_FLOOR = 0.2      # Stability floor after a lapse
SUCCESS_STABILITY_FLOOR = 0.3    # Stability floor after a successful review


# ---- First review seeds ----
# Harder grade -> lower stability, higher difficulty

INITIAL_STABILITY = {
    Grade.UNKNOWN: 0.2,
    Grade.HARD: 0.7,
    Grade.GOOD: 2.4,
    Grade.EASY: 4.0,
}

INITIAL_DIFFICULTY = {
    Grade.UNKNOWN: 8.7,
    Grade.HARD: 7.2,
    Grade.GOOD: 5.5,
    Grade.EASY: 4.2,
}


# ---- Subsequent reviews ----

DIFFICULTY_DELTA = {
    Grade.UNKNOWN: +0.8,
    Grade.HARD: +0.35,
    Grade.GOOD: -0.15,
    Grade.EASY: -0.40,
}

# Multiplier for stability growth on successful recall
STABILITY_BONUS = {
    Grade.HARD: 0.9,
    Grade.GOOD: 1.35,
    Grade.EASY: 1.75,
}

# Lapse shrink factor: LAPSE_BASE + LAPSE_R_WEIGHT * R
LAPSE_BASE = 0.35
LAPSE_R_WEIGHT = 0.25

# Easier cards (lower D) get a larger boost: 1 + (D_MAX - D) * DIFFICULTY_PENALTY_RATE
DIFFICULTY_PENALTY_RATE = 0.03
