"""
Constants for dashboard aggregation.
"""

from __future__ import annotations

from typing import Final


TOP_CONFUSIONS_LIMIT: Final[int] = 10

# Right-closed retrievability buckets for the retention histogram
RETENTION_BINS: Final[list[float]] = [0.0, 0.5, 0.7, 0.9, 1.0]
RETENTION_LABELS: Final[list[str]] = ["<=50%", "50-70%", "70-90%", ">90%"]

REVIEW_COLUMNS: Final[list[str]] = ["dataset_id", "card_id", "grade", "response_ms", "reviewed_at"]
STATE_COLUMNS: Final[list[str]] = [
    "dataset_id", "card_id", "stability", "difficulty",
    "last_review_at", "due_at", "reps", "lapses",
]
SUMMARY_COLUMNS: Final[list[str]] = [
    "dataset_id", "total_reviews", "unique_cards", "lapse_rate", "mean_response_ms",
]
