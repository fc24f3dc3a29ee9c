"""
Metric computations for the dashboard.
"""

from __future__ import annotations

import pandas as pd

from memory_core.analytics.constants import RETENTION_BINS, RETENTION_LABELS, SUMMARY_COLUMNS
from memory_core.fsrs.constants import DAY_MS, DECAY_BASE, Grade


def compute_retrievability_series(states_df: pd.DataFrame, now: int) -> pd.Series:
    """
    Retrievability of every card state at `now`, same formula as the scheduler.
    """
    if states_df.empty:
        return pd.Series(dtype="float64")

    stability = states_df["stability"].astype("float64")
    last_review = pd.to_numeric(states_df["last_review_at"], errors="coerce")
    last_review = last_review.where(last_review > 0)
    elapsed_days = ((now - last_review) / DAY_MS).clip(lower=0.0)
    r = DECAY_BASE ** (elapsed_days / stability.where(stability > 0))
    # Never reviewed or degenerate stability -> 0
    return r.fillna(0.0).clip(0.0, 1.0).astype("float64")


def compute_retention_histogram(states_df: pd.DataFrame, now: int) -> pd.Series:
    """
    Number of cards per retrievability bucket.
    """
    empty = pd.Series(0, index=RETENTION_LABELS, dtype="int64")
    if states_df.empty:
        return empty

    r = compute_retrievability_series(states_df, now)
    buckets = pd.cut(r, bins=RETENTION_BINS, labels=RETENTION_LABELS, include_lowest=True)
    return buckets.value_counts().reindex(RETENTION_LABELS, fill_value=0).astype("int64")


def compute_review_summary(reviews_df: pd.DataFrame) -> pd.DataFrame:
    """
    Per-dataset totals: review count, unique cards, lapse rate, mean response time.
    """
    if reviews_df.empty:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    scoped = reviews_df.copy()
    scoped["is_lapse"] = scoped["grade"] == int(Grade.UNKNOWN)
    summary = scoped.groupby("dataset_id").agg(
        total_reviews=("grade", "size"),
        unique_cards=("card_id", "nunique"),
        lapse_rate=("is_lapse", "mean"),
        mean_response_ms=("response_ms", "mean"),
    ).reset_index()
    return summary[SUMMARY_COLUMNS]


def compute_overdue_by_dataset(states_df: pd.DataFrame, card_counts: dict[str, int], now: int) -> dict[str, int]:
    """
    Overdue cards per dataset: never-reviewed cards plus states with due_at <= now.

    card_counts maps dataset id to its number of cards.
    """
    result = {dataset_id: int(count) for dataset_id, count in card_counts.items()}
    if states_df.empty:
        return result

    scoped = states_df[states_df["dataset_id"].isin(list(card_counts))]
    not_due = scoped[scoped["due_at"] > now].groupby("dataset_id").size()
    for dataset_id, count in not_due.items():
        result[dataset_id] = max(0, result[dataset_id] - int(count))
    return result
