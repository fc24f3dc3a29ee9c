"""
Service layer to assemble the study dashboard.

Everything here is read-only and safe to call at any time: with no data,
or when a read fails, the dashboard falls back to zeros, None and empty
collections instead of raising.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import pandas as pd

from memory_core.analytics.constants import TOP_CONFUSIONS_LIMIT
from memory_core.analytics.metrics import (
    compute_overdue_by_dataset,
    compute_retention_histogram,
    compute_review_summary,
)
from memory_core.analytics.queries import load_card_counts, load_card_states_df, load_reviews_df
from memory_core.analytics.types import DashboardStats
from memory_core.schemas import DueCount

if TYPE_CHECKING:
    from memory_core.store import EntityStore

logger = logging.getLogger(__name__)


def _due_by_dataset(store: EntityStore) -> dict[str, int]:
    card_counts = load_card_counts(store)
    states_df = load_card_states_df(store)
    return compute_overdue_by_dataset(states_df, card_counts, store.clock())


def build_dashboard(
    store: EntityStore,
    dataset_id: Optional[str] = None,
    limit: int = TOP_CONFUSIONS_LIMIT
) -> DashboardStats:
    """
    Build due counts, mean retrievability, top confusions and per-dataset
    overdue counts in one read-model.
    """
    try:
        due = store.count_due(dataset_id)
    except Exception:
        logger.warning("Dashboard: due count failed", exc_info=True)
        due = DueCount()

    try:
        avg_retrievability = store.compute_avg_retrievability(dataset_id)
    except Exception:
        logger.warning("Dashboard: retrievability failed", exc_info=True)
        avg_retrievability = None

    try:
        top_confusions = store.list_top_confusions(dataset_id, limit)
    except Exception:
        logger.warning("Dashboard: confusions failed", exc_info=True)
        top_confusions = []

    try:
        due_by_dataset = _due_by_dataset(store)
    except Exception:
        logger.warning("Dashboard: per-dataset due counts failed", exc_info=True)
        due_by_dataset = {}

    return DashboardStats(
        due=due,
        avg_retrievability=avg_retrievability,
        top_confusions=top_confusions,
        due_by_dataset=due_by_dataset,
    )


def summarize_reviews(store: EntityStore, dataset_id: Optional[str] = None) -> pd.DataFrame:
    """
    Per-dataset review totals: count, unique cards, lapse rate, mean response time.
    """
    return compute_review_summary(load_reviews_df(store, dataset_id))


def retention_histogram(store: EntityStore, dataset_id: Optional[str] = None) -> pd.Series:
    """
    Number of reviewed cards per current-retrievability bucket.
    """
    return compute_retention_histogram(load_card_states_df(store, dataset_id), store.clock())
