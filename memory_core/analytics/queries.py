"""
Data-loading helpers for analytics.
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Optional

import pandas as pd

from memory_core.analytics.constants import REVIEW_COLUMNS, STATE_COLUMNS

if TYPE_CHECKING:
    from memory_core.store import EntityStore


def load_reviews_df(store: EntityStore, dataset_id: Optional[str] = None) -> pd.DataFrame:
    """
    Load the review log (optionally for one dataset) into a dataframe.
    """
    reviews = store.list_reviews(dataset_id)
    if not reviews:
        return pd.DataFrame(columns=REVIEW_COLUMNS)

    df = pd.DataFrame([review.model_dump() for review in reviews])
    return df[REVIEW_COLUMNS].sort_values("reviewed_at").reset_index(drop=True)


def load_card_states_df(store: EntityStore, dataset_id: Optional[str] = None) -> pd.DataFrame:
    """
    Load current card states (optionally for one dataset) into a dataframe.
    """
    states = store.list_card_states(dataset_id)
    if not states:
        return pd.DataFrame(columns=STATE_COLUMNS)

    return pd.DataFrame([dataclasses.asdict(state) for state in states])[STATE_COLUMNS]


def load_card_counts(store: EntityStore) -> dict[str, int]:
    """
    Number of stored cards per dataset, counted from the cards table.

    Every known dataset is present, with 0 when it has no cards.
    """
    counts = {summary.dataset_id: 0 for summary in store.list_datasets()}
    cards = store.list_all("cards")
    if not cards:
        return counts

    per_dataset = pd.DataFrame(cards).groupby("datasetId").size()
    for dataset_id, count in per_dataset.items():
        if dataset_id in counts:
            counts[dataset_id] = int(count)
    return counts
