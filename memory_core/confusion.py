"""
Confusion detection.

When a learner's wrong answer for card X is exactly an accepted answer of
another card Y in the same dataset, the pair (X, Y) is counted as a
confusion. At most one pair is credited per wrong answer.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from memory_core.text import normalize_text

if TYPE_CHECKING:
    from memory_core.store import EntityStore

logger = logging.getLogger(__name__)


def find_confused_card(store: EntityStore, dataset_id: str, card_id: str, input_text: str) -> Optional[str]:
    """Id of the first other card whose answers contain input_text, if any."""
    normalized_input = normalize_text(input_text)
    if not normalized_input:
        return None

    # Scan in key order
    records = sorted(store.list_by_index("cards", dataset_id), key=lambda r: r["dbKey"])
    for record in records:
        if record["id"] == card_id:
            continue
        if any(normalize_text(answer) == normalized_input for answer in record["answers"]):
            return record["id"]
    return None


def detect_confusion(store: EntityStore, dataset_id: str, card_id: str, input_text: str) -> Optional[str]:
    """
    Record a confusion for a wrong answer, if it matches another card.

    Args:
        store: Open entity store
        dataset_id: Dataset of the card being studied
        card_id: Card that was answered wrongly
        input_text: The learner's answer as typed

    Returns:
        Id of the other card credited, or None when nothing matched
    """
    other_id = find_confused_card(store, dataset_id, card_id, input_text)
    if other_id is None:
        return None

    confusion = store.increment_confusion(dataset_id, card_id, other_id)
    logger.debug("Confusion %s in %s now at %d", confusion.pair_key, dataset_id, confusion.count)
    return other_id
