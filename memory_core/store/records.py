"""
Record mapping between ORM rows, backup records and domain objects.

Backup records are plain dicts with camelCase keys, the same shape the
export format uses. The generic per-kind store operations speak this shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from memory_core.fsrs.memory_state import CardState
from memory_core.schemas import Card, DatasetSummary, make_card_key
from memory_core.store.models import (
    CardRow,
    CardStateRow,
    ConfusionRow,
    DatasetRow,
    ReviewRow,
    SettingsRow,
)


# ---- Domain objects ----

def card_from_row(row: CardRow) -> Card:
    # Stored rows are trusted; skip re-validation
    return Card.model_construct(
        id=row.card_id,
        question=row.question,
        answers=list(row.answers or []),
        topic=row.topic or "",
        explanation=row.explanation or "",
        tags=list(row.tags or []),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def card_to_row(dataset_id: str, card: Card) -> CardRow:
    return CardRow(
        db_key=make_card_key(dataset_id, card.id),
        dataset_id=dataset_id,
        card_id=card.id,
        question=card.question,
        answers=list(card.answers),
        topic=card.topic,
        explanation=card.explanation,
        tags=list(card.tags),
        created_at=card.created_at,
        updated_at=card.updated_at,
    )


def summary_from_row(row: DatasetRow) -> DatasetSummary:
    return DatasetSummary(
        dataset_id=row.dataset_id,
        title=row.title,
        schema_name=row.schema_name,
        description=row.description or "",
        tags=list(row.tags or []),
        card_count=row.card_count,
        updated_at=row.updated_at,
    )


def state_from_row(row: CardStateRow) -> CardState:
    return CardState(
        card_id=row.card_id,
        dataset_id=row.dataset_id,
        stability=row.stability,
        difficulty=row.difficulty,
        last_review_at=row.last_review_at,
        due_at=row.due_at,
        reps=row.reps,
        lapses=row.lapses,
    )


def state_to_row(state: CardState) -> CardStateRow:
    return CardStateRow(
        id=make_card_key(state.dataset_id, state.card_id),
        dataset_id=state.dataset_id,
        card_id=state.card_id,
        stability=state.stability,
        difficulty=state.difficulty,
        last_review_at=state.last_review_at,
        due_at=state.due_at,
        reps=state.reps,
        lapses=state.lapses,
    )


# ---- Backup records ----

def _dataset_record(row: DatasetRow) -> dict:
    return {
        "schema": row.schema_name,
        "datasetId": row.dataset_id,
        "title": row.title,
        "description": row.description,
        "tags": list(row.tags or []),
        "cardCount": row.card_count,
        "updatedAt": row.updated_at,
    }


def _dataset_from_record(record: dict) -> DatasetRow:
    return DatasetRow(
        dataset_id=str(record["datasetId"]),
        schema_name=str(record.get("schema") or "dataset-json-v1"),
        title=str(record["title"]),
        description=str(record.get("description") or ""),
        tags=list(record.get("tags") or []),
        card_count=int(record.get("cardCount", 0)),
        updated_at=int(record.get("updatedAt", 0)),
    )


def _card_record(row: CardRow) -> dict:
    return {
        "id": row.card_id,
        "topic": row.topic,
        "question": row.question,
        "answers": list(row.answers or []),
        "explanation": row.explanation,
        "tags": list(row.tags or []),
        "createdAt": row.created_at,
        "updatedAt": row.updated_at,
        "datasetId": row.dataset_id,
        "dbKey": row.db_key,
    }


def _card_from_record(record: dict) -> CardRow:
    dataset_id = str(record["datasetId"])
    card_id = str(record["id"])
    return CardRow(
        db_key=str(record.get("dbKey") or make_card_key(dataset_id, card_id)),
        dataset_id=dataset_id,
        card_id=card_id,
        question=str(record["question"]),
        answers=[str(a) for a in record["answers"]],
        topic=str(record.get("topic") or ""),
        explanation=str(record.get("explanation") or ""),
        tags=list(record.get("tags") or []),
        created_at=record.get("createdAt"),
        updated_at=record.get("updatedAt"),
    )


def _state_record(row: CardStateRow) -> dict:
    return {
        "id": row.id,
        "cardId": row.card_id,
        "datasetId": row.dataset_id,
        "stability": row.stability,
        "difficulty": row.difficulty,
        "lastReviewAt": row.last_review_at,
        "dueAt": row.due_at,
        "reps": row.reps,
        "lapses": row.lapses,
    }


def _state_from_record(record: dict) -> CardStateRow:
    dataset_id = str(record["datasetId"])
    card_id = str(record["cardId"])
    last_review_at = record.get("lastReviewAt")
    return CardStateRow(
        id=str(record.get("id") or make_card_key(dataset_id, card_id)),
        dataset_id=dataset_id,
        card_id=card_id,
        stability=float(record["stability"]),
        difficulty=float(record["difficulty"]),
        last_review_at=int(last_review_at) if last_review_at is not None else None,
        due_at=int(record["dueAt"]),
        reps=int(record.get("reps", 0)),
        lapses=int(record.get("lapses", 0)),
    )


def _review_record(row: ReviewRow) -> dict:
    return {
        "id": row.id,
        "cardId": row.card_id,
        "datasetId": row.dataset_id,
        "grade": row.grade,
        "responseMs": row.response_ms,
        "reviewedAt": row.reviewed_at,
    }


def _review_from_record(record: dict) -> ReviewRow:
    review_id = record.get("id")
    return ReviewRow(
        id=int(review_id) if review_id is not None else None,
        dataset_id=str(record["datasetId"]),
        card_id=str(record["cardId"]),
        grade=int(record["grade"]),
        response_ms=int(record.get("responseMs") or 0),
        reviewed_at=int(record["reviewedAt"]),
    )


def _confusion_record(row: ConfusionRow) -> dict:
    return {
        "id": row.id,
        "datasetId": row.dataset_id,
        "pairKey": row.pair_key,
        "cardIdA": row.card_id_a,
        "cardIdB": row.card_id_b,
        "count": row.count,
    }


def _confusion_from_record(record: dict) -> ConfusionRow:
    dataset_id = str(record["datasetId"])
    pair_key = str(record["pairKey"])
    return ConfusionRow(
        id=str(record.get("id") or make_card_key(dataset_id, pair_key)),
        dataset_id=dataset_id,
        pair_key=pair_key,
        card_id_a=str(record["cardIdA"]),
        card_id_b=str(record["cardIdB"]),
        count=int(record.get("count", 0)),
    )


def _settings_record(row: SettingsRow) -> dict:
    return {"id": row.id, "value": dict(row.value or {})}


def _settings_from_record(record: dict) -> SettingsRow:
    return SettingsRow(id=str(record["id"]), value=dict(record["value"]))


# ---- Kind registry ----

@dataclass(frozen=True)
class TableSpec:
    """How one record kind maps onto its ORM model."""
    model: type
    to_record: Callable[[Any], dict]
    from_record: Callable[[dict], Any]
    indexed: bool = True  # has a dataset_id index
    int_key: bool = False


TABLES: dict[str, TableSpec] = {
    "datasets": TableSpec(DatasetRow, _dataset_record, _dataset_from_record),
    "cards": TableSpec(CardRow, _card_record, _card_from_record),
    "cardState": TableSpec(CardStateRow, _state_record, _state_from_record),
    "reviews": TableSpec(ReviewRow, _review_record, _review_from_record, int_key=True),
    "confusions": TableSpec(ConfusionRow, _confusion_record, _confusion_from_record),
    "settings": TableSpec(SettingsRow, _settings_record, _settings_from_record, indexed=False),
}

KINDS = tuple(TABLES)


def table_spec(kind: str) -> TableSpec:
    try:
        return TABLES[kind]
    except KeyError:
        raise ValueError(f"Unknown record kind: {kind!r} (expected one of {', '.join(KINDS)})") from None
