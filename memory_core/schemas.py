"""
Pydantic models for datasets, cards, reviews and settings.

These models define the structure of stored rows and of the JSON formats
(dataset import, backup). Wire keys are camelCase; Python attributes are
snake_case.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from memory_core.fsrs.constants import DEFAULT_TARGET_R, TARGET_R_MAX, TARGET_R_MIN


# Configuration
DATASET_SCHEMA = "dataset-json-v1"
BACKUP_VERSION = 1
SETTINGS_KEY = "app-settings"
KEY_SEPARATOR = "::"


def iso_from_ms(ms: int) -> str:
    """UTC ISO-8601 string with millisecond precision, e.g. 2026-01-01T00:00:00.000Z."""
    moment = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_card_key(dataset_id: str, local_id: str) -> str:
    """Composite key: dataset id + separator + local id."""
    return f"{dataset_id}{KEY_SEPARATOR}{local_id}"


def make_pair_key(a: str, b: str) -> str:
    """Unordered pair key, e.g. make_pair_key("b", "a") == "a::b"."""
    return KEY_SEPARATOR.join(sorted([a, b]))


def _as_str_list(value: Any) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return []


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---- Cards ----

class Card(_CamelModel):
    """A single flashcard. Owned by exactly one dataset."""
    id: str
    question: str = Field(..., min_length=1)
    answers: list[str] = Field(..., min_length=1)
    topic: str = ""
    explanation: str = ""
    tags: list[str] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> list[str]:
        return _as_str_list(value)

    @classmethod
    def from_import(cls, raw: Any, position: int, now_iso: str) -> Optional["Card"]:
        """
        Build a card from one entry of an import payload.

        Returns None for entries that should be dropped (no question or no
        answers). Missing ids become card-<position> (1-based).
        """
        if not isinstance(raw, dict):
            return None

        question = str(raw.get("question") or "")
        answers = _as_str_list(raw.get("answers"))
        if not question or not answers:
            return None

        card_id = raw.get("id")
        return cls(
            id=str(card_id) if card_id is not None else f"card-{position}",
            question=question,
            answers=answers,
            topic=str(raw.get("topic") or ""),
            explanation=str(raw.get("explanation") or ""),
            tags=_as_str_list(raw.get("tags")),
            created_at=str(raw["createdAt"]) if raw.get("createdAt") else now_iso,
            updated_at=str(raw["updatedAt"]) if raw.get("updatedAt") else now_iso,
        )


# ---- Datasets ----

class DatasetImport(_CamelModel):
    """Top-level dataset import payload. Cards are validated one by one."""
    dataset_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    schema_name: str = Field(default=DATASET_SCHEMA, alias="schema")
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    cards: list[Any]

    @field_validator("dataset_id", "title", mode="before")
    @classmethod
    def _coerce_scalar(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("description", mode="before")
    @classmethod
    def _coerce_description(cls, value: Any) -> str:
        return str(value) if value else ""

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value: Any) -> list[str]:
        return _as_str_list(value)

    @field_validator("schema_name", mode="before")
    @classmethod
    def _default_schema(cls, value: Any) -> str:
        return str(value) if value else DATASET_SCHEMA


class DatasetSummary(_CamelModel):
    """Stored dataset header with denormalized card count."""
    dataset_id: str
    title: str
    schema_name: str = Field(default=DATASET_SCHEMA, alias="schema")
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    card_count: int = 0
    updated_at: int = 0


# ---- Reviews and confusions ----

class Review(_CamelModel):
    """Append-only review log entry."""
    card_id: str
    dataset_id: str
    grade: int = Field(..., ge=1, le=4)
    response_ms: int = 0
    reviewed_at: int


class Confusion(_CamelModel):
    """Counter for an unordered pair of cards mistaken for one another."""
    dataset_id: str
    pair_key: str
    card_id_a: str
    card_id_b: str
    count: int = 0


# ---- Settings ----

class AppSettings(_CamelModel):
    """Process-wide study settings (singleton row)."""
    target_retention_rate: float = Field(
        default=DEFAULT_TARGET_R, ge=TARGET_R_MIN, le=TARGET_R_MAX
    )
    exam_date: Optional[str] = None

    @field_validator("exam_date")
    @classmethod
    def _check_exam_date(cls, value: Optional[str]) -> Optional[str]:
        if value in (None, ""):
            return None
        date.fromisoformat(value)
        return value


# ---- Backup ----

class Backup(_CamelModel):
    """Full snapshot of all six tables."""
    version: int
    exported_at: str = ""
    datasets: list[dict] = Field(default_factory=list)
    cards: list[dict] = Field(default_factory=list)
    card_state: list[dict] = Field(default_factory=list)
    reviews: list[dict] = Field(default_factory=list)
    confusions: list[dict] = Field(default_factory=list)
    settings: list[dict] = Field(default_factory=list)

    @field_validator(
        "datasets", "cards", "card_state", "reviews", "confusions", "settings",
        mode="before",
    )
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value


# ---- Read models ----

class DueCount(_CamelModel):
    overdue: int = 0
    today: int = 0


class TopConfusionRow(_CamelModel):
    """Confusion counter labelled with both cards' current question text."""
    dataset_id: str
    pair_key: str
    card_id_a: str
    card_id_b: str
    count: int
    label_a: str
    label_b: str
