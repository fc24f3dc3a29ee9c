"""
Entity Store - transactional storage for datasets, cards and study history

One EntityStore instance owns one database. Every public method runs in a
single transaction: multi-table operations (dataset import, cascading
delete, grade submission, backup restore) either land completely or not at
all.

Composite keys are "<dataset_id>::<local_id>". Every table owned by a
dataset is indexed on dataset_id, so per-dataset scans and cascades only
touch matching rows.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Optional, Union

import pydantic
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from memory_core import config
from memory_core.errors import FormatError, NotFoundError, ValidationError
from memory_core.fsrs.memory_state import (
    CardState,
    calculate_retrievability,
    end_of_local_day,
    now_ms,
)
from memory_core.schemas import (
    BACKUP_VERSION,
    AppSettings,
    Backup,
    Card,
    Confusion,
    DatasetImport,
    DatasetSummary,
    DueCount,
    Review,
    SETTINGS_KEY,
    TopConfusionRow,
    iso_from_ms,
    make_card_key,
    make_pair_key,
)
from memory_core.session_types import StudyQueueItem
from memory_core.store import records
from memory_core.store.database import Database
from memory_core.store.models import (
    CardRow,
    CardStateRow,
    ConfusionRow,
    DatasetRow,
    ReviewRow,
    SettingsRow,
)
from memory_core.text import collation_key

logger = logging.getLogger(__name__)

JsonInput = Union[str, bytes, dict]

# Tables owned by a dataset, deleted together on cascade
OWNED_MODELS = (CardRow, CardStateRow, ReviewRow, ConfusionRow)


def _load_json(raw: JsonInput, error_cls: type[Exception], label: str) -> Any:
    if isinstance(raw, (str, bytes)):
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise error_cls(f"{label} is not valid JSON: {exc}") from exc
    return raw


def parse_dataset(raw: JsonInput, now: int) -> tuple[DatasetImport, list[Card]]:
    """
    Validate a dataset import payload.

    Malformed cards are dropped silently. Duplicate card ids keep the last
    occurrence.

    Raises:
        ValidationError: unparseable JSON or missing datasetId/title/cards
    """
    data = _load_json(raw, ValidationError, "Dataset")
    if not isinstance(data, dict):
        raise ValidationError("Dataset JSON must be an object")

    try:
        dataset = DatasetImport.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"datasetId / title / cards are required: {exc}") from exc

    now_iso = iso_from_ms(now)
    cards: dict[str, Card] = {}
    for position, raw_card in enumerate(dataset.cards, start=1):
        card = Card.from_import(raw_card, position, now_iso)
        if card is not None:
            cards[card.id] = card

    dropped = len(dataset.cards) - len(cards)
    if dropped:
        logger.info("Dataset %s: dropped %d malformed or duplicate cards", dataset.dataset_id, dropped)

    return dataset, list(cards.values())


class EntityStore:
    """
    Explicitly constructed store handle.

    Lifecycle: open() -> ready (or error) -> close(). Also usable as a
    context manager.
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        clock: Optional[Callable[[], int]] = None
    ) -> None:
        self.database = Database(database_url or config.get_database_url())
        self.clock = clock or now_ms

    # ---- Lifecycle ----

    @property
    def ready(self) -> bool:
        return self.database.ready

    @property
    def error(self) -> Optional[str]:
        return self.database.error

    def open(self) -> "EntityStore":
        self.database.open()
        return self

    def close(self) -> None:
        self.database.close()

    def reset(self) -> None:
        """
        DANGEROUS: Delete all data and recreate tables.
        """
        self.database.reset()

    def __enter__(self) -> "EntityStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _transaction(self):
        return self.database.transaction()

    # ---- Generic per-kind operations ----

    def put(self, kind: str, record: dict) -> None:
        """
        Insert or replace one record (backup shape) of the given kind.

        Writing a card refreshes its dataset's card count.
        """
        spec = records.table_spec(kind)
        with self._transaction() as session:
            row = session.merge(spec.from_record(record))
            if kind == "cards":
                self._refresh_summary(session, row.dataset_id)

    def get_by_id(self, kind: str, key: Any) -> Optional[dict]:
        spec = records.table_spec(kind)
        with self._transaction() as session:
            row = session.get(spec.model, int(key) if spec.int_key else key)
            return spec.to_record(row) if row is not None else None

    def delete(self, kind: str, key: Any) -> bool:
        """
        Delete one record by primary key. Returns False if absent.

        Deleting a dataset removes everything it owns; deleting a card
        refreshes its dataset's card count.
        """
        spec = records.table_spec(kind)
        with self._transaction() as session:
            row = session.get(spec.model, int(key) if spec.int_key else key)
            if row is None:
                return False
            if kind == "datasets":
                self._delete_owned_rows(session, row.dataset_id)
                return True
            dataset_id = getattr(row, "dataset_id", None)
            session.delete(row)
            if kind == "cards":
                self._refresh_summary(session, dataset_id)
            return True

    def list_all(self, kind: str) -> list[dict]:
        spec = records.table_spec(kind)
        with self._transaction() as session:
            return [spec.to_record(row) for row in session.query(spec.model).all()]

    def list_by_index(self, kind: str, dataset_id: str) -> list[dict]:
        """Records of one kind belonging to a dataset, via the dataset_id index."""
        spec = records.table_spec(kind)
        if not spec.indexed:
            raise ValueError(f"Record kind {kind!r} has no dataset index")
        with self._transaction() as session:
            rows = session.query(spec.model).filter(spec.model.dataset_id == dataset_id).all()
            return [spec.to_record(row) for row in rows]

    # ---- Datasets ----

    def list_datasets(self) -> list[DatasetSummary]:
        """All dataset summaries, most recently updated first."""
        with self._transaction() as session:
            rows = session.query(DatasetRow).all()
            summaries = [records.summary_from_row(row) for row in rows]
        summaries.sort(key=lambda s: (-s.updated_at, collation_key(s.title)))
        return summaries

    def get_dataset(self, dataset_id: str) -> Optional[DatasetSummary]:
        with self._transaction() as session:
            row = session.get(DatasetRow, dataset_id)
            return records.summary_from_row(row) if row is not None else None

    def import_dataset(self, raw: JsonInput) -> DatasetSummary:
        """
        Import a dataset, replacing any existing dataset with the same id.

        Two phases in one transaction: delete every row the dataset owns
        (cards, states, reviews, confusions), then insert the new summary and
        cards. A dataset id therefore always has exactly one generation of
        rows.

        Raises:
            ValidationError: payload is unparseable or missing required fields
        """
        now = self.clock()
        dataset, cards = parse_dataset(raw, now)

        summary = DatasetSummary(
            dataset_id=dataset.dataset_id,
            title=dataset.title,
            schema_name=dataset.schema_name,
            description=dataset.description,
            tags=dataset.tags,
            card_count=len(cards),
            updated_at=now,
        )

        with self._transaction() as session:
            removed = self._delete_owned_rows(session, dataset.dataset_id)
            session.add(DatasetRow(
                dataset_id=summary.dataset_id,
                schema_name=summary.schema_name,
                title=summary.title,
                description=summary.description,
                tags=list(summary.tags),
                card_count=summary.card_count,
                updated_at=summary.updated_at,
            ))
            session.add_all(records.card_to_row(dataset.dataset_id, card) for card in cards)

        if removed:
            logger.info("Replaced dataset %s (%d old rows removed)", dataset.dataset_id, removed)
        logger.info("Imported dataset %s with %d cards", dataset.dataset_id, len(cards))
        return summary

    def delete_dataset(self, dataset_id: str) -> None:
        """
        Delete a dataset and everything it owns.

        Raises:
            NotFoundError: no dataset with this id
        """
        with self._transaction() as session:
            if session.get(DatasetRow, dataset_id) is None:
                raise NotFoundError(f"Dataset not found: {dataset_id}")
            removed = self._delete_owned_rows(session, dataset_id)
        logger.info("Deleted dataset %s (%d rows)", dataset_id, removed)

    def _delete_owned_rows(self, session: Session, dataset_id: str) -> int:
        removed = 0
        for model in OWNED_MODELS:
            removed += session.query(model).filter(
                model.dataset_id == dataset_id
            ).delete(synchronize_session=False)
        removed += session.query(DatasetRow).filter(
            DatasetRow.dataset_id == dataset_id
        ).delete(synchronize_session=False)
        return removed

    def _refresh_summary(self, session: Session, dataset_id: str) -> None:
        summary = session.get(DatasetRow, dataset_id)
        if summary is None:
            return
        session.flush()
        summary.card_count = session.query(func.count(CardRow.db_key)).filter(
            CardRow.dataset_id == dataset_id
        ).scalar() or 0
        summary.updated_at = self.clock()

    # ---- Cards ----

    def get_cards(self, dataset_id: str) -> list[Card]:
        """Cards of a dataset ordered by question text."""
        with self._transaction() as session:
            rows = session.query(CardRow).filter(CardRow.dataset_id == dataset_id).all()
            cards = [records.card_from_row(row) for row in rows]
        cards.sort(key=lambda c: collation_key(c.question))
        return cards

    def get_card(self, dataset_id: str, card_id: str) -> Optional[Card]:
        with self._transaction() as session:
            row = session.get(CardRow, make_card_key(dataset_id, card_id))
            return records.card_from_row(row) if row is not None else None

    def upsert_card(self, dataset_id: str, card: Union[Card, dict]) -> Card:
        """
        Insert or update a card by id, keeping its original createdAt.

        Raises:
            ValidationError: empty question or no answers
            NotFoundError: no dataset with this id
        """
        if not isinstance(card, Card):
            try:
                card = Card.model_validate(card)
            except pydantic.ValidationError as exc:
                raise ValidationError(f"Card needs a question and at least one answer: {exc}") from exc

        now_iso = iso_from_ms(self.clock())
        with self._transaction() as session:
            if session.get(DatasetRow, dataset_id) is None:
                raise NotFoundError(f"Dataset not found: {dataset_id}")

            existing = session.get(CardRow, make_card_key(dataset_id, card.id))
            created_at = (
                existing.created_at if existing is not None and existing.created_at
                else card.created_at or now_iso
            )
            stored = card.model_copy(update={"created_at": created_at, "updated_at": now_iso})
            session.merge(records.card_to_row(dataset_id, stored))
            self._refresh_summary(session, dataset_id)

        return stored

    def delete_card(self, dataset_id: str, card_id: str) -> None:
        """
        Delete a card with its state, its reviews and the confusions naming it.

        Raises:
            NotFoundError: no such card in this dataset
        """
        key = make_card_key(dataset_id, card_id)
        with self._transaction() as session:
            row = session.get(CardRow, key)
            if row is None:
                raise NotFoundError(f"Card not found: {dataset_id}/{card_id}")
            session.delete(row)
            session.query(CardStateRow).filter(CardStateRow.id == key).delete(synchronize_session=False)
            session.query(ReviewRow).filter(
                ReviewRow.dataset_id == dataset_id,
                ReviewRow.card_id == card_id,
            ).delete(synchronize_session=False)
            session.query(ConfusionRow).filter(
                ConfusionRow.dataset_id == dataset_id,
                or_(ConfusionRow.card_id_a == card_id, ConfusionRow.card_id_b == card_id),
            ).delete(synchronize_session=False)
            self._refresh_summary(session, dataset_id)

    # ---- Scheduling state ----

    def build_due_queue(self, dataset_id: str) -> list[StudyQueueItem]:
        """
        Cards due now: never reviewed, or due_at <= now.

        Never-reviewed cards come first (ordered by question text), then
        reviewed cards by ascending due_at.
        """
        now = self.clock()
        with self._transaction() as session:
            card_rows = session.query(CardRow).filter(CardRow.dataset_id == dataset_id).all()
            state_rows = session.query(CardStateRow).filter(CardStateRow.dataset_id == dataset_id).all()
            cards = [records.card_from_row(row) for row in card_rows]
            states = {row.card_id: records.state_from_row(row) for row in state_rows}

        queue = [
            StudyQueueItem(card=card, card_state=states.get(card.id))
            for card in cards
            if card.id not in states or states[card.id].due_at <= now
        ]

        def sort_key(item: StudyQueueItem):
            if item.card_state is None:
                return (0, collation_key(item.card.question), 0)
            return (1, ("", ""), item.card_state.due_at)

        queue.sort(key=sort_key)
        return queue

    def get_card_state(self, dataset_id: str, card_id: str) -> Optional[CardState]:
        with self._transaction() as session:
            row = session.get(CardStateRow, make_card_key(dataset_id, card_id))
            return records.state_from_row(row) if row is not None else None

    def upsert_card_state(self, state: CardState) -> None:
        with self._transaction() as session:
            session.merge(records.state_to_row(state))

    def append_review(self, review: Review) -> None:
        with self._transaction() as session:
            session.add(ReviewRow(
                dataset_id=review.dataset_id,
                card_id=review.card_id,
                grade=review.grade,
                response_ms=review.response_ms,
                reviewed_at=review.reviewed_at,
            ))

    def record_grade(self, state: CardState, review: Review) -> None:
        """
        Persist a new card state and its review log entry together.

        Raises:
            NotFoundError: the card no longer exists
        """
        with self._transaction() as session:
            if session.get(CardRow, make_card_key(state.dataset_id, state.card_id)) is None:
                raise NotFoundError(f"Card not found: {state.dataset_id}/{state.card_id}")
            session.merge(records.state_to_row(state))
            session.add(ReviewRow(
                dataset_id=review.dataset_id,
                card_id=review.card_id,
                grade=review.grade,
                response_ms=review.response_ms,
                reviewed_at=review.reviewed_at,
            ))

    def list_reviews(self, dataset_id: Optional[str] = None) -> list[Review]:
        """Review log, oldest first."""
        with self._transaction() as session:
            query = session.query(ReviewRow)
            if dataset_id is not None:
                query = query.filter(ReviewRow.dataset_id == dataset_id)
            rows = query.order_by(ReviewRow.reviewed_at, ReviewRow.id).all()
            return [
                Review(
                    card_id=row.card_id,
                    dataset_id=row.dataset_id,
                    grade=row.grade,
                    response_ms=row.response_ms,
                    reviewed_at=row.reviewed_at,
                )
                for row in rows
            ]

    def list_card_states(self, dataset_id: Optional[str] = None) -> list[CardState]:
        with self._transaction() as session:
            query = session.query(CardStateRow)
            if dataset_id is not None:
                query = query.filter(CardStateRow.dataset_id == dataset_id)
            return [records.state_from_row(row) for row in query.all()]

    # ---- Confusions ----

    def increment_confusion(self, dataset_id: str, card_id: str, other_card_id: str) -> Confusion:
        """Create or bump the counter for the unordered pair (card_id, other_card_id)."""
        card_id_a, card_id_b = sorted([card_id, other_card_id])
        pair_key = make_pair_key(card_id, other_card_id)
        row_id = make_card_key(dataset_id, pair_key)

        with self._transaction() as session:
            row = session.get(ConfusionRow, row_id)
            if row is None:
                row = ConfusionRow(
                    id=row_id,
                    dataset_id=dataset_id,
                    pair_key=pair_key,
                    card_id_a=card_id_a,
                    card_id_b=card_id_b,
                    count=1,
                )
                session.add(row)
            else:
                row.count += 1

            return Confusion(
                dataset_id=row.dataset_id,
                pair_key=row.pair_key,
                card_id_a=row.card_id_a,
                card_id_b=row.card_id_b,
                count=row.count,
            )

    def list_top_confusions(self, dataset_id: Optional[str] = None, limit: int = 10) -> list[TopConfusionRow]:
        """
        Most frequent confusion pairs, labelled with current question text.

        Labels fall back to the raw card id when a card no longer exists.
        """
        if limit <= 0:
            return []

        with self._transaction() as session:
            query = session.query(ConfusionRow)
            if dataset_id is not None:
                query = query.filter(ConfusionRow.dataset_id == dataset_id)
            rows = query.order_by(ConfusionRow.count.desc(), ConfusionRow.id).limit(limit).all()

            result: list[TopConfusionRow] = []
            for row in rows:
                card_a = session.get(CardRow, make_card_key(row.dataset_id, row.card_id_a))
                card_b = session.get(CardRow, make_card_key(row.dataset_id, row.card_id_b))
                result.append(TopConfusionRow(
                    dataset_id=row.dataset_id,
                    pair_key=row.pair_key,
                    card_id_a=row.card_id_a,
                    card_id_b=row.card_id_b,
                    count=row.count,
                    label_a=card_a.question if card_a is not None else row.card_id_a,
                    label_b=card_b.question if card_b is not None else row.card_id_b,
                ))
            return result

    # ---- Due counts and retention ----

    def count_due(self, dataset_id: Optional[str] = None) -> DueCount:
        """
        Count due cards across one dataset (or all datasets).

        overdue: never reviewed, or due_at <= now
        today:   never reviewed, or due_at <= end of the local day
        """
        now = self.clock()
        today_end = end_of_local_day(now)

        with self._transaction() as session:
            ds_query = session.query(DatasetRow.dataset_id)
            if dataset_id is not None:
                ds_query = ds_query.filter(DatasetRow.dataset_id == dataset_id)
            dataset_ids = [row.dataset_id for row in ds_query.all()]
            if not dataset_ids:
                return DueCount(overdue=0, today=0)

            card_keys = session.query(CardRow.db_key).filter(
                CardRow.dataset_id.in_(dataset_ids)
            ).all()
            due_by_key = dict(
                session.query(CardStateRow.id, CardStateRow.due_at).filter(
                    CardStateRow.dataset_id.in_(dataset_ids)
                ).all()
            )

        overdue = 0
        today = 0
        for (key,) in card_keys:
            due_at = due_by_key.get(key)
            if due_at is None:
                overdue += 1
                today += 1
                continue
            if due_at <= now:
                overdue += 1
            if due_at <= today_end:
                today += 1

        return DueCount(overdue=overdue, today=today)

    def compute_avg_retrievability(self, dataset_id: Optional[str] = None) -> Optional[float]:
        """Mean retrievability right now over all card states, or None if there are none."""
        now = self.clock()
        with self._transaction() as session:
            query = session.query(CardStateRow.last_review_at, CardStateRow.stability)
            if dataset_id is not None:
                query = query.filter(CardStateRow.dataset_id == dataset_id)
            rows = query.all()

        if not rows:
            return None
        total = sum(
            calculate_retrievability(now, last_review_at, stability)
            for last_review_at, stability in rows
        )
        return total / len(rows)

    # ---- Backup ----

    def export_all(self) -> dict:
        """Snapshot of all six tables in backup format."""
        backup: dict[str, Any] = {
            "version": BACKUP_VERSION,
            "exportedAt": iso_from_ms(self.clock()),
        }
        with self._transaction() as session:
            for kind in records.KINDS:
                spec = records.table_spec(kind)
                backup[kind] = [spec.to_record(row) for row in session.query(spec.model).all()]

        logger.info(
            "Exported backup: %s",
            ", ".join(f"{kind}={len(backup[kind])}" for kind in records.KINDS),
        )
        return backup

    def import_all(self, raw: JsonInput) -> None:
        """
        Restore a backup, replacing the entire database.

        Every row is decoded before the first write, so a rejected backup
        leaves the store unchanged.

        Raises:
            FormatError: unparseable JSON, version other than 1, or malformed rows
        """
        data = _load_json(raw, FormatError, "Backup")
        if not isinstance(data, dict):
            raise FormatError("Backup JSON must be an object")

        version = data.get("version")
        if isinstance(version, bool) or version != BACKUP_VERSION:
            raise FormatError(f"Unsupported backup version: {version!r} (expected {BACKUP_VERSION})")

        try:
            backup = Backup.model_validate(data)
        except pydantic.ValidationError as exc:
            raise FormatError(f"Malformed backup: {exc}") from exc

        rows_by_kind: dict[str, list] = {}
        try:
            for kind in records.KINDS:
                spec = records.table_spec(kind)
                rows_by_kind[kind] = [
                    spec.from_record(record)
                    for record in getattr(backup, _BACKUP_FIELDS[kind])
                ]
        except (KeyError, TypeError, ValueError) as exc:
            raise FormatError(f"Malformed backup row: {exc!r}") from exc

        with self._transaction() as session:
            for kind in records.KINDS:
                session.query(records.table_spec(kind).model).delete(synchronize_session=False)
            for kind in records.KINDS:
                for row in rows_by_kind[kind]:
                    session.merge(row)

        logger.info(
            "Restored backup: %s",
            ", ".join(f"{kind}={len(rows_by_kind[kind])}" for kind in records.KINDS),
        )

    # ---- Settings ----

    def get_settings(self) -> AppSettings:
        with self._transaction() as session:
            row = session.get(SettingsRow, SETTINGS_KEY)
            stored = dict(row.value or {}) if row is not None else {}

        try:
            return AppSettings.model_validate(stored)
        except pydantic.ValidationError as exc:
            logger.warning("Stored settings are invalid, using defaults: %s", exc)
            return AppSettings()

    def set_settings(self, partial: Union[AppSettings, dict]) -> AppSettings:
        """
        Merge a partial settings update over the stored value.

        Raises:
            ValidationError: retention rate outside [0.70, 0.97] or a bad exam date
        """
        if isinstance(partial, AppSettings):
            update = partial.model_dump(by_alias=True)
        else:
            update = {_to_settings_key(key): value for key, value in partial.items()}

        with self._transaction() as session:
            row = session.get(SettingsRow, SETTINGS_KEY)
            current = dict(row.value or {}) if row is not None else {}
            merged = {**AppSettings().model_dump(by_alias=True), **current, **update}
            try:
                settings = AppSettings.model_validate(merged)
            except pydantic.ValidationError as exc:
                raise ValidationError(f"Invalid settings: {exc}") from exc
            session.merge(SettingsRow(id=SETTINGS_KEY, value=settings.model_dump(by_alias=True)))

        return settings


# Backup attribute holding each record kind
_BACKUP_FIELDS = {
    "datasets": "datasets",
    "cards": "cards",
    "cardState": "card_state",
    "reviews": "reviews",
    "confusions": "confusions",
    "settings": "settings",
}

_SETTINGS_KEYS = {
    "target_retention_rate": "targetRetentionRate",
    "exam_date": "examDate",
}


def _to_settings_key(key: str) -> str:
    return _SETTINGS_KEYS.get(key, key)
