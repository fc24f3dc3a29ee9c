"""
SQLAlchemy ORM Models for the study store

Defines the six record kinds: datasets, cards, card_state, reviews,
confusions and settings. Every table owned by a dataset carries an indexed
dataset_id column so per-dataset scans and cascades never touch other rows.
"""

from sqlalchemy import JSON, BigInteger, Column, Float, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class DatasetRow(Base):
    """
    Dataset header with denormalized card count.
    """
    __tablename__ = 'datasets'

    dataset_id = Column(String(255), primary_key=True)
    schema_name = Column("schema", String(50), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)
    card_count = Column(Integer, nullable=False, default=0)
    updated_at = Column(BigInteger, nullable=False)  # epoch ms

    def __repr__(self):
        return f"<DatasetRow({self.dataset_id}, cards={self.card_count})>"


class CardRow(Base):
    """
    A flashcard. Primary key is "<dataset_id>::<card_id>".
    """
    __tablename__ = 'cards'

    db_key = Column(String(512), primary_key=True)
    dataset_id = Column(String(255), nullable=False, index=True)
    card_id = Column(String(255), nullable=False)

    question = Column(Text, nullable=False)
    answers = Column(JSON, nullable=False)  # list[str], at least one
    topic = Column(Text, nullable=False, default="")
    explanation = Column(Text, nullable=False, default="")
    tags = Column(JSON, nullable=False, default=list)

    created_at = Column(String(64), nullable=True)  # ISO timestamp
    updated_at = Column(String(64), nullable=True)

    def __repr__(self):
        return f"<CardRow({self.db_key})>"


class CardStateRow(Base):
    """
    Scheduling memory for one card. Same key as the card.
    """
    __tablename__ = 'card_state'

    id = Column(String(512), primary_key=True)
    dataset_id = Column(String(255), nullable=False, index=True)
    card_id = Column(String(255), nullable=False)

    stability = Column(Float, nullable=False)
    difficulty = Column(Float, nullable=False)
    last_review_at = Column(BigInteger, nullable=True)
    due_at = Column(BigInteger, nullable=False, index=True)
    reps = Column(Integer, nullable=False, default=0)
    lapses = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<CardStateRow({self.id}, due={self.due_at})>"


class ReviewRow(Base):
    """
    Append-only log entry for a single graded review.
    """
    __tablename__ = 'reviews'

    id = Column(Integer, primary_key=True, autoincrement=True)
    dataset_id = Column(String(255), nullable=False, index=True)
    card_id = Column(String(255), nullable=False)

    grade = Column(Integer, nullable=False)  # 1=UNKNOWN, 2=HARD, 3=GOOD, 4=EASY
    response_ms = Column(Integer, nullable=False, default=0)
    reviewed_at = Column(BigInteger, nullable=False, index=True)

    def __repr__(self):
        return f"<ReviewRow(id={self.id}, {self.dataset_id}/{self.card_id}, grade={self.grade})>"


class ConfusionRow(Base):
    """
    Counter for an unordered card pair. Primary key is "<dataset_id>::<a>::<b>".
    """
    __tablename__ = 'confusions'

    id = Column(String(1024), primary_key=True)
    dataset_id = Column(String(255), nullable=False, index=True)
    pair_key = Column(String(512), nullable=False)
    card_id_a = Column(String(255), nullable=False)
    card_id_b = Column(String(255), nullable=False)
    count = Column(Integer, nullable=False, default=0, index=True)

    def __repr__(self):
        return f"<ConfusionRow({self.id}, count={self.count})>"


class SettingsRow(Base):
    """
    Key/value settings record. memory-app uses a single "app-settings" row.
    """
    __tablename__ = 'settings'

    id = Column(String(255), primary_key=True)
    value = Column(JSON, nullable=False)

    def __repr__(self):
        return f"<SettingsRow({self.id})>"
