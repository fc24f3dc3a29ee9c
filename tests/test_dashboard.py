"""
Tests for dashboard aggregation.
"""

import pytest

from memory_core.analytics import build_dashboard, retention_histogram, summarize_reviews
from memory_core.analytics.constants import RETENTION_LABELS, SUMMARY_COLUMNS
from memory_core.fsrs import DAY_MS, Grade
from memory_core.schemas import DueCount
from memory_core.session import StudySession


def _study(store, dataset_id, answers):
    session = StudySession(store)
    session.start(dataset_id)
    for text, grade in answers:
        session.submit_answer(text)
        session.submit_grade(grade)


def test_empty_dashboard(store):
    stats = build_dashboard(store)

    assert stats.due == DueCount(overdue=0, today=0)
    assert stats.avg_retrievability is None
    assert stats.top_confusions == []
    assert stats.due_by_dataset == {}


def test_empty_analytics(store):
    histogram = retention_histogram(store)
    assert list(histogram.index) == RETENTION_LABELS
    assert histogram.sum() == 0

    summary = summarize_reviews(store)
    assert summary.empty
    assert list(summary.columns) == SUMMARY_COLUMNS


def test_dashboard_after_studying(store, clock, make_dataset, sample_cards):
    store.import_dataset(make_dataset(cards=sample_cards))
    store.import_dataset(make_dataset(dataset_id="other", cards=sample_cards[:2]))
    # apple, then Capital of Japan answered with the Monkey's answer
    _study(store, "ds", [("りんご", Grade.GOOD), ("さる", Grade.UNKNOWN)])

    stats = build_dashboard(store)

    assert stats.due.overdue == 3
    assert stats.avg_retrievability == pytest.approx(1.0)
    assert [(row.label_a, row.label_b, row.count) for row in stats.top_confusions] == [
        ("Capital of Japan", "Monkey", 1),
    ]
    assert stats.due_by_dataset == {"ds": 1, "other": 2}

    clock.advance(DAY_MS)
    later = build_dashboard(store, "ds")
    assert later.due.overdue == 2
    assert later.avg_retrievability < 1.0


def test_dashboard_confusion_limit(store, make_dataset, sample_cards):
    store.import_dataset(make_dataset(cards=sample_cards))
    store.increment_confusion("ds", "c1", "c2")
    store.increment_confusion("ds", "c2", "c3")

    assert len(build_dashboard(store, limit=1).top_confusions) == 1
    assert build_dashboard(store, limit=0).top_confusions == []


def test_dashboard_survives_read_failures(store, make_dataset, sample_cards, monkeypatch):
    store.import_dataset(make_dataset(cards=sample_cards))

    def broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(store, "count_due", broken)
    monkeypatch.setattr(store, "list_top_confusions", broken)

    stats = build_dashboard(store)

    assert stats.due == DueCount()
    assert stats.top_confusions == []
    assert stats.due_by_dataset == {"ds": 3}


def test_review_summary(store, make_dataset, sample_cards):
    store.import_dataset(make_dataset(cards=sample_cards))
    _study(store, "ds", [("りんご", Grade.GOOD), ("wrong", Grade.UNKNOWN), ("さる", Grade.HARD)])

    summary = summarize_reviews(store, "ds")

    assert len(summary) == 1
    row = summary.iloc[0]
    assert row["dataset_id"] == "ds"
    assert row["total_reviews"] == 3
    assert row["unique_cards"] == 3
    assert row["lapse_rate"] == pytest.approx(1 / 3)


def test_retention_histogram(store, clock, make_dataset, sample_cards):
    store.import_dataset(make_dataset(cards=sample_cards))
    _study(store, "ds", [("りんご", Grade.GOOD), ("tokyo", Grade.UNKNOWN)])

    histogram = retention_histogram(store, "ds")
    assert histogram[">90%"] == 2

    # c1 has S=0.2, c3 has S=2.4
    clock.advance(2 * DAY_MS)
    histogram = retention_histogram(store, "ds")
    assert histogram["<=50%"] == 1
    assert histogram[">90%"] == 1
    assert histogram.sum() == 2


def test_due_by_dataset_counts_stored_cards(store, make_dataset, sample_cards):
    store.import_dataset(make_dataset(cards=sample_cards))
    store.put("cards", {"datasetId": "ds", "id": "c9", "question": "extra", "answers": ["x"]})

    stats = build_dashboard(store)

    assert stats.due.overdue == 4
    assert stats.due_by_dataset == {"ds": 4}
