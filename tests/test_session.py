"""
Tests for the study session state machine.
"""

from datetime import datetime, timedelta

import pytest

from memory_core import confusion
from memory_core.errors import PersistenceError
from memory_core.fsrs import DAY_MS, Grade
from memory_core.schemas import AppSettings
from memory_core.session import StudySession

from conftest import NOW


@pytest.fixture
def session(store, make_dataset, sample_cards):
    store.import_dataset(make_dataset(cards=sample_cards))
    return StudySession(store)


def _answer_current(session, text, grade):
    session.submit_answer(text)
    return session.submit_grade(grade)


def test_initial_state(session):
    assert session.state.status == "idle"
    assert session.state.current is None


def test_start_builds_queue(session):
    state = session.start("ds")

    assert state.status == "question"
    assert state.total == 3
    assert state.index == 0
    assert state.current.card.question == "apple"
    assert state.submitted_at == NOW


def test_start_with_nothing_due(store, make_dataset):
    store.import_dataset(make_dataset(cards=[]))
    state = StudySession(store).start("ds")

    assert state.status == "done"
    assert state.total == 0


def test_start_ignored_while_studying(session):
    session.start("ds")
    session.submit_answer("りんご")
    assert session.start("ds").status == "reviewing"


def test_start_failure_returns_to_idle(session, monkeypatch):
    def broken(dataset_id):
        raise PersistenceError("database is locked")

    monkeypatch.setattr(session.store, "build_due_queue", broken)
    state = session.start("ds")

    assert state.status == "idle"
    assert "locked" in state.error


def test_full_session(session, store, clock):
    session.start("ds")

    # apple
    clock.advance(1500)
    state = session.submit_answer("りんご")
    assert state.status == "reviewing"
    assert state.is_correct
    assert state.matched_answer == "りんご"
    assert state.response_ms == 1500
    assert session.submit_grade(Grade.GOOD) is True

    # Capital of Japan
    state = session.state
    assert state.status == "question"
    assert state.index == 1
    assert state.user_answer == ""
    assert state.is_correct is None
    assert state.current.card.id == "c1"
    assert _answer_current(session, " TOKYO ", Grade.EASY) is True

    # Monkey, wrong kana
    assert session.submit_answer("サル").is_correct is False
    assert session.submit_grade(Grade.UNKNOWN) is True

    state = session.state
    assert state.status == "done"
    assert state.current is None
    assert state.correct_count == 2
    assert state.incorrect_count == 1

    reviews = store.list_reviews("ds")
    assert [(r.card_id, r.grade) for r in reviews] == [("c3", 3), ("c1", 4), ("c2", 1)]
    assert reviews[0].response_ms == 1500

    assert store.get_card_state("ds", "c3").due_at == NOW + 1500 + 2 * DAY_MS
    assert store.get_card_state("ds", "c2").due_at == NOW + 1500 + DAY_MS
    assert store.build_due_queue("ds") == []


def test_graded_state_replaces_queue_item(session):
    session.start("ds")
    _answer_current(session, "りんご", Grade.GOOD)

    item = session.state.queue[0]
    assert item.card_state is not None
    assert item.card_state.reps == 1


def test_actions_in_wrong_state_are_ignored(session):
    assert session.submit_answer("x").status == "idle"
    assert session.submit_grade(Grade.GOOD) is False

    session.start("ds")
    assert session.submit_grade(Grade.GOOD) is False
    assert session.state.status == "question"

    session.submit_answer("wrong")
    assert session.submit_answer("again").user_answer == "wrong"


def test_wrong_answer_records_confusion(store, make_dataset):
    store.import_dataset(make_dataset(cards=[
        {"id": "q41", "question": "a", "answers": ["41"]},
        {"id": "q42", "question": "b", "answers": ["42"]},
    ]))
    session = StudySession(store)
    session.start("ds")

    session.submit_answer("42")
    assert session.state.is_correct is False
    session.submit_grade(Grade.UNKNOWN)

    rows = store.list_top_confusions("ds")
    assert [(row.pair_key, row.count) for row in rows] == [("q41::q42", 1)]


def test_confusion_failure_is_ignored(session, monkeypatch):
    def broken(*args):
        raise RuntimeError("boom")

    monkeypatch.setattr(confusion, "detect_confusion", broken)
    session.start("ds")

    state = session.submit_answer("wrong")
    assert state.status == "reviewing"
    assert state.is_correct is False


def test_persistence_failure_allows_retry(session, store, monkeypatch):
    original = store.record_grade
    calls = []

    def flaky(state, review):
        calls.append(review)
        if len(calls) == 1:
            raise PersistenceError("disk I/O error")
        original(state, review)

    monkeypatch.setattr(store, "record_grade", flaky)
    session.start("ds")
    session.submit_answer("りんご")

    assert session.submit_grade(Grade.GOOD) is False
    state = session.state
    assert state.status == "reviewing"
    assert "disk" in state.error
    assert state.correct_count == 0
    assert store.list_reviews("ds") == []

    assert session.submit_grade(Grade.GOOD) is True
    assert session.state.status == "question"
    assert session.state.error is None
    assert session.state.correct_count == 1
    assert len(store.list_reviews("ds")) == 1


def test_on_persisted_hook(store, make_dataset, sample_cards):
    store.import_dataset(make_dataset(cards=sample_cards))
    refreshed = []
    session = StudySession(store, on_persisted=lambda: refreshed.append(store.count_due("ds").overdue))
    session.start("ds")

    _answer_current(session, "りんご", Grade.GOOD)

    assert refreshed == [2]


def test_on_persisted_failure_does_not_stop_session(store, make_dataset, sample_cards):
    store.import_dataset(make_dataset(cards=sample_cards))

    def broken():
        raise RuntimeError("refresh failed")

    session = StudySession(store, on_persisted=broken)
    session.start("ds")

    assert _answer_current(session, "りんご", Grade.GOOD) is True
    assert session.state.index == 1


def test_concurrent_grade_is_ignored(store, make_dataset, sample_cards):
    store.import_dataset(make_dataset(cards=sample_cards))
    nested = []
    holder = {}

    def regrade():
        nested.append(holder["session"].submit_grade(Grade.EASY))

    session = StudySession(store, on_persisted=regrade)
    holder["session"] = session
    session.start("ds")

    assert _answer_current(session, "りんご", Grade.GOOD) is True
    assert nested == [False]
    assert len(store.list_reviews("ds")) == 1


def test_settings_are_read_at_grade_time(store, make_dataset):
    store.import_dataset(make_dataset(cards=[{"id": "c", "question": "q", "answers": ["a"]}]))
    exam_day = datetime.fromtimestamp(NOW / 1000).date() + timedelta(days=1)
    session = StudySession(store)
    session.start("ds")
    session.submit_answer("a")

    store.set_settings({"examDate": exam_day.isoformat()})
    session.submit_grade(Grade.EASY)

    assert store.get_card_state("ds", "c").due_at == NOW + DAY_MS


def test_custom_settings_provider(store, make_dataset):
    store.import_dataset(make_dataset(cards=[{"id": "c", "question": "q", "answers": ["a"]}]))
    session = StudySession(store, settings_provider=lambda: AppSettings(target_retention_rate=0.7))
    session.start("ds")
    session.submit_answer("a")
    session.submit_grade(Grade.EASY)

    # 4.0 * ln(0.7) / ln(0.9) = 13.5 -> 14
    assert store.get_card_state("ds", "c").due_at == NOW + 14 * DAY_MS


def test_reset(session, store):
    session.start("ds")
    _answer_current(session, "りんご", Grade.GOOD)

    state = session.reset()

    assert state.status == "idle"
    assert state.queue == ()
    assert len(store.list_reviews("ds")) == 1
    assert session.start("ds").total == 2
