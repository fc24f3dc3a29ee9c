"""
Shared fixtures: an in-memory store per test and a controllable clock.
"""

import pytest

from memory_core.store import EntityStore

# 2025-10-09T09:06:40Z
NOW = 1_760_000_800_000


class FakeClock:
    """Callable clock returning a settable epoch-ms timestamp."""

    def __init__(self, start=NOW):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    store = EntityStore("sqlite://", clock=clock)
    store.open()
    yield store
    store.close()


@pytest.fixture
def make_dataset():
    """Build a dataset import payload."""
    def _make(dataset_id="ds", cards=None, title="Test Deck", **extra):
        payload = {
            "schema": "dataset-json-v1",
            "datasetId": dataset_id,
            "title": title,
            "cards": cards if cards is not None else [],
        }
        payload.update(extra)
        return payload
    return _make


@pytest.fixture
def sample_cards():
    return [
        {"id": "c1", "question": "Capital of Japan", "answers": ["Tokyo", "東京"]},
        {"id": "c2", "question": "Monkey", "answers": ["さる"]},
        {"id": "c3", "question": "apple", "answers": ["りんご"]},
    ]
