"""
Tests for stored study settings and environment configuration.
"""

import logging

import pytest

from memory_core import config
from memory_core.errors import ValidationError


def test_default_settings(store):
    settings = store.get_settings()
    assert settings.target_retention_rate == 0.9
    assert settings.exam_date is None


def test_partial_update_merges(store):
    store.set_settings({"target_retention_rate": 0.8})
    settings = store.set_settings({"examDate": "2026-06-30"})

    assert settings.target_retention_rate == 0.8
    assert settings.exam_date == "2026-06-30"
    assert store.get_settings() == settings


def test_clear_exam_date(store):
    store.set_settings({"exam_date": "2026-06-30"})
    assert store.set_settings({"exam_date": None}).exam_date is None


@pytest.mark.parametrize("update", [
    {"target_retention_rate": 0.5},
    {"targetRetentionRate": 0.99},
    {"exam_date": "2026-02-30"},
    {"exam_date": "next week"},
])
def test_invalid_settings_rejected(store, update):
    store.set_settings({"target_retention_rate": 0.85})

    with pytest.raises(ValidationError):
        store.set_settings(update)

    assert store.get_settings().target_retention_rate == 0.85


def test_bounds_are_inclusive(store):
    assert store.set_settings({"target_retention_rate": 0.7}).target_retention_rate == 0.7
    assert store.set_settings({"target_retention_rate": 0.97}).target_retention_rate == 0.97


def test_invalid_stored_settings_fall_back(store):
    store.put("settings", {"id": "app-settings", "value": {"targetRetentionRate": 3}})
    assert store.get_settings().target_retention_rate == 0.9


def test_database_url_from_env(monkeypatch):
    monkeypatch.setenv("MEMORY_DATABASE_URL", "sqlite:///elsewhere.db")
    assert config.get_database_url() == "sqlite:///elsewhere.db"


def test_database_url_test_mode(monkeypatch):
    monkeypatch.delenv("MEMORY_DATABASE_URL", raising=False)
    monkeypatch.setenv("TEST_MODE", "true")
    assert config.get_database_url().endswith(config.TEST_DB_NAME)

    monkeypatch.setenv("TEST_MODE", "false")
    assert config.get_database_url().endswith(config.DB_NAME)


def test_log_level(monkeypatch):
    monkeypatch.setenv("MEMORY_LOG_LEVEL", "debug")
    assert config.get_log_level() == logging.DEBUG

    monkeypatch.setenv("MEMORY_LOG_LEVEL", "chatty")
    assert config.get_log_level() == logging.INFO
