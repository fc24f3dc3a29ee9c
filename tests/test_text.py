"""
Tests for answer normalization and matching.
"""

import pytest

from memory_core.text import check_answer, collation_key, normalize_text

TOKYO = ["Tokyo", "東京"]


@pytest.mark.parametrize("text", ["Tokyo", "tokyo", "  TOKYO ", "ＴＯＫＹＯ", "東京", " 東京\n"])
def test_accepted_variants(text):
    result = check_answer(TOKYO, text)
    assert result.is_correct
    assert result.matched_answer in TOKYO


@pytest.mark.parametrize("text", ["Kyoto", "Tokio", "", "東 京"])
def test_rejected_variants(text):
    result = check_answer(TOKYO, text)
    assert not result.is_correct
    assert result.matched_answer is None


def test_kana_are_not_bridged():
    assert not check_answer(["さる"], "サル").is_correct
    assert check_answer(["さる"], "さる").is_correct


def test_half_width_katakana_folds():
    assert check_answer(["サル"], "ｻﾙ").is_correct


def test_matched_answer_is_the_stored_form():
    result = check_answer(TOKYO, " tokyo ")
    assert result.matched_answer == "Tokyo"
    assert result.normalized_input == "tokyo"


def test_normalize_text():
    assert normalize_text("  Ｈｅｌｌｏ ") == "hello"


def test_collation_key_orders_case_insensitively():
    words = ["banana", "Apple", "cherry", "apple"]
    assert sorted(words, key=collation_key) == ["Apple", "apple", "banana", "cherry"]
