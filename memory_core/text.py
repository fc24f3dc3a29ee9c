"""
Answer normalization and matching.

Answers are compared as literal strings after NFKC normalization, trimming
and lower-casing. Hiragana and katakana are NOT bridged: "さる" and "サル" are
different answers.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True)
class AnswerCheckResult:
    is_correct: bool
    matched_answer: Optional[str]
    normalized_input: str


def normalize_text(value: str) -> str:
    """NFKC-normalize (folds full-width forms), trim and lower-case."""
    return unicodedata.normalize("NFKC", value).strip().lower()


def find_matching_answer(answers: Iterable[str], input_text: str) -> Optional[str]:
    """Return the first accepted answer equal to input_text after normalization."""
    normalized_input = normalize_text(input_text)
    for answer in answers:
        if normalize_text(answer) == normalized_input:
            return answer
    return None


def check_answer(answers: Iterable[str], input_text: str) -> AnswerCheckResult:
    matched = find_matching_answer(answers, input_text)
    return AnswerCheckResult(
        is_correct=matched is not None,
        matched_answer=matched,
        normalized_input=normalize_text(input_text),
    )


def collation_key(value: str) -> tuple[str, str]:
    """
    Sort key for question text.

    Orders by the NFKC case-folded form, with the raw text as tie-breaker so
    ordering is stable across runs.
    """
    return unicodedata.normalize("NFKC", value).casefold(), value
