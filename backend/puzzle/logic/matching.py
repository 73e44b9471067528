"""
Name normalization and fuzzy matching for free-text guesses.

Guesses are compared against answers after normalization (lowercased,
diacritics stripped, special letters transliterated, trimmed). A guess matches
when it is identical, when it is a long-enough substring of the answer
(surname-only guesses), or when the bigram similarity of the two strings
clears MATCH_THRESHOLD.
"""

from __future__ import annotations

import unicodedata
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Container, Sequence

MATCH_THRESHOLD = 0.85
MIN_PARTIAL_LENGTH = 3
MIN_CONTAINMENT_RATIO = 0.4

# Lowercase letters that NFD does not decompose into base letter + combining mark.
_SPECIAL_CHARACTERS = str.maketrans(
    {
        "ø": "o",
        "æ": "ae",
        "ð": "d",
        "þ": "th",
        "ł": "l",
        "ß": "ss",
        "œ": "oe",
    },
)


@dataclass(frozen=True)
class MatchResult:
    is_match: bool
    score: float


NO_MATCH = MatchResult(is_match=False, score=0.0)


@dataclass(frozen=True)
class AnswerCandidate:
    """An accepted answer plus alternative spellings that also count."""

    name: str
    aliases: tuple[str, ...] = field(default_factory=tuple)


def _is_combining_mark(char: str) -> bool:
    return "\u0300" <= char <= "\u036f"


def normalize(value: str) -> str:
    """Return the canonical comparison form of a name."""
    decomposed = unicodedata.normalize("NFD", value.lower())
    stripped = "".join(char for char in decomposed if not _is_combining_mark(char))
    return stripped.translate(_SPECIAL_CHARACTERS).strip()


def _bigrams(value: str) -> Counter[str]:
    return Counter(value[i : i + 2] for i in range(len(value) - 1))


def bigram_similarity(a: str, b: str) -> float:
    """Sorensen-Dice coefficient over character bigrams of two normalized strings."""
    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0
    a_bigrams = _bigrams(a)
    b_bigrams = _bigrams(b)
    overlap = sum((a_bigrams & b_bigrams).values())
    return 2 * overlap / (a_bigrams.total() + b_bigrams.total())


def match(guess: str, answer: str) -> MatchResult:
    """Decide whether a free-text guess names the given answer."""
    normalized_guess = normalize(guess)
    normalized_answer = normalize(answer)

    if not normalized_guess:
        return NO_MATCH

    if normalized_guess == normalized_answer:
        return MatchResult(is_match=True, score=1.0)

    if len(normalized_guess) >= MIN_PARTIAL_LENGTH and normalized_guess in normalized_answer:
        ratio = len(normalized_guess) / len(normalized_answer)
        if ratio >= MIN_CONTAINMENT_RATIO:
            return MatchResult(is_match=True, score=0.9 + ratio * 0.1)

    similarity = bigram_similarity(normalized_guess, normalized_answer)
    return MatchResult(is_match=similarity >= MATCH_THRESHOLD, score=similarity)


def matches_candidate(guess: str, candidate: AnswerCandidate) -> bool:
    return any(match(guess, name).is_match for name in (candidate.name, *candidate.aliases))


def find_match(
    guess: str,
    candidates: Sequence[AnswerCandidate],
    skip: Container[int] = (),
) -> int | None:
    """Return the index of the first candidate the guess matches, ignoring indexes in skip."""
    for index, candidate in enumerate(candidates):
        if index in skip:
            continue
        if matches_candidate(guess, candidate):
            return index
    return None
