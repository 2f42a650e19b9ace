"""
Field-level equality and closeness predicates.
"""

from math import ceil
from typing import Any, Iterable, Optional
import re

from rapidfuzz.distance import Levenshtein

from .normalizers import (
    normalize_company_name,
    normalize_date,
    normalize_number,
    normalize_tax_id,
    normalize_text,
    numbers_equal,
    parse_date,
    parse_strict_number,
)
from ..config import DEFAULT_STOP_WORDS

_TOKEN_SPLIT = re.compile(r"[\s\-]+")


def company_tokens(
    name: str,
    stop_words: Iterable[str] = DEFAULT_STOP_WORDS,
    min_token_length: int = 3,
) -> list[str]:
    """Split a normalized company name into its distinctive words."""
    stop = set(stop_words)
    return [
        token
        for token in _TOKEN_SPLIT.split(name)
        if len(token) >= min_token_length and token not in stop
    ]


def flexible_company_match(
    name1: str,
    name2: str,
    token_ratio: float = 0.7,
    stop_words: Iterable[str] = DEFAULT_STOP_WORDS,
    min_token_length: int = 3,
) -> bool:
    """
    Compare two normalized company names by distinctive-word overlap.

    Legal forms and connector words are ignored. At least ``token_ratio`` of
    the shorter word list must occur in the longer one, where a word counts
    as found if it contains, or is contained in, some word of the other name.
    """
    words1 = company_tokens(name1, stop_words, min_token_length)
    words2 = company_tokens(name2, stop_words, min_token_length)

    if not words1 or not words2:
        return False

    shorter, longer = (words1, words2) if len(words1) <= len(words2) else (words2, words1)
    required = max(1, ceil(len(shorter) * token_ratio))

    found = sum(
        1
        for word in shorter
        if any(word in other or other in word for other in longer)
    )
    return found >= required


def company_names_match(name1: Any, name2: Any, **flexible_options: Any) -> bool:
    normalized1 = normalize_company_name(name1)
    normalized2 = normalize_company_name(name2)
    if normalized1 == normalized2:
        return True
    return flexible_company_match(normalized1, normalized2, **flexible_options)


def tax_ids_match(tax_id1: Any, tax_id2: Any) -> bool:
    return normalize_tax_id(tax_id1) == normalize_tax_id(tax_id2)


def dates_match(date1: Any, date2: Any) -> bool:
    return normalize_date(date1) == normalize_date(date2)


def date_distance_days(date1: Any, date2: Any) -> Optional[int]:
    """Absolute number of calendar days between two dates, None if either is unparsable."""
    parsed1 = parse_date(date1)
    parsed2 = parse_date(date2)
    if parsed1 is None or parsed2 is None:
        return None
    return abs((parsed1 - parsed2).days)


def amount_within_percent(amount1: Any, amount2: Any, percent: float) -> bool:
    """True when the amounts differ by at most ``percent`` of the larger magnitude."""
    value1 = normalize_number(amount1)
    value2 = normalize_number(amount2)
    larger = max(abs(value1), abs(value2))
    if larger == 0:
        return True
    return abs(value1 - value2) / larger <= percent / 100


def edit_similarity(text1: str, text2: str) -> float:
    """Levenshtein similarity in [0, 1]: ``1 - distance / longest length``."""
    longest = max(len(text1), len(text2))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(text1, text2) / longest


def generic_values_match(
    value1: Any,
    value2: Any,
    numeric_tolerance: float = 0.01,
    edit_similarity_threshold: float = 0.8,
    edit_min_length: int = 3,
) -> bool:
    """
    Loose equality for two cells of user-mapped columns.

    Matches on: both empty, equal normalized text, containment of one
    non-empty text in the other, numeric equality, or high edit similarity
    for texts longer than ``edit_min_length``.
    """
    text1 = normalize_text(value1)
    text2 = normalize_text(value2)

    if text1 == text2:
        return True

    if text1 and text2 and (text1 in text2 or text2 in text1):
        return True

    number1 = parse_strict_number(text1)
    number2 = parse_strict_number(text2)
    if number1 is not None and number2 is not None:
        if abs(number1 - number2) < numeric_tolerance:
            return True

    if len(text1) > edit_min_length and len(text2) > edit_min_length:
        return edit_similarity(text1, text2) > edit_similarity_threshold

    return False


__all__ = [
    "amount_within_percent",
    "company_names_match",
    "company_tokens",
    "date_distance_days",
    "dates_match",
    "edit_similarity",
    "flexible_company_match",
    "generic_values_match",
    "numbers_equal",
    "tax_ids_match",
]
