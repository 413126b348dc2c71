"""
Text normalization, string similarity and date helpers.

All comparisons are lexical: names are lowercased, stripped of diacritics
and punctuation, and compared by Levenshtein edit distance.
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Optional

from rapidfuzz.distance import Levenshtein

_COMBINING_MARKS = re.compile('[\u0300-\u036f]')
_NON_ALNUM = re.compile(r'[^a-z0-9\s]')
_WHITESPACE = re.compile(r'\s+')
_YEAR = re.compile(r'(\d{4})')


def normalize_name(text: Optional[str]) -> str:
    """
    Normalize text for comparison.

    Lowercases, removes diacritics and special characters, trims and
    collapses whitespace.

    Args:
        text: Text to normalize (None is treated as empty)

    Returns:
        Normalized text
    """
    if not text:
        return ""

    normalized = unicodedata.normalize('NFD', text.lower())
    normalized = _COMBINING_MARKS.sub('', normalized)
    normalized = _NON_ALNUM.sub('', normalized)
    return _WHITESPACE.sub(' ', normalized.strip())


def string_similarity(a: Optional[str], b: Optional[str]) -> float:
    """
    Calculate string similarity using Levenshtein distance.

    Returns:
        Value between 0 (no match) and 1 (exact match after normalization).
        Two empty strings are identical and return 1.
    """
    normalized_a = normalize_name(a)
    normalized_b = normalize_name(b)

    if normalized_a == normalized_b:
        return 1.0
    if not normalized_a or not normalized_b:
        return 0.0

    distance = Levenshtein.distance(normalized_a, normalized_b)
    return 1 - distance / max(len(normalized_a), len(normalized_b))


# ==================== DATE HELPERS ====================

def extract_year(date_str: Optional[str]) -> Optional[int]:
    """Extract the first 4-digit year from a date string."""
    if not date_str:
        return None
    match = _YEAR.search(date_str)
    return int(match.group(1)) if match else None


def dates_match(date1: Optional[str], date2: Optional[str]) -> bool:
    """Check if two dates are present and exactly equal."""
    if not date1 or not date2:
        return False
    return date1 == date2


def years_match(date1: Optional[str], date2: Optional[str]) -> bool:
    """Check if the years of two dates are equal."""
    year1 = extract_year(date1)
    year2 = extract_year(date2)
    if year1 is None or year2 is None:
        return False
    return year1 == year2


def years_close(date1: Optional[str], date2: Optional[str], tolerance: int = 2) -> bool:
    """Check if the years of two dates are within tolerance."""
    year1 = extract_year(date1)
    year2 = extract_year(date2)
    if year1 is None or year2 is None:
        return False
    return abs(year1 - year2) <= tolerance


# ==================== NAME SHAPE ====================

@dataclass(slots=True)
class FirstNameMatch:
    """Shape of the agreement between two first names."""
    exact: bool
    first_word: bool
    any_word: bool
    prefix: bool
    matched_word: Optional[str] = None


@dataclass(slots=True)
class LastNameMatch:
    """Agreement between two last names."""
    exact: bool
    similar: bool
    similarity: float


def first_names_match(name1: Optional[str], name2: Optional[str]) -> FirstNameMatch:
    """
    Check if first names match considering middle names.

    Handles first-word and any-word matches for multi-part names such as
    "Jan Josef" vs "Josef". Single-letter words (initials) never count as
    an any-word match.
    """
    n1 = normalize_name(name1)
    n2 = normalize_name(name2)

    if n1 == n2:
        return FirstNameMatch(exact=True, first_word=True, any_word=True, prefix=True)

    words1 = n1.split()
    words2 = n2.split()

    first_word = bool(words1) and bool(words2) and words1[0] == words2[0]

    matched_word = None
    for w1 in words1:
        if len(w1) >= 2 and w1 in words2:
            matched_word = w1
            break

    # An empty name is a prefix of any name
    prefix = n1.startswith(n2) or n2.startswith(n1)

    return FirstNameMatch(
        exact=False,
        first_word=first_word,
        any_word=matched_word is not None,
        prefix=prefix,
        matched_word=matched_word,
    )


def last_names_similar(name1: Optional[str], name2: Optional[str]) -> LastNameMatch:
    """
    Check if last names are similar (handles typos and spelling variations).

    Similar means a similarity of at least 0.7, or one name being a prefix
    of the other.
    """
    n1 = normalize_name(name1)
    n2 = normalize_name(name2)

    if n1 == n2:
        return LastNameMatch(exact=True, similar=True, similarity=1.0)

    similarity = string_similarity(name1, name2)
    is_prefix = n1.startswith(n2) or n2.startswith(n1)

    return LastNameMatch(exact=False, similar=similarity >= 0.7 or is_prefix, similarity=similarity)
