"""
Tests for name normalization, string similarity and date helpers.
"""

import pytest
from treemerge.matching.normalize import (
    normalize_name,
    string_similarity,
    extract_year,
    dates_match,
    years_match,
    years_close,
    first_names_match,
    last_names_similar,
)


class TestNormalizeName:
    """Tests for normalize_name."""

    def test_lowercases_and_strips_diacritics(self):
        """Test that case and diacritics are removed."""
        assert normalize_name("Dvořáková") == "dvorakova"
        assert normalize_name("JOSÉ") == "jose"

    def test_removes_punctuation(self):
        """Test that characters outside letters, digits and spaces are removed."""
        assert normalize_name("O'Brien-Smith") == "obriensmith"

    def test_collapses_whitespace(self):
        """Test that whitespace is trimmed and collapsed."""
        assert normalize_name("  Jan   Josef  ") == "jan josef"

    def test_none_and_empty(self):
        """Test that missing names normalize to the empty string."""
        assert normalize_name(None) == ""
        assert normalize_name("") == ""


class TestStringSimilarity:
    """Tests for string_similarity."""

    def test_identical(self):
        assert string_similarity("Jan", "Jan") == 1.0

    def test_identical_after_normalization(self):
        assert string_similarity("Novák", "novak") == 1.0

    def test_both_empty(self):
        """Test that two empty strings are identical."""
        assert string_similarity("", "") == 1.0

    def test_one_empty(self):
        assert string_similarity("x", "") == 0.0
        assert string_similarity(None, "x") == 0.0

    def test_one_edit(self):
        """Test one insertion over the longer length."""
        assert string_similarity("cat", "cats") == pytest.approx(0.75)

    def test_no_common_characters(self):
        assert string_similarity("abc", "xyz") == 0.0


class TestDateHelpers:
    """Tests for date helpers."""

    def test_extract_year(self):
        assert extract_year("1950-03-01") == 1950
        assert extract_year("1950") == 1950
        assert extract_year("abt 1890") == 1890
        assert extract_year("March") is None
        assert extract_year(None) is None

    def test_dates_match_requires_both(self):
        assert dates_match("1950-03-01", "1950-03-01")
        assert not dates_match("1950-03-01", "1950-03")
        assert not dates_match(None, None)
        assert not dates_match("", "")

    def test_years_match(self):
        assert years_match("1950-03-01", "1950")
        assert not years_match("1950", "1951")
        assert not years_match("1950", None)

    def test_years_close(self):
        assert years_close("1950", "1952")
        assert not years_close("1950", "1953")
        assert years_close("1950", "1953", tolerance=3)
        assert not years_close(None, "1950")


class TestFirstNamesMatch:
    """Tests for first name shape analysis."""

    def test_exact_sets_all_flags(self):
        result = first_names_match("Jan", "jan")
        assert result.exact
        assert result.first_word
        assert result.any_word
        assert result.prefix

    def test_middle_name(self):
        """Test that a middle name is found as any-word match."""
        result = first_names_match("Jan Josef", "Josef")
        assert not result.exact
        assert not result.first_word
        assert result.any_word
        assert result.matched_word == "josef"

    def test_first_word(self):
        result = first_names_match("Jan Josef", "Jan Karel")
        assert result.first_word
        assert result.any_word

    def test_initials_are_not_any_word(self):
        """Test that single-letter words never count as any-word matches."""
        result = first_names_match("A B", "A C")
        assert result.first_word
        assert not result.any_word

    def test_prefix(self):
        result = first_names_match("Jo", "Josef")
        assert result.prefix
        assert not result.first_word

    def test_empty_name_is_prefix(self):
        result = first_names_match("", "Jan")
        assert result.prefix
        assert not result.first_word


class TestLastNamesSimilar:
    """Tests for last name similarity."""

    def test_exact(self):
        result = last_names_similar("Novák", "NOVAK")
        assert result.exact
        assert result.similar
        assert result.similarity == 1.0

    def test_prefix_is_similar(self):
        """Test that a feminine surname form is similar through its prefix."""
        result = last_names_similar("Novák", "Nováková")
        assert not result.exact
        assert result.similar
        assert result.similarity == pytest.approx(0.625)

    def test_typo_is_similar(self):
        result = last_names_similar("Smith", "Smyth")
        assert result.similar
        assert result.similarity == pytest.approx(0.8)

    def test_different(self):
        result = last_names_similar("Novák", "Svoboda")
        assert not result.similar
