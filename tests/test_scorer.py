"""
Tests for strict, relaxed and quick match scoring.
"""

import pytest
from treemerge.core import FamilyGraph
from treemerge.matching import MatchScorer, MatchReason


@pytest.fixture
def scorer():
    return MatchScorer()


def strict(scorer, existing, incoming):
    return scorer.calculate_match_score(
        existing, incoming,
        FamilyGraph(persons={existing.id: existing}),
        FamilyGraph(persons={incoming.id: incoming}),
    )


class TestStrictScore:
    """Tests for MatchScorer.calculate_match_score."""

    def test_gender_gate(self, scorer, person_factory):
        """Test that different genders never match."""
        existing = person_factory("e1", "Jan", "Novák", birth_date="1950-03-01")
        incoming = person_factory("i1", "Jan", "Novák", "female", birth_date="1950-03-01")

        result = strict(scorer, existing, incoming)

        assert result.score == 0
        assert result.reasons == []

    def test_exact_name_and_birth_date(self, scorer, person_factory):
        """Test that the exact tag is not added twice."""
        existing = person_factory("e1", "Jan", "Novák", birth_date="1950-03-01")
        incoming = person_factory("i1", "Jan", "Novák", birth_date="1950-03-01")

        result = strict(scorer, existing, incoming)

        assert result.score == 75
        assert result.reasons == [MatchReason.EXACT_NAME_GENDER_BIRTHDATE]

    def test_exact_name_and_birth_year(self, scorer, person_factory):
        existing = person_factory("e1", "Jan", "Novák", birth_date="1950-03-01")
        incoming = person_factory("i1", "Jan", "Novák", birth_date="1950")

        result = strict(scorer, existing, incoming)

        assert result.score == 62
        assert result.reasons == [
            MatchReason.EXACT_NAME_GENDER_BIRTHDATE,
            MatchReason.NAME_GENDER_BIRTHYEAR,
        ]

    def test_death_and_place_evidence(self, scorer, person_factory):
        """Test that death date and birth place add to the score."""
        existing = person_factory("e1", "Jan", "Novák", birth_date="1950-03-01",
                                  death_date="2010-01-01", birth_place="Praha")
        incoming = person_factory("i1", "Jan", "Novák", birth_date="1950-03-01",
                                  death_date="2010-01-01", birth_place="Praha")

        result = strict(scorer, existing, incoming)

        # 40 name + 35 birth + 12 death + 12 place
        assert result.score == 99

    def test_birth_years_close(self, scorer, person_factory):
        existing = person_factory("e1", "Jan", "Novák", birth_date="1950")
        incoming = person_factory("i1", "Jan", "Novák", birth_date="1952")

        result = strict(scorer, existing, incoming)

        assert result.score == 52
        assert result.reasons == [MatchReason.EXACT_NAME_GENDER_BIRTHDATE]

    def test_first_name_only(self, scorer, person_factory):
        """Test that an exact first name alone scores 10 without reasons."""
        existing = person_factory("e1", "Jan", "Novák")
        incoming = person_factory("i1", "Jan", "Wu")

        result = strict(scorer, existing, incoming)

        assert result.score == 10
        assert result.reasons == []

    def test_names_too_different(self, scorer, person_factory):
        existing = person_factory("e1", "Jan", "Novák", birth_date="1950-03-01")
        incoming = person_factory("i1", "Petr", "Svoboda", birth_date="1950-03-01")

        result = strict(scorer, existing, incoming)

        assert result.score == 0
        assert result.reasons == []

    def test_generic_reason(self, scorer, person_factory):
        """Test that a score of 30 or more always carries a reason."""
        existing = person_factory("e1", "Josef", "Novák", birth_date="1952")
        incoming = person_factory("i1", "Jan Josef", "Novák", birth_date="1950")

        result = strict(scorer, existing, incoming)

        # 22 for full-name similarity 0.78 + 12 for close birth years
        assert result.score == 34
        assert result.reasons == [MatchReason.NAME_SIMILARITY_RELATIONSHIPS]

    def test_parent_bonus(self, scorer, family_graphs):
        """Test that two matching parents add 18 points."""
        existing, incoming = family_graphs

        result = scorer.calculate_match_score(
            existing.persons["c"], incoming.persons["c2"], existing, incoming)

        assert result.score == 93
        assert MatchReason.NAME_GENDER_PARENTS in result.reasons

    def test_partner_bonus(self, scorer, family_graphs):
        """Test that the wife's match is carried by her husband's name and birth year."""
        existing, incoming = family_graphs

        result = scorer.calculate_match_score(
            existing.persons["b"], incoming.persons["b2"], existing, incoming)

        # 10 for first name + 12 for partner surname + 5 for partner birth year
        assert result.score == 27
        assert result.reasons == [MatchReason.PARTNER_SIMILARITY]

    def test_score_is_capped(self, scorer, person_factory, graph_factory, family_factory):
        existing = graph_factory(
            person_factory("a", "Jan", "Novák", birth_date="1950-03-01",
                           death_date="2010-01-01", birth_place="Praha"),
            person_factory("b", "Eva", "Nováková", "female", birth_date="1952"),
        )
        family_factory(existing, "u1", "a", "b")
        incoming = graph_factory(
            person_factory("a2", "Jan", "Novák", birth_date="1950-03-01",
                           death_date="2010-01-01", birth_place="Praha"),
            person_factory("b2", "Eva", "Nováková", "female", birth_date="1952"),
        )
        family_factory(incoming, "u2", "a2", "b2")

        result = scorer.calculate_match_score(
            existing.persons["a"], incoming.persons["a2"], existing, incoming)

        assert result.score == 100


FIRST_NAME = [MatchReason.FIRST_NAME_MATCH]


class TestStrictNameLadder:
    """Tests for the name rules of the strict score, one pair per rule."""

    @pytest.mark.parametrize("existing_name,incoming_name,score,reasons", [
        (("Jan", "Novák"), ("Jan", "Novák"), 40, [MatchReason.EXACT_NAME_GENDER_BIRTHDATE]),
        (("Jan", "Novák"), ("Jan", "Nowák"), 32, [MatchReason.NAME_SIMILARITY_RELATIONSHIPS]),
        (("Jan", "Novák"), ("Ian", "Novák"), 22, []),
        (("Jan Josef", "Novák"), ("Jan", "Novák"), 28, FIRST_NAME),
        (("Josef Jan", "Novák"), ("Jan", "Novák"), 26, FIRST_NAME),
        (("Jan Josef", "Novák"), ("Jan", "Nosek"), 16, FIRST_NAME),
        (("Josef Jan", "Novák"), ("Jan", "Nosek"), 14, FIRST_NAME),
        (("Jan", "Novák"), ("Jan", "Beneš"), 10, []),
        (("Josef Jan", "Novák"), ("Jan", "Beneš"), 8, []),
        (("J", "Novák"), ("Josef", "Novák"), 12, []),
    ])
    def test_name_rules(self, scorer, person_factory, existing_name, incoming_name, score, reasons):
        existing = person_factory("e1", *existing_name)
        incoming = person_factory("i1", *incoming_name)

        result = strict(scorer, existing, incoming)

        assert result.score == score
        assert result.reasons == reasons

    def test_exact_first_name_shadowed_by_full_name(self, scorer, person_factory):
        """Test that an exact first name with a half-similar surname scores as full-name similarity."""
        existing = person_factory("e1", "Jan", "Novák")
        incoming = person_factory("i1", "Jan", "Nosek")

        result = strict(scorer, existing, incoming)

        assert result.score == 22
        assert result.reasons == []


class TestRelaxedScore:
    """Tests for MatchScorer.calculate_relaxed_match_score."""

    def test_first_word_last_similar_same_year(self, scorer, person_factory):
        existing = person_factory("e1", "Jan Josef", "Novák", birth_date="1950")
        incoming = person_factory("i1", "Jan", "Novák", birth_date="1950-06-01")

        result = scorer.calculate_relaxed_match_score(existing, incoming)

        assert result.score == 55
        assert result.reasons == [MatchReason.FIRST_NAME_BIRTHYEAR]

    def test_any_word_within_five_years(self, scorer, person_factory):
        existing = person_factory("e1", "Josef", "Novák", birth_date="1952")
        incoming = person_factory("i1", "Jan Josef", "Novák", birth_date="1950")

        result = scorer.calculate_relaxed_match_score(existing, incoming)

        assert result.score == 52

    def test_exact_first_within_three_years(self, scorer, person_factory):
        existing = person_factory("e1", "Jan", "Novák", birth_date="1950")
        incoming = person_factory("i1", "Jan", "Wu", birth_date="1953")

        result = scorer.calculate_relaxed_match_score(existing, incoming)

        assert result.score == 35
        assert result.reasons == [MatchReason.FIRST_NAME_BIRTHYEAR]

    def test_requires_birth_years(self, scorer, person_factory):
        """Test that identical names without dates do not match."""
        existing = person_factory("e1", "Jan", "Novák")
        incoming = person_factory("i1", "Jan", "Novák")

        result = scorer.calculate_relaxed_match_score(existing, incoming)

        assert result.score == 0
        assert result.reasons == []

    def test_gender_gate(self, scorer, person_factory):
        existing = person_factory("e1", "Jan", "Novák", birth_date="1950")
        incoming = person_factory("i1", "Jan", "Novák", "female", birth_date="1950")

        assert scorer.calculate_relaxed_match_score(existing, incoming).score == 0


class TestRelaxedLadder:
    """Tests for the relaxed rules, one pair per rule in ladder order."""

    @pytest.mark.parametrize("existing_args,incoming_args,score,reason", [
        (("Jan", "Novák", "male", "1950"), ("Jan", "Novák", "male", "1950"),
         55, MatchReason.FIRST_NAME_BIRTHYEAR),
        (("Josef Jan", "Novák", "male", "1950"), ("Jan", "Novák", "male", "1953"),
         52, MatchReason.FIRST_NAME_BIRTHYEAR),
        (("Jan", "Novák", "male", "1950"), ("Jan", "Beneš", "male", "1950"),
         45, MatchReason.FIRST_NAME_BIRTHYEAR),
        (("Jan Josef", "Novák", "male", "1950"), ("Jan", "Beneš", "male", "1950"),
         42, MatchReason.FIRST_NAME_BIRTHYEAR),
        (("Josef Jan", "Novák", "male", "1950"), ("Jan", "Beneš", "male", "1950"),
         40, MatchReason.FIRST_NAME_BIRTHYEAR),
        (("Jan", "Novák", "male", "1950"), ("Jan", "Beneš", "male", "1952"),
         35, MatchReason.FIRST_NAME_BIRTHYEAR),
        (("Jan Josef", "Novák", "male", "1950"), ("Jan", "Beneš", "male", "1952"),
         33, MatchReason.FIRST_NAME_BIRTHYEAR),
        (("Josef Jan", "Novák", "male", "1950"), ("Jan", "Beneš", "male", "1954"),
         32, MatchReason.FIRST_NAME_BIRTHYEAR),
        (("Josefa", "Novák", "male", "1950-03-01"), ("Josefy", "Beneš", "male", "1950-03-01"),
         40, MatchReason.NAME_GENDER_BIRTHYEAR),
        (("Karel", "Novák", "male", "1950"), ("Jan", "Novák", "male", "1950"),
         32, MatchReason.LASTNAME_BIRTHYEAR),
        (("Jana", "Novák", "female", "1950"), ("Jan", "Horák", "female", "1950"),
         30, MatchReason.NAME_GENDER_BIRTHYEAR),
        (("Jana", "Novák", "female", "1950"), ("Jan", "Horák", "female", "1951"),
         25, MatchReason.NAME_GENDER_BIRTHYEAR),
    ])
    def test_rules(self, scorer, person_factory, existing_args, incoming_args, score, reason):
        first, last, gender, birth = existing_args
        existing = person_factory("e1", first, last, gender, birth_date=birth)
        first, last, gender, birth = incoming_args
        incoming = person_factory("i1", first, last, gender, birth_date=birth)

        result = scorer.calculate_relaxed_match_score(existing, incoming)

        assert result.score == score
        assert result.reasons == [reason]

    def test_any_word_same_year_scores_as_within_five(self, scorer, person_factory):
        """Test that the 48 rule is shadowed by the earlier 52 rule."""
        existing = person_factory("e1", "Josef Jan", "Novák", birth_date="1950")
        incoming = person_factory("i1", "Jan", "Novák", birth_date="1950")

        assert scorer.calculate_relaxed_match_score(existing, incoming).score == 52

    def test_exact_first_similar_last_same_year_scores_55(self, scorer, person_factory):
        """Test that the 45 rule does not shadow the first rule."""
        existing = person_factory("e1", "Jan", "Novák", birth_date="1950")
        incoming = person_factory("i1", "Jan", "Nowák", birth_date="1950")

        assert scorer.calculate_relaxed_match_score(existing, incoming).score == 55

    def test_any_word_within_five_scores_32_not_28(self, scorer, person_factory):
        existing = person_factory("e1", "Josef Jan", "Novák", birth_date="1950")
        incoming = person_factory("i1", "Jan", "Horák", birth_date="1955")

        assert scorer.calculate_relaxed_match_score(existing, incoming).score == 32


class TestQuickMatchScore:
    """Tests for MatchScorer.quick_match_score."""

    def test_exact(self, scorer, person_factory):
        p1 = person_factory("x1", "Jan", "Novák", birth_date="1950-03-01")
        p2 = person_factory("x2", "Jan", "Novák", birth_date="1950-03-01")

        assert scorer.quick_match_score(p1, p2) == 85

    def test_same_year(self, scorer, person_factory):
        p1 = person_factory("x1", "Jan", "Novák", birth_date="1950-03-01", death_date="2000")
        p2 = person_factory("x2", "Jan", "Novák", birth_date="1950", death_date="2000-05-05")

        assert scorer.quick_match_score(p1, p2) == 75

    def test_dissimilar_names(self, scorer, person_factory):
        p1 = person_factory("x1", "Jan", "Novák", birth_date="1950-03-01")
        p2 = person_factory("x2", "Petr", "Novák", birth_date="1950-03-01")

        assert scorer.quick_match_score(p1, p2) == 0

    def test_gender_gate(self, scorer, person_factory):
        p1 = person_factory("x1", "Jan", "Novák")
        p2 = person_factory("x2", "Jan", "Novák", "female")

        assert scorer.quick_match_score(p1, p2) == 0
