"""
Pairwise match scoring between an existing and an incoming person.

Combines name, date, place and relationship evidence into a 0-100 score
plus a list of reason tags. Two scorers are provided: the strict scorer
used for direct matching and relationship propagation, and a relaxed
scorer used as a fallback for persons the strict scorer leaves unmatched.
"""

from typing import List
from dataclasses import dataclass, field
from enum import Enum

from ..core.person import Person
from ..core.graph import FamilyGraph
from .normalize import (
    string_similarity,
    dates_match,
    years_match,
    years_close,
    first_names_match,
    last_names_similar,
)


class MatchReason(str, Enum):
    """Qualitative reason attached to a match."""
    EXACT_NAME_GENDER_BIRTHDATE = "exact_name_gender_birthdate"
    NAME_GENDER_BIRTHYEAR = "name_gender_birthyear"
    NAME_GENDER_PARENTS = "name_gender_parents"
    NAME_SIMILARITY_RELATIONSHIPS = "name_similarity_relationships"
    FIRST_NAME_MATCH = "first_name_match"        # last name differs (married women)
    FIRST_NAME_BIRTHYEAR = "first_name_birthyear"
    LASTNAME_BIRTHYEAR = "lastname_birthyear"    # could be a relative
    PARTNER_OF_MATCHED = "partner_of_matched"
    CHILD_OF_MATCHED = "child_of_matched"
    PARENT_OF_MATCHED = "parent_of_matched"
    PARTNER_SIMILARITY = "partner_similarity"
    MANUAL = "manual"


@dataclass
class ScoreResult:
    """Score (0-100) and reasons for one candidate pair."""
    score: int = 0
    reasons: List[MatchReason] = field(default_factory=list)

    def add_reason(self, reason: MatchReason) -> None:
        if reason not in self.reasons:
            self.reasons.append(reason)


class MatchScorer:
    """
    Calculates match scores between person records.

    Strict scoring runs a priority-ordered name ladder (the first satisfied
    rule wins, and names that satisfy no rule end scoring at 0), then adds
    birth/death date, birth place, parent and partner evidence.
    """

    MAX_SCORE = 100

    # Name ladder thresholds
    FULL_NAME_EXACT = 0.95
    FULL_NAME_HIGH = 0.85
    FULL_NAME_MEDIUM = 0.7

    # Date evidence
    BIRTH_DATE_EXACT_POINTS = 35
    BIRTH_YEAR_POINTS = 22
    BIRTH_YEAR_CLOSE_POINTS = 12
    BIRTH_YEAR_TOLERANCE = 2
    DEATH_DATE_EXACT_POINTS = 12
    DEATH_YEAR_POINTS = 6

    # Place evidence
    PLACE_HIGH = 0.9
    PLACE_HIGH_POINTS = 12
    PLACE_MEDIUM = 0.7
    PLACE_MEDIUM_POINTS = 6

    # Relationship evidence
    TWO_PARENTS_POINTS = 18
    ONE_PARENT_POINTS = 10
    PARTNER_POINTS = 8
    PARTNER_SURNAME_POINTS = 12
    PARTNER_BIRTHYEAR_POINTS = 5

    GENERIC_REASON_MIN_SCORE = 30

    def calculate_match_score(
        self,
        existing: Person,
        incoming: Person,
        existing_graph: FamilyGraph,
        incoming_graph: FamilyGraph
    ) -> ScoreResult:
        """
        Calculate the strict match score between two persons.

        Args:
            existing: Person from the existing graph
            incoming: Person from the incoming graph
            existing_graph: Graph owning the existing person
            incoming_graph: Graph owning the incoming person

        Returns:
            ScoreResult with a score in [0, 100]
        """
        if existing.gender != incoming.gender:
            return ScoreResult()

        result = ScoreResult()
        name_points = self._score_names(existing, incoming, result)
        if name_points == 0:
            return ScoreResult()
        score = name_points

        # Birth date
        if dates_match(existing.birth_date, incoming.birth_date):
            score += self.BIRTH_DATE_EXACT_POINTS
            result.add_reason(MatchReason.EXACT_NAME_GENDER_BIRTHDATE)
        elif years_match(existing.birth_date, incoming.birth_date):
            score += self.BIRTH_YEAR_POINTS
            result.reasons.append(MatchReason.NAME_GENDER_BIRTHYEAR)
        elif years_close(existing.birth_date, incoming.birth_date, self.BIRTH_YEAR_TOLERANCE):
            score += self.BIRTH_YEAR_CLOSE_POINTS

        # Death date
        if dates_match(existing.death_date, incoming.death_date):
            score += self.DEATH_DATE_EXACT_POINTS
        elif years_match(existing.death_date, incoming.death_date):
            score += self.DEATH_YEAR_POINTS

        # Birth place
        if existing.birth_place and incoming.birth_place:
            place_similarity = string_similarity(existing.birth_place, incoming.birth_place)
            if place_similarity >= self.PLACE_HIGH:
                score += self.PLACE_HIGH_POINTS
            elif place_similarity >= self.PLACE_MEDIUM:
                score += self.PLACE_MEDIUM_POINTS

        parent_points = self._score_parents(existing, incoming, existing_graph, incoming_graph)
        if parent_points > 0:
            score += parent_points
            result.reasons.append(MatchReason.NAME_GENDER_PARENTS)

        partner_points = self._score_partners(existing, incoming, existing_graph, incoming_graph)
        if partner_points > 0:
            score += partner_points
            result.add_reason(MatchReason.PARTNER_SIMILARITY)

        if score >= self.GENERIC_REASON_MIN_SCORE and not result.reasons:
            result.reasons.append(MatchReason.NAME_SIMILARITY_RELATIONSHIPS)

        result.score = min(score, self.MAX_SCORE)
        return result

    def _score_names(self, existing: Person, incoming: Person, result: ScoreResult) -> int:
        """
        Walk the name ladder and return the points of the first satisfied rule.

        Returns 0 when the names are too different to continue.
        """
        first = first_names_match(existing.first_name, incoming.first_name)
        first_similarity = string_similarity(existing.first_name, incoming.first_name)
        last = last_names_similar(existing.last_name, incoming.last_name)
        full_similarity = (first_similarity + last.similarity) / 2

        if full_similarity >= self.FULL_NAME_EXACT:
            result.reasons.append(MatchReason.EXACT_NAME_GENDER_BIRTHDATE)
            return 40
        if full_similarity >= self.FULL_NAME_HIGH:
            return 32
        if full_similarity >= self.FULL_NAME_MEDIUM:
            return 22
        if first.first_word and last.similar:
            result.reasons.append(MatchReason.FIRST_NAME_MATCH)
            return 28
        if first.any_word and last.similar:
            result.reasons.append(MatchReason.FIRST_NAME_MATCH)
            return 26
        if first.exact and last.similarity >= 0.5:
            # Could be a married name
            result.reasons.append(MatchReason.FIRST_NAME_MATCH)
            return 18
        if first.first_word and last.similarity >= 0.5:
            result.reasons.append(MatchReason.FIRST_NAME_MATCH)
            return 16
        if first.any_word and last.similarity >= 0.5:
            result.reasons.append(MatchReason.FIRST_NAME_MATCH)
            return 14
        if first_similarity >= 0.85 and last.similarity >= 0.6:
            return 15
        if first.exact or first.first_word:
            return 10
        if first.any_word:
            return 8
        if first.prefix and last.similar:
            return 12
        return 0

    def _score_parents(
        self,
        existing: Person,
        incoming: Person,
        existing_graph: FamilyGraph,
        incoming_graph: FamilyGraph
    ) -> int:
        """Score parents with similar names on both sides."""
        if not existing.parent_ids or not incoming.parent_ids:
            return 0

        incoming_parents = incoming_graph.get_parents(incoming)
        matching_parents = 0

        for existing_parent in existing_graph.get_parents(existing):
            for incoming_parent in incoming_parents:
                if existing_parent.gender != incoming_parent.gender:
                    continue

                first_similarity = string_similarity(
                    existing_parent.first_name, incoming_parent.first_name)
                last_similarity = string_similarity(
                    existing_parent.last_name, incoming_parent.last_name)

                # Last name may differ for women
                if first_similarity >= 0.85 and (last_similarity >= 0.7 or first_similarity >= 0.95):
                    matching_parents += 1
                    break

        if matching_parents >= 2:
            return self.TWO_PARENTS_POINTS
        if matching_parents == 1:
            return self.ONE_PARENT_POINTS
        return 0

    def _score_partners(
        self,
        existing: Person,
        incoming: Person,
        existing_graph: FamilyGraph,
        incoming_graph: FamilyGraph
    ) -> int:
        """Score the best pair of partners with similar names. Pairs are not summed."""
        existing_partners = existing_graph.get_partners(existing)
        incoming_partners = incoming_graph.get_partners(incoming)

        best = 0
        for existing_partner in existing_partners:
            for incoming_partner in incoming_partners:
                if existing_partner.gender != incoming_partner.gender:
                    continue

                first_similarity = string_similarity(
                    existing_partner.first_name, incoming_partner.first_name)
                if first_similarity < 0.85:
                    continue

                last_similarity = string_similarity(
                    existing_partner.last_name, incoming_partner.last_name)
                points = self.PARTNER_SURNAME_POINTS if last_similarity >= 0.85 else self.PARTNER_POINTS
                if years_match(existing_partner.birth_date, incoming_partner.birth_date):
                    points += self.PARTNER_BIRTHYEAR_POINTS
                best = max(best, points)

        return best

    def calculate_relaxed_match_score(self, existing: Person, incoming: Person) -> ScoreResult:
        """
        Relaxed matching for persons left over by strict matching.

        Combines the shape of the name agreement with birth-year proximity.
        The rules are checked in a fixed order and the first satisfied rule
        wins, so a later rule with a higher score can be shadowed.

        Returns:
            ScoreResult with a score of 0 or between 25 and 55
        """
        if existing.gender != incoming.gender:
            return ScoreResult()

        first = first_names_match(existing.first_name, incoming.first_name)
        last = last_names_similar(existing.last_name, incoming.last_name)
        first_similarity = string_similarity(existing.first_name, incoming.first_name)
        last_similarity = string_similarity(existing.last_name, incoming.last_name)

        same_year = years_match(existing.birth_date, incoming.birth_date)

        def within(tolerance: int) -> bool:
            return years_close(existing.birth_date, incoming.birth_date, tolerance)

        ladder = (
            (lambda: first.first_word and last.similar and same_year,
             55, MatchReason.FIRST_NAME_BIRTHYEAR),
            (lambda: first.any_word and last.similar and within(5),
             52, MatchReason.FIRST_NAME_BIRTHYEAR),
            (lambda: first.exact and same_year,
             45, MatchReason.FIRST_NAME_BIRTHYEAR),
            (lambda: first.any_word and last.similar and same_year,
             48, MatchReason.FIRST_NAME_BIRTHYEAR),
            (lambda: first.first_word and same_year,
             42, MatchReason.FIRST_NAME_BIRTHYEAR),
            (lambda: first.any_word and same_year,
             40, MatchReason.FIRST_NAME_BIRTHYEAR),
            (lambda: first.exact and within(3),
             35, MatchReason.FIRST_NAME_BIRTHYEAR),
            (lambda: first.first_word and within(3),
             33, MatchReason.FIRST_NAME_BIRTHYEAR),
            (lambda: first.any_word and within(5),
             32, MatchReason.FIRST_NAME_BIRTHYEAR),
            (lambda: first_similarity >= 0.8 and dates_match(existing.birth_date, incoming.birth_date),
             40, MatchReason.NAME_GENDER_BIRTHYEAR),
            (lambda: last.similarity >= 0.85 and same_year,
             32, MatchReason.LASTNAME_BIRTHYEAR),
            (lambda: (first_similarity >= 0.5 or last_similarity >= 0.5) and same_year,
             30, MatchReason.NAME_GENDER_BIRTHYEAR),
            (lambda: within(5) and first.any_word,
             28, MatchReason.NAME_GENDER_BIRTHYEAR),
            (lambda: within(1) and (first_similarity >= 0.4 or last_similarity >= 0.6),
             25, MatchReason.NAME_GENDER_BIRTHYEAR),
        )

        for condition, score, reason in ladder:
            if condition():
                return ScoreResult(score=score, reasons=[reason])

        return ScoreResult()

    def quick_match_score(self, person1: Person, person2: Person) -> int:
        """
        Quick match score for cross-tree comparison.

        Ignores relationships. A score of 50 or more is considered a match.
        """
        if person1.gender != person2.gender:
            return 0

        first_similarity = string_similarity(person1.first_name, person2.first_name)
        last_similarity = string_similarity(person1.last_name, person2.last_name)
        name_similarity = (first_similarity + last_similarity) / 2

        if name_similarity < 0.7:
            return 0

        if name_similarity >= 0.9:
            score = 45
        elif name_similarity >= 0.8:
            score = 35
        else:
            score = 25

        if dates_match(person1.birth_date, person2.birth_date):
            score += 40
        elif years_match(person1.birth_date, person2.birth_date):
            score += 25
        elif years_close(person1.birth_date, person2.birth_date, 3):
            score += 10

        if dates_match(person1.death_date, person2.death_date):
            score += 10
        elif years_match(person1.death_date, person2.death_date):
            score += 5

        return min(score, self.MAX_SCORE)
