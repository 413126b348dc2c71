"""
Three-phase person matching between an existing and an incoming graph.

Phase 1 finds direct matches with the strict scorer, phase 2 propagates
from those matches to partners, children and parents, and phase 3 falls
back to the relaxed scorer for whoever is left.

All iteration follows dict insertion order of each graph's ``persons``;
partners follow a person's ``partnerships`` list and children/parents
follow ``child_ids``/``parent_ids``. For equal inputs the output is
identical.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Set, Any, Optional

from ..core.person import Person
from ..core.graph import FamilyGraph
from .scorer import MatchScorer, MatchReason, ScoreResult
from .conflicts import FieldConflict, detect_conflicts

logger = logging.getLogger(__name__)


class MatchConfidence(str, Enum):
    """Confidence tier derived from a match score."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


_CONFIDENCE_ORDER = {
    MatchConfidence.HIGH: 0,
    MatchConfidence.MEDIUM: 1,
    MatchConfidence.LOW: 2,
}


def score_to_confidence(score: int) -> MatchConfidence:
    """Convert a score to a confidence tier (>= 85 high, >= 55 medium)."""
    if score >= 85:
        return MatchConfidence.HIGH
    if score >= 55:
        return MatchConfidence.MEDIUM
    return MatchConfidence.LOW


@dataclass(slots=True)
class PersonMatch:
    """A proposed pairing of an existing person with an incoming person."""
    existing_id: str
    incoming_id: str
    confidence: MatchConfidence
    reasons: List[MatchReason]
    score: int
    existing_person: Person
    incoming_person: Person
    conflicts: List[FieldConflict] = field(default_factory=list)

    @property
    def is_high_confidence(self) -> bool:
        """True if confidence is high (score >= 85)."""
        return self.confidence == MatchConfidence.HIGH

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the match; persons are referenced by id only."""
        return {
            'existing_id': self.existing_id,
            'incoming_id': self.incoming_id,
            'confidence': self.confidence.value,
            'reasons': [r.value for r in self.reasons],
            'score': self.score,
            'conflicts': [c.to_dict() for c in self.conflicts],
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        existing_graph: FamilyGraph,
        incoming_graph: FamilyGraph
    ) -> Optional["PersonMatch"]:
        """
        Rebuild a match against its graphs.

        Returns:
            PersonMatch, or None if either person is missing from its graph
        """
        existing = existing_graph.persons.get(data['existing_id'])
        incoming = incoming_graph.persons.get(data['incoming_id'])
        if existing is None or incoming is None:
            return None
        return cls(
            existing_id=existing.id,
            incoming_id=incoming.id,
            confidence=MatchConfidence(data['confidence']),
            reasons=[MatchReason(r) for r in data.get('reasons', [])],
            score=int(data['score']),
            existing_person=existing,
            incoming_person=incoming,
            conflicts=[FieldConflict.from_dict(c) for c in data.get('conflicts', [])],
        )


@dataclass
class MatchSession:
    """Ids already claimed by a match during one matching run."""
    used_existing: Set[str] = field(default_factory=set)
    used_incoming: Set[str] = field(default_factory=set)

    def claim(self, existing_id: str, incoming_id: str) -> None:
        self.used_existing.add(existing_id)
        self.used_incoming.add(incoming_id)

    def is_existing_free(self, person: Person) -> bool:
        return not person.is_placeholder and person.id not in self.used_existing

    def is_incoming_free(self, person: Person) -> bool:
        return not person.is_placeholder and person.id not in self.used_incoming


class PersonMatcher:
    """
    Matches persons of an incoming graph against an existing graph.

    Matching Strategies:
    1. Direct matches - strict score >= 35, best candidate wins
    2. Propagation - partners, children and parents of direct matches
       with a relationship bonus, first fit wins
    3. Relaxed matches - name shape plus birth year, score >= 25
    """

    DIRECT_MIN_SCORE = 35
    RELAXED_MIN_SCORE = 25

    PARTNER_BONUS = 20
    CHILD_BONUS = 15
    PARENT_BONUS = 15
    PROPAGATED_MIN_SCORE = 30
    PROPAGATED_MIN_BASE_SCORE = 25

    def __init__(self, scorer: Optional[MatchScorer] = None):
        self.scorer = scorer or MatchScorer()

    def find_matches(
        self,
        existing_graph: FamilyGraph,
        incoming_graph: FamilyGraph,
        session: Optional[MatchSession] = None
    ) -> List[PersonMatch]:
        """
        Find matches between two graphs.

        Args:
            existing_graph: Graph being merged into
            incoming_graph: Graph being merged
            session: Pre-claimed ids (fresh session if None)

        Returns:
            Matches sorted by confidence tier, then by score (highest first)
        """
        if session is None:
            session = MatchSession()

        direct = self.find_direct_matches(existing_graph, incoming_graph, session)
        propagated = self.propagate_from_matches(existing_graph, incoming_graph, direct, session)
        remaining = self.find_remaining_matches(existing_graph, incoming_graph, session)

        logger.debug(
            "Matching found %d direct, %d propagated, %d relaxed matches",
            len(direct), len(propagated), len(remaining)
        )

        matches = direct + propagated + remaining
        matches.sort(key=lambda m: (_CONFIDENCE_ORDER[m.confidence], -m.score))
        return matches

    def find_direct_matches(
        self,
        existing_graph: FamilyGraph,
        incoming_graph: FamilyGraph,
        session: MatchSession
    ) -> List[PersonMatch]:
        """Phase 1: accept the best strict-score candidate of each incoming person."""
        matches = []

        for incoming in incoming_graph.persons.values():
            if not session.is_incoming_free(incoming):
                continue

            best: Optional[Person] = None
            best_result: Optional[ScoreResult] = None

            for existing in existing_graph.persons.values():
                if not session.is_existing_free(existing):
                    continue

                result = self.scorer.calculate_match_score(
                    existing, incoming, existing_graph, incoming_graph)

                # Strictly greater keeps the first of equal candidates
                if result.score >= self.DIRECT_MIN_SCORE and (
                        best_result is None or result.score > best_result.score):
                    best, best_result = existing, result

            if best is not None:
                matches.append(self._make_match(best, incoming, best_result.score, best_result.reasons))
                session.claim(best.id, incoming.id)

        return matches

    def propagate_from_matches(
        self,
        existing_graph: FamilyGraph,
        incoming_graph: FamilyGraph,
        anchors: List[PersonMatch],
        session: MatchSession
    ) -> List[PersonMatch]:
        """
        Phase 2: propagate from anchor matches to their relatives.

        Low-confidence anchors are skipped. Relatives are tried as partners,
        then children, then parents. Each incoming relative is paired with
        the first existing relative whose boosted score is acceptable.
        """
        propagated = []

        for anchor in anchors:
            if anchor.confidence == MatchConfidence.LOW:
                continue

            existing_person = anchor.existing_person
            incoming_person = anchor.incoming_person

            relations = (
                (existing_graph.get_partners(existing_person),
                 incoming_graph.get_partners(incoming_person),
                 self.PARTNER_BONUS, MatchReason.PARTNER_OF_MATCHED, False),
                (existing_graph.get_children(existing_person),
                 incoming_graph.get_children(incoming_person),
                 self.CHILD_BONUS, MatchReason.CHILD_OF_MATCHED, False),
                (existing_graph.get_parents(existing_person),
                 incoming_graph.get_parents(incoming_person),
                 self.PARENT_BONUS, MatchReason.PARENT_OF_MATCHED, True),
            )

            for existing_relatives, incoming_relatives, bonus, reason, same_gender in relations:
                for incoming_relative in incoming_relatives:
                    if not session.is_incoming_free(incoming_relative):
                        continue

                    for existing_relative in existing_relatives:
                        if not session.is_existing_free(existing_relative):
                            continue
                        if same_gender and existing_relative.gender != incoming_relative.gender:
                            continue

                        base = self.scorer.calculate_match_score(
                            existing_relative, incoming_relative, existing_graph, incoming_graph)
                        boosted = min(base.score + bonus, MatchScorer.MAX_SCORE)

                        if (boosted >= self.PROPAGATED_MIN_SCORE or
                                base.score >= self.PROPAGATED_MIN_BASE_SCORE):
                            reasons = list(base.reasons)
                            if reason not in reasons:
                                reasons.append(reason)
                            propagated.append(
                                self._make_match(existing_relative, incoming_relative, boosted, reasons))
                            session.claim(existing_relative.id, incoming_relative.id)
                            break

        return propagated

    def find_remaining_matches(
        self,
        existing_graph: FamilyGraph,
        incoming_graph: FamilyGraph,
        session: MatchSession
    ) -> List[PersonMatch]:
        """Phase 3: accept the best relaxed-score candidate of each leftover person."""
        matches = []

        for incoming in incoming_graph.persons.values():
            if not session.is_incoming_free(incoming):
                continue

            best: Optional[Person] = None
            best_result: Optional[ScoreResult] = None

            for existing in existing_graph.persons.values():
                if not session.is_existing_free(existing):
                    continue

                result = self.scorer.calculate_relaxed_match_score(existing, incoming)
                if result.score >= self.RELAXED_MIN_SCORE and (
                        best_result is None or result.score > best_result.score):
                    best, best_result = existing, result

            if best is not None:
                matches.append(self._make_match(best, incoming, best_result.score, best_result.reasons))
                session.claim(best.id, incoming.id)

        return matches

    def _make_match(
        self,
        existing: Person,
        incoming: Person,
        score: int,
        reasons: List[MatchReason]
    ) -> PersonMatch:
        return PersonMatch(
            existing_id=existing.id,
            incoming_id=incoming.id,
            confidence=score_to_confidence(score),
            reasons=list(reasons),
            score=score,
            existing_person=existing,
            incoming_person=incoming,
            conflicts=detect_conflicts(existing, incoming),
        )


def find_matches(existing_graph: FamilyGraph, incoming_graph: FamilyGraph) -> List[PersonMatch]:
    """Find matches between two graphs with a fresh matcher."""
    return PersonMatcher().find_matches(existing_graph, incoming_graph)
