"""
Merge state and the reducer functions that update it.

A MergeState is a value: reducers never modify the state they are given,
they return a new state whose ``version`` is one higher. The merge
executor consumes a state as a snapshot.
"""

import logging
from dataclasses import dataclass, field, replace, asdict
from enum import Enum
from typing import Optional, List, Dict, Any, Union, Self

from ..core.graph import FamilyGraph
from ..matching.matcher import (
    PersonMatcher,
    PersonMatch,
    MatchConfidence,
    MatchSession,
)
from ..matching.scorer import MatchReason
from ..matching.conflicts import (
    ConflictField,
    ConflictResolution,
    FieldConflict,
    detect_conflicts,
)

logger = logging.getLogger(__name__)


class MergePhase(str, Enum):
    """Lifecycle phase of a merge."""
    ANALYZING = "analyzing"
    REVIEWING = "reviewing"
    EXECUTING = "executing"
    COMPLETE = "complete"


class DecisionType(str, Enum):
    """Reviewer decision on a proposed match."""
    CONFIRM = "confirm"
    REJECT = "reject"
    MANUAL_MATCH = "manual_match"


@dataclass(frozen=True, slots=True)
class MatchDecision:
    """A reviewer decision for one incoming person.

    Attributes:
        type: Decision type
        target_id: Existing person to merge into (manual matches only)
    """
    type: DecisionType
    target_id: Optional[str] = None

    @classmethod
    def confirm(cls) -> Self:
        return cls(DecisionType.CONFIRM)

    @classmethod
    def reject(cls) -> Self:
        return cls(DecisionType.REJECT)

    @classmethod
    def manual(cls, target_id: str) -> Self:
        return cls(DecisionType.MANUAL_MATCH, target_id)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'type': self.type.value}
        if self.target_id is not None:
            data['target_id'] = self.target_id
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Self:
        return cls(DecisionType(data['type']), data.get('target_id'))


@dataclass(frozen=True)
class MergeState:
    """Everything needed to review and execute a merge.

    Attributes:
        existing_data: Graph being merged into
        incoming_data: Graph being merged
        matches: Current proposed matches
        unmatched_existing: Existing ids that are not part of a match
        unmatched_incoming: Incoming ids (placeholders excluded) that are not
            part of a match
        decisions: Reviewer decisions by incoming id
        conflict_resolutions: Edited conflict lists by incoming id
        phase: Lifecycle phase
        version: Incremented by every reducer
    """
    existing_data: FamilyGraph
    incoming_data: FamilyGraph
    matches: List[PersonMatch] = field(default_factory=list)
    unmatched_existing: List[str] = field(default_factory=list)
    unmatched_incoming: List[str] = field(default_factory=list)
    decisions: Dict[str, MatchDecision] = field(default_factory=dict)
    conflict_resolutions: Dict[str, List[FieldConflict]] = field(default_factory=dict)
    phase: MergePhase = MergePhase.ANALYZING
    version: int = 0

    def get_match(self, incoming_id: str) -> Optional[PersonMatch]:
        """Find the match for an incoming person."""
        for match in self.matches:
            if match.incoming_id == incoming_id:
                return match
        return None

    def conflicts_for(self, match: PersonMatch) -> List[FieldConflict]:
        """Edited conflicts of a match if any, else its detected conflicts."""
        return self.conflict_resolutions.get(match.incoming_id, match.conflicts)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the state for session storage."""
        return {
            'existing_data': self.existing_data.to_dict(),
            'incoming_data': self.incoming_data.to_dict(),
            'matches': [m.to_dict() for m in self.matches],
            'unmatched_existing': list(self.unmatched_existing),
            'unmatched_incoming': list(self.unmatched_incoming),
            'decisions': {pid: d.to_dict() for pid, d in self.decisions.items()},
            'conflict_resolutions': {
                pid: [c.to_dict() for c in conflicts]
                for pid, conflicts in self.conflict_resolutions.items()
            },
            'phase': self.phase.value,
            'version': self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Self:
        """Rebuild a state from its serialized form.

        Matches referring to persons missing from either graph are dropped.
        """
        existing = FamilyGraph.from_dict(data['existing_data'])
        incoming = FamilyGraph.from_dict(data['incoming_data'])

        matches = []
        for match_data in data.get('matches', []):
            match = PersonMatch.from_dict(match_data, existing, incoming)
            if match is not None:
                matches.append(match)

        return cls(
            existing_data=existing,
            incoming_data=incoming,
            matches=matches,
            unmatched_existing=list(data.get('unmatched_existing', [])),
            unmatched_incoming=list(data.get('unmatched_incoming', [])),
            decisions={
                pid: MatchDecision.from_dict(d)
                for pid, d in data.get('decisions', {}).items()
            },
            conflict_resolutions={
                pid: [FieldConflict.from_dict(c) for c in conflicts]
                for pid, conflicts in data.get('conflict_resolutions', {}).items()
            },
            phase=MergePhase(data.get('phase', MergePhase.ANALYZING.value)),
            version=int(data.get('version', 0)),
        )


@dataclass
class MergeStats:
    """Summary of a merge state."""
    total: int = 0
    matched: int = 0
    high_confidence: int = 0
    medium_confidence: int = 0
    low_confidence: int = 0
    unmatched: int = 0
    with_conflicts: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


def _unmatched_existing(existing: FamilyGraph, matches: List[PersonMatch]) -> List[str]:
    matched = {m.existing_id for m in matches}
    return [pid for pid in existing.persons if pid not in matched]


def _unmatched_incoming(
    incoming: FamilyGraph,
    matches: List[PersonMatch],
    excluded: Optional[set] = None
) -> List[str]:
    matched = {m.incoming_id for m in matches}
    excluded = excluded or set()
    return [
        pid for pid, person in incoming.persons.items()
        if pid not in matched and pid not in excluded and not person.is_placeholder
    ]


def create_merge_state(
    existing: FamilyGraph,
    incoming: FamilyGraph,
    matcher: Optional[PersonMatcher] = None
) -> MergeState:
    """
    Create the initial merge state by matching two graphs.

    Args:
        existing: Graph being merged into
        incoming: Graph being merged
        matcher: Matcher to use (default PersonMatcher)

    Returns:
        MergeState in the analyzing phase at version 0
    """
    matcher = matcher or PersonMatcher()
    matches = matcher.find_matches(existing, incoming)

    state = MergeState(
        existing_data=existing,
        incoming_data=incoming,
        matches=matches,
        unmatched_existing=_unmatched_existing(existing, matches),
        unmatched_incoming=_unmatched_incoming(incoming, matches),
    )
    logger.debug(
        "Created merge state: %d matches, %d unmatched incoming",
        len(state.matches), len(state.unmatched_incoming)
    )
    return state


def update_match_decision(
    state: MergeState,
    incoming_id: str,
    decision: Union[MatchDecision, DecisionType, str]
) -> MergeState:
    """
    Record a reviewer decision for an incoming person.

    Args:
        state: Current state
        incoming_id: Incoming person the decision applies to
        decision: MatchDecision, or "confirm" / "reject"

    Returns:
        New state, or the given state unchanged if the incoming id (or a
        manual target) is unknown
    """
    if not isinstance(decision, MatchDecision):
        decision = MatchDecision(DecisionType(decision))

    if incoming_id not in state.incoming_data.persons:
        logger.debug("Ignoring decision for unknown incoming person %s", incoming_id)
        return state
    if decision.type == DecisionType.MANUAL_MATCH and (
            decision.target_id not in state.existing_data.persons):
        logger.debug("Ignoring manual match to unknown person %s", decision.target_id)
        return state

    decisions = dict(state.decisions)
    decisions[incoming_id] = decision
    return replace(state, decisions=decisions, version=state.version + 1)


def update_conflict_resolution(
    state: MergeState,
    incoming_id: str,
    conflict_field: Union[ConflictField, str],
    resolution: Union[ConflictResolution, str],
    resolved_value: Optional[str] = None
) -> MergeState:
    """
    Set the resolution of one conflict of a match.

    The edited conflict list is stored under the incoming id and also
    reflected on the match itself.

    Returns:
        New state, or the given state unchanged if no match exists for the
        incoming id
    """
    match = state.get_match(incoming_id)
    if match is None:
        return state

    conflict_field = ConflictField(conflict_field)
    resolution = ConflictResolution(resolution)

    conflicts = [
        c.with_resolution(resolution, resolved_value) if c.field == conflict_field else c
        for c in state.conflicts_for(match)
    ]
    updated_match = replace(match, conflicts=conflicts)

    conflict_resolutions = dict(state.conflict_resolutions)
    conflict_resolutions[incoming_id] = conflicts

    return replace(
        state,
        matches=[updated_match if m is match else m for m in state.matches],
        conflict_resolutions=conflict_resolutions,
        version=state.version + 1,
    )


def set_phase(state: MergeState, phase: Union[MergePhase, str]) -> MergeState:
    """Move the state to another lifecycle phase."""
    return replace(state, phase=MergePhase(phase), version=state.version + 1)


def reanalyze_matches(
    state: MergeState,
    matcher: Optional[PersonMatcher] = None
) -> MergeState:
    """
    Recompute matches while honoring reviewer decisions.

    Manual matches come first, then confirmed matches that still exist,
    then fresh automatic matches for persons not claimed by either.
    Rejected incoming persons are never matched. Edited conflict lists
    survive only for pairs that are unchanged.

    Returns:
        New state with recomputed matches and unmatched lists
    """
    matcher = matcher or PersonMatcher()
    existing = state.existing_data
    incoming = state.incoming_data

    rejected = set()
    manual_matches: List[PersonMatch] = []
    confirmed_matches: List[PersonMatch] = []

    for incoming_id, decision in state.decisions.items():
        if decision.type == DecisionType.REJECT:
            rejected.add(incoming_id)
        elif decision.type == DecisionType.MANUAL_MATCH:
            incoming_person = incoming.persons.get(incoming_id)
            existing_person = existing.persons.get(decision.target_id)
            if incoming_person is not None and existing_person is not None:
                manual_matches.append(PersonMatch(
                    existing_id=existing_person.id,
                    incoming_id=incoming_id,
                    confidence=MatchConfidence.HIGH,
                    reasons=[MatchReason.MANUAL],
                    score=100,
                    existing_person=existing_person,
                    incoming_person=incoming_person,
                    conflicts=detect_conflicts(existing_person, incoming_person),
                ))
        elif decision.type == DecisionType.CONFIRM:
            match = state.get_match(incoming_id)
            if match is not None:
                confirmed_matches.append(match)

    session = MatchSession()
    for match in manual_matches:
        session.claim(match.existing_id, match.incoming_id)

    kept_confirmed = []
    for match in confirmed_matches:
        if match.existing_id in session.used_existing or match.incoming_id in session.used_incoming:
            continue
        session.claim(match.existing_id, match.incoming_id)
        kept_confirmed.append(match)

    session.used_incoming.update(rejected)

    auto_matches = [
        m for m in matcher.find_matches(existing, incoming)
        if m.incoming_id not in rejected
        and m.existing_id not in session.used_existing
        and m.incoming_id not in session.used_incoming
    ]

    seen_incoming = set()
    seen_existing = set()
    matches = []
    for match in manual_matches + kept_confirmed + auto_matches:
        if match.incoming_id in seen_incoming or match.existing_id in seen_existing:
            continue
        seen_incoming.add(match.incoming_id)
        seen_existing.add(match.existing_id)
        matches.append(match)

    # Carry edited conflicts over to pairs that did not change
    previous_pairs = {m.incoming_id: m.existing_id for m in state.matches}
    conflict_resolutions = {}
    for i, match in enumerate(matches):
        edited = state.conflict_resolutions.get(match.incoming_id)
        if edited is not None and previous_pairs.get(match.incoming_id) == match.existing_id:
            conflict_resolutions[match.incoming_id] = edited
            matches[i] = replace(match, conflicts=edited)

    logger.debug(
        "Reanalyzed: %d manual, %d confirmed, %d total matches",
        len(manual_matches), len(kept_confirmed), len(matches)
    )

    return replace(
        state,
        matches=matches,
        unmatched_existing=_unmatched_existing(existing, matches),
        unmatched_incoming=_unmatched_incoming(incoming, matches, rejected),
        conflict_resolutions=conflict_resolutions,
        version=state.version + 1,
    )


def calculate_merge_stats(state: MergeState) -> MergeStats:
    """Calculate summary statistics of a merge state."""
    return MergeStats(
        total=len(state.incoming_data.persons),
        matched=len(state.matches),
        high_confidence=sum(1 for m in state.matches if m.confidence == MatchConfidence.HIGH),
        medium_confidence=sum(1 for m in state.matches if m.confidence == MatchConfidence.MEDIUM),
        low_confidence=sum(1 for m in state.matches if m.confidence == MatchConfidence.LOW),
        unmatched=len(state.unmatched_incoming),
        with_conflicts=sum(1 for m in state.matches if m.conflicts),
    )
