"""Translation of incoming ids to their ids in the merged graph."""

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Set

from ..core.graph import generate_person_id, generate_partnership_id
from .state import MergeState, DecisionType


@dataclass
class IdMapping:
    """Incoming id -> final id tables.

    Attributes:
        persons: Incoming person id -> existing id, manual target or fresh id
        partnerships: Incoming partnership id -> fresh id
    """
    persons: Dict[str, str] = field(default_factory=dict)
    partnerships: Dict[str, str] = field(default_factory=dict)

    def person(self, incoming_id: str) -> Optional[str]:
        return self.persons.get(incoming_id)

    def partnership(self, incoming_id: str) -> Optional[str]:
        return self.partnerships.get(incoming_id)


def _fresh_id(generate: Callable[[], str], taken: Set[str]) -> str:
    new_id = generate()
    while new_id in taken:
        new_id = generate()
    taken.add(new_id)
    return new_id


def build_id_mapping(state: MergeState) -> IdMapping:
    """
    Build the id mapping for a merge.

    - Confirmed or undecided matches map to the existing id
    - Manual matches map to the chosen target id
    - Rejected and unmatched persons get a fresh id
    - Every partnership gets a fresh id

    Fresh ids never collide with an id of either graph or with each other.

    Args:
        state: Merge state snapshot

    Returns:
        IdMapping covering every incoming person and partnership
    """
    existing = state.existing_data
    incoming = state.incoming_data

    taken_persons = set(existing.persons) | set(incoming.persons)
    taken_partnerships = set(existing.partnerships) | set(incoming.partnerships)

    mapping = IdMapping()

    for match in state.matches:
        decision = state.decisions.get(match.incoming_id)
        if decision is None or decision.type == DecisionType.CONFIRM:
            mapping.persons[match.incoming_id] = match.existing_id
        elif decision.type == DecisionType.MANUAL_MATCH:
            mapping.persons[match.incoming_id] = decision.target_id
        else:
            mapping.persons[match.incoming_id] = _fresh_id(generate_person_id, taken_persons)

    for incoming_id in state.unmatched_incoming:
        decision = state.decisions.get(incoming_id)
        if decision is not None and decision.type == DecisionType.MANUAL_MATCH:
            mapping.persons[incoming_id] = decision.target_id
        else:
            mapping.persons[incoming_id] = _fresh_id(generate_person_id, taken_persons)

    # Placeholders and anything else not covered above
    for incoming_id in incoming.persons:
        if incoming_id not in mapping.persons:
            mapping.persons[incoming_id] = _fresh_id(generate_person_id, taken_persons)

    for incoming_id in incoming.partnerships:
        mapping.partnerships[incoming_id] = _fresh_id(generate_partnership_id, taken_partnerships)

    return mapping
