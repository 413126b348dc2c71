"""FamilyGraph container for persons and partnerships."""

import copy
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Self

from ..config import default_config
from .person import Person
from .partnership import Partnership

# Current graph format version
GRAPH_DATA_VERSION = 1


def _generate_id(prefix: str) -> str:
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:5]}"


def generate_person_id() -> str:
    """Generate a unique person ID."""
    return _generate_id(default_config.person_id_prefix)


def generate_partnership_id() -> str:
    """Generate a unique partnership ID."""
    return _generate_id(default_config.partnership_id_prefix)


@dataclass
class FamilyGraph:
    """A family graph: persons, partnerships and per-session viewing state.

    Both collections are plain dicts and keep insertion order. Matching
    walks them in that order, so the order of an imported graph is part of
    its identity for the purpose of merging.

    Attributes:
        persons: Persons by ID
        partnerships: Partnerships by ID
        version: Data format version
        default_person_id: Person shown when the tree is opened
        last_focus_person_id: Person focused when the tree was last viewed
        last_focus_depth_up: Ancestor depth of the last view
        last_focus_depth_down: Descendant depth of the last view
    """

    persons: Dict[str, Person] = field(default_factory=dict)
    partnerships: Dict[str, Partnership] = field(default_factory=dict)
    version: Optional[int] = GRAPH_DATA_VERSION
    default_person_id: Optional[str] = None
    last_focus_person_id: Optional[str] = None
    last_focus_depth_up: Optional[int] = None
    last_focus_depth_down: Optional[int] = None

    def __repr__(self) -> str:
        return (f"FamilyGraph(persons={len(self.persons)}, "
                f"partnerships={len(self.partnerships)})")

    def add_person(self, person: Person) -> Person:
        """Add a person under its own ID."""
        self.persons[person.id] = person
        return person

    def add_partnership(self, partnership: Partnership) -> Partnership:
        """Add a partnership under its own ID."""
        self.partnerships[partnership.id] = partnership
        return partnership

    def get_partners(self, person: Person) -> List[Person]:
        """Get partners of a person, in partnership order.

        Partnerships or partners that are missing from the graph are skipped.
        """
        partners = []
        for partnership_id in person.partnerships:
            partnership = self.partnerships.get(partnership_id)
            if partnership is None:
                continue
            partner = self.persons.get(partnership.get_partner_id(person.id))
            if partner is not None:
                partners.append(partner)
        return partners

    def get_children(self, person: Person) -> List[Person]:
        """Get children of a person that are present in the graph."""
        return [self.persons[cid] for cid in person.child_ids if cid in self.persons]

    def get_parents(self, person: Person) -> List[Person]:
        """Get parents of a person that are present in the graph."""
        return [self.persons[pid] for pid in person.parent_ids if pid in self.persons]

    def find_partnership(self, person_a: str, person_b: str) -> Optional[Partnership]:
        """Find a partnership between two persons, in either order."""
        for partnership in self.partnerships.values():
            if partnership.connects(person_a, person_b):
                return partnership
        return None

    def clone(self) -> Self:
        """Return a deep, fully independent copy of the graph."""
        return copy.deepcopy(self)

    def clear_focus(self) -> None:
        """Drop the viewing state carried by the graph."""
        self.default_person_id = None
        self.last_focus_person_id = None
        self.last_focus_depth_up = None
        self.last_focus_depth_down = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert the graph to its JSON interchange representation."""
        data: Dict[str, Any] = {}
        if self.version is not None:
            data['version'] = self.version
        data['persons'] = {pid: p.to_dict() for pid, p in self.persons.items()}
        data['partnerships'] = {uid: u.to_dict() for uid, u in self.partnerships.items()}
        for key, value in (
            ('defaultPersonId', self.default_person_id),
            ('lastFocusPersonId', self.last_focus_person_id),
            ('lastFocusDepthUp', self.last_focus_depth_up),
            ('lastFocusDepthDown', self.last_focus_depth_down),
        ):
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Self:
        """Create a graph from its JSON interchange representation.

        Args:
            data: Dictionary with 'persons' and 'partnerships' mappings

        Returns:
            FamilyGraph instance
        """
        return cls(
            persons={pid: Person.from_dict(p) for pid, p in data.get('persons', {}).items()},
            partnerships={
                uid: Partnership.from_dict(u)
                for uid, u in data.get('partnerships', {}).items()
            },
            version=data.get('version'),
            default_person_id=data.get('defaultPersonId'),
            last_focus_person_id=data.get('lastFocusPersonId'),
            last_focus_depth_up=data.get('lastFocusDepthUp'),
            last_focus_depth_down=data.get('lastFocusDepthDown'),
        )
