"""Partnership class for representing couples in a family graph."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any, Self


class PartnershipStatus(str, Enum):
    """Status of a partnership."""
    MARRIED = "married"
    PARTNERS = "partners"
    DIVORCED = "divorced"
    SEPARATED = "separated"


@dataclass(slots=True)
class Partnership:
    """Represents a couple and their common children.

    Attributes:
        id: Unique identifier (e.g., 'u_1700000000000_ab12c')
        person1_id: ID of the first partner
        person2_id: ID of the second partner
        child_ids: Ordered list of child IDs
        status: Partnership status
        start_date: Date of marriage or start of the relationship
        start_place: Place of marriage
        end_date: Date of divorce or end of the relationship
        note: Free text note
        is_primary: Shown by default when a person has several partnerships
    """

    id: str
    person1_id: str
    person2_id: str
    child_ids: List[str] = field(default_factory=list)
    status: PartnershipStatus = PartnershipStatus.MARRIED
    start_date: Optional[str] = None
    start_place: Optional[str] = None
    end_date: Optional[str] = None
    note: Optional[str] = None
    is_primary: Optional[bool] = None

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return (f"Partnership(id={self.id!r}, person1={self.person1_id!r}, "
                f"person2={self.person2_id!r}, children={len(self.child_ids)})")

    def get_partner_id(self, person_id: str) -> str:
        """Get the ID of the other partner.

        Args:
            person_id: ID of one of the partners

        Returns:
            ID of the opposite endpoint
        """
        return self.person2_id if self.person1_id == person_id else self.person1_id

    def connects(self, person_a: str, person_b: str) -> bool:
        """Check whether this partnership joins the two persons, in either order."""
        return ((self.person1_id == person_a and self.person2_id == person_b) or
                (self.person1_id == person_b and self.person2_id == person_a))

    def to_dict(self) -> Dict[str, Any]:
        """Convert partnership to its JSON interchange representation."""
        data: Dict[str, Any] = {
            'id': self.id,
            'person1Id': self.person1_id,
            'person2Id': self.person2_id,
            'childIds': list(self.child_ids),
            'status': self.status.value,
        }
        for key, value in (
            ('startDate', self.start_date),
            ('startPlace', self.start_place),
            ('endDate', self.end_date),
            ('note', self.note),
            ('isPrimary', self.is_primary),
        ):
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Self:
        """Create a Partnership instance from its JSON interchange representation."""
        return cls(
            id=data['id'],
            person1_id=data['person1Id'],
            person2_id=data['person2Id'],
            child_ids=list(data.get('childIds', [])),
            status=PartnershipStatus(data.get('status', PartnershipStatus.MARRIED.value)),
            start_date=data.get('startDate'),
            start_place=data.get('startPlace'),
            end_date=data.get('endDate'),
            note=data.get('note'),
            is_primary=data.get('isPrimary'),
        )
