"""Person class for representing individuals in a family graph."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any, Self


class Gender(str, Enum):
    """Gender of a person."""
    MALE = "male"
    FEMALE = "female"


@dataclass(slots=True)
class Person:
    """Represents an individual person in a family graph.

    Attributes:
        id: Unique identifier (e.g., 'p_1700000000000_ab12c')
        first_name: Given name, possibly with middle names
        last_name: Surname (maiden name for married women)
        gender: Gender of the person
        is_placeholder: True if the record stands in for an unknown individual
        birth_date: Partial ISO date ('1950', '1950-03' or '1950-03-01')
        birth_place: Place of birth
        death_date: Partial ISO date of death
        death_place: Place of death
        partnerships: IDs of partnerships this person belongs to
        parent_ids: IDs of the parents (at most two)
        child_ids: IDs of the children
    """

    id: str
    first_name: str = ""
    last_name: str = ""
    gender: Gender = Gender.MALE
    is_placeholder: bool = False
    birth_date: Optional[str] = None
    birth_place: Optional[str] = None
    death_date: Optional[str] = None
    death_place: Optional[str] = None
    partnerships: List[str] = field(default_factory=list)
    parent_ids: List[str] = field(default_factory=list)
    child_ids: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        """Return a human-readable string representation."""
        name = self.full_name or "Unknown"
        birth_year = self.birth_date[:4] if self.birth_date else None
        death_year = self.death_date[:4] if self.death_date else None

        if birth_year and death_year:
            return f"{name} ({birth_year}-{death_year})"
        elif birth_year:
            return f"{name} (b. {birth_year})"
        elif death_year:
            return f"{name} (d. {death_year})"
        else:
            return name

    def __repr__(self) -> str:
        """Return a detailed string representation for debugging."""
        return f"Person(id={self.id!r}, name={self.full_name!r})"

    @property
    def full_name(self) -> str:
        """First and last name joined by a space."""
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def to_dict(self) -> Dict[str, Any]:
        """Convert person to its JSON interchange representation.

        Returns:
            Dictionary with camelCase keys; unset optional fields are omitted
        """
        data: Dict[str, Any] = {
            'id': self.id,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'gender': self.gender.value,
            'isPlaceholder': self.is_placeholder,
            'partnerships': list(self.partnerships),
            'parentIds': list(self.parent_ids),
            'childIds': list(self.child_ids),
        }
        for key, value in (
            ('birthDate', self.birth_date),
            ('birthPlace', self.birth_place),
            ('deathDate', self.death_date),
            ('deathPlace', self.death_place),
        ):
            if value is not None:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Self:
        """Create a Person instance from its JSON interchange representation.

        Args:
            data: Dictionary containing person data

        Returns:
            Person instance
        """
        return cls(
            id=data['id'],
            first_name=data.get('firstName', ''),
            last_name=data.get('lastName', ''),
            gender=Gender(data.get('gender', Gender.MALE.value)),
            is_placeholder=bool(data.get('isPlaceholder', False)),
            birth_date=data.get('birthDate'),
            birth_place=data.get('birthPlace'),
            death_date=data.get('deathDate'),
            death_place=data.get('deathPlace'),
            partnerships=list(data.get('partnerships', [])),
            parent_ids=list(data.get('parentIds', [])),
            child_ids=list(data.get('childIds', [])),
        )
