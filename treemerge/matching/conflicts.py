"""
Field conflicts between matched person records.

A conflict exists where both records hold a value for the same field and
the values differ. Fields where only one side has a value are not
conflicts: they are filled in during the merge.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, List, Dict, Any, Self

from ..core.person import Person


class ConflictField(str, Enum):
    """Person fields compared for conflicts. Values are Person attribute names."""
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    BIRTH_DATE = "birth_date"
    BIRTH_PLACE = "birth_place"
    DEATH_DATE = "death_date"
    DEATH_PLACE = "death_place"

    def get(self, person: Person) -> Optional[str]:
        """Read this field from a person."""
        return getattr(person, self.value)

    def set(self, person: Person, value: Optional[str]) -> None:
        """Write this field on a person."""
        setattr(person, self.value, value)


# Optional fields that are filled in from the incoming record when empty
FILL_IN_FIELDS = (
    ConflictField.BIRTH_DATE,
    ConflictField.BIRTH_PLACE,
    ConflictField.DEATH_DATE,
    ConflictField.DEATH_PLACE,
)


class ConflictResolution(str, Enum):
    """How to resolve a conflict."""
    KEEP_EXISTING = "keep_existing"
    USE_INCOMING = "use_incoming"
    MANUAL = "manual"


@dataclass(slots=True)
class FieldConflict:
    """Conflict between the existing and incoming value of one field."""
    field: ConflictField
    existing_value: Optional[str]
    incoming_value: Optional[str]
    resolution: ConflictResolution = ConflictResolution.KEEP_EXISTING
    resolved_value: Optional[str] = None

    def __str__(self) -> str:
        """Human-readable description."""
        return (
            f"Field: {self.field.value}\n"
            f"  Existing: {self.existing_value}\n"
            f"  Incoming: {self.incoming_value}\n"
            f"  Resolution: {self.resolution.value}"
        )

    def with_resolution(
        self,
        resolution: ConflictResolution,
        resolved_value: Optional[str] = None
    ) -> Self:
        """Return a copy carrying a new resolution."""
        return replace(self, resolution=resolution, resolved_value=resolved_value)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'field': self.field.value,
            'existing_value': self.existing_value,
            'incoming_value': self.incoming_value,
            'resolution': self.resolution.value,
            'resolved_value': self.resolved_value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Self:
        return cls(
            field=ConflictField(data['field']),
            existing_value=data.get('existing_value'),
            incoming_value=data.get('incoming_value'),
            resolution=ConflictResolution(data.get('resolution', 'keep_existing')),
            resolved_value=data.get('resolved_value'),
        )


def detect_conflicts(existing: Person, incoming: Person) -> List[FieldConflict]:
    """
    Detect conflicting fields between two persons.

    Args:
        existing: Person from the existing graph
        incoming: Person from the incoming graph

    Returns:
        One conflict per field where both values are set and differ,
        in ConflictField order, each defaulting to keep_existing
    """
    conflicts = []

    for conflict_field in ConflictField:
        existing_value = conflict_field.get(existing)
        incoming_value = conflict_field.get(incoming)

        if existing_value and incoming_value and existing_value != incoming_value:
            conflicts.append(FieldConflict(
                field=conflict_field,
                existing_value=existing_value,
                incoming_value=incoming_value,
            ))

    return conflicts
