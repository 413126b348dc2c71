"""Core data model: persons, partnerships and family graphs."""

from .person import Person, Gender
from .partnership import Partnership, PartnershipStatus
from .graph import (
    FamilyGraph,
    GRAPH_DATA_VERSION,
    generate_person_id,
    generate_partnership_id,
)

__all__ = [
    'Person',
    'Gender',
    'Partnership',
    'PartnershipStatus',
    'FamilyGraph',
    'GRAPH_DATA_VERSION',
    'generate_person_id',
    'generate_partnership_id',
]
