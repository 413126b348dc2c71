"""
Pre-screening of raw JSON import payloads.

Checks the structure, required fields and references of an exported family
graph before it is handed to the merge engine. Problems are reported as
codes (e.g. 'missingFirstName:p1') rather than raised, so that a caller
can show all of them at once.
"""

import json
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any

from ..core.graph import FamilyGraph, GRAPH_DATA_VERSION
from ..core.person import Person, Gender
from ..core.partnership import Partnership, PartnershipStatus

_VALID_GENDERS = {g.value for g in Gender}
_VALID_STATUSES = {s.value for s in PartnershipStatus}

_MISSING_FIELD_CODES = {
    'missingPersonId', 'missingFirstName', 'missingLastName', 'invalidGender',
    'missingPartnershipId', 'missingPerson1', 'missingPerson2',
}
_INVALID_REFERENCE_CODES = {
    'invalidParentRef', 'invalidChildRef', 'invalidPartnershipRef',
    'invalidPerson1Ref', 'invalidPerson2Ref', 'invalidPartnershipChildRef',
}
_DIRECT_CODES = {
    'parseError', 'invalidStructure', 'missingPersons', 'missingPartnerships',
    'noVersion', 'olderVersion', 'newerVersion',
}


@dataclass
class ValidationResult:
    """Outcome of validating an import payload.

    Attributes:
        valid: True if there are no errors (warnings are allowed)
        errors: Error codes
        warnings: Warning codes
        data: Validated graph, present unless parsing or structure failed
    """
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    data: Optional[FamilyGraph] = None


def _string_or_none(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def _id_list(value: Any) -> List[str]:
    return [str(v) for v in value] if isinstance(value, list) else []


def _check_version(parsed: Dict[str, Any], warnings: List[str]) -> Optional[int]:
    version = parsed.get('version')
    if isinstance(version, bool) or not isinstance(version, (int, float)):
        version = 0

    if version == 0:
        warnings.append('noVersion')
        return None
    if version < GRAPH_DATA_VERSION:
        warnings.append(f'olderVersion:{version}:{GRAPH_DATA_VERSION}')
    elif version > GRAPH_DATA_VERSION:
        warnings.append(f'newerVersion:{version}:{GRAPH_DATA_VERSION}')
    return int(version)


def _validate_persons(
    raw_persons: Dict[str, Any],
    errors: List[str],
    warnings: List[str]
) -> Dict[str, Person]:
    persons = {}

    for person_id, raw in raw_persons.items():
        raw = raw if isinstance(raw, dict) else {}

        if not raw.get('id') or not isinstance(raw['id'], str):
            errors.append(f'missingPersonId:{person_id}')
            continue
        if raw['id'] != person_id:
            warnings.append(f'idMismatch:{person_id}')
        if not isinstance(raw.get('firstName'), str):
            errors.append(f'missingFirstName:{person_id}')
        if not isinstance(raw.get('lastName'), str):
            errors.append(f'missingLastName:{person_id}')
        if raw.get('gender') not in _VALID_GENDERS:
            errors.append(f'invalidGender:{person_id}')

        persons[person_id] = Person(
            id=person_id,
            first_name=str(raw.get('firstName') or ''),
            last_name=str(raw.get('lastName') or ''),
            gender=Gender.FEMALE if raw.get('gender') == Gender.FEMALE.value else Gender.MALE,
            is_placeholder=bool(raw.get('isPlaceholder')),
            birth_date=_string_or_none(raw.get('birthDate')),
            birth_place=_string_or_none(raw.get('birthPlace')),
            death_date=_string_or_none(raw.get('deathDate')),
            death_place=_string_or_none(raw.get('deathPlace')),
            partnerships=_id_list(raw.get('partnerships')),
            parent_ids=_id_list(raw.get('parentIds')),
            child_ids=_id_list(raw.get('childIds')),
        )

    return persons


def _validate_partnerships(
    raw_partnerships: Dict[str, Any],
    person_ids: set,
    errors: List[str],
    warnings: List[str]
) -> Dict[str, Partnership]:
    partnerships = {}

    for partnership_id, raw in raw_partnerships.items():
        raw = raw if isinstance(raw, dict) else {}

        if not raw.get('id') or not isinstance(raw['id'], str):
            errors.append(f'missingPartnershipId:{partnership_id}')
            continue
        if not raw.get('person1Id') or not isinstance(raw['person1Id'], str):
            errors.append(f'missingPerson1:{partnership_id}')
            continue
        if not raw.get('person2Id') or not isinstance(raw['person2Id'], str):
            errors.append(f'missingPerson2:{partnership_id}')
            continue

        if raw['person1Id'] not in person_ids:
            warnings.append(f"invalidPerson1Ref:{partnership_id}:{raw['person1Id']}")
        if raw['person2Id'] not in person_ids:
            warnings.append(f"invalidPerson2Ref:{partnership_id}:{raw['person2Id']}")

        status = raw.get('status')
        partnerships[partnership_id] = Partnership(
            id=partnership_id,
            person1_id=raw['person1Id'],
            person2_id=raw['person2Id'],
            child_ids=_id_list(raw.get('childIds')),
            status=PartnershipStatus(status) if status in _VALID_STATUSES else PartnershipStatus.MARRIED,
            start_date=_string_or_none(raw.get('startDate')),
            start_place=_string_or_none(raw.get('startPlace')),
            end_date=_string_or_none(raw.get('endDate')),
            note=_string_or_none(raw.get('note')),
        )

    return partnerships


def validate_json_import(content: str) -> ValidationResult:
    """
    Validate a JSON import payload.

    Args:
        content: Raw JSON text

    Returns:
        ValidationResult with error/warning codes and, when the structure is
        usable, the validated graph
    """
    errors: List[str] = []
    warnings: List[str] = []

    try:
        parsed = json.loads(content)
    except json.JSONDecodeError:
        return ValidationResult(valid=False, errors=['parseError'])

    if not isinstance(parsed, dict):
        return ValidationResult(valid=False, errors=['invalidStructure'])

    version = _check_version(parsed, warnings)

    raw_persons = parsed.get('persons')
    if not isinstance(raw_persons, dict):
        errors.append('missingPersons')

    raw_partnerships = parsed.get('partnerships')
    if not isinstance(raw_partnerships, dict):
        # An absent partnership map is treated as empty
        warnings.append('missingPartnerships')
        raw_partnerships = {}

    if errors:
        return ValidationResult(valid=False, errors=errors, warnings=warnings)

    persons = _validate_persons(raw_persons, errors, warnings)
    # Ids of every entry count for references, even entries that failed
    person_ids = set(raw_persons)
    partnerships = _validate_partnerships(raw_partnerships, person_ids, errors, warnings)
    partnership_ids = set(raw_partnerships)

    for person in persons.values():
        for parent_id in person.parent_ids:
            if parent_id not in person_ids:
                warnings.append(f'invalidParentRef:{person.id}:{parent_id}')
        for child_id in person.child_ids:
            if child_id not in person_ids:
                warnings.append(f'invalidChildRef:{person.id}:{child_id}')
        for partnership_id in person.partnerships:
            if partnership_id not in partnership_ids:
                warnings.append(f'invalidPartnershipRef:{person.id}:{partnership_id}')

    for partnership in partnerships.values():
        for child_id in partnership.child_ids:
            if child_id not in person_ids:
                warnings.append(f'invalidPartnershipChildRef:{partnership.id}:{child_id}')

    return ValidationResult(
        valid=not errors,
        errors=errors,
        warnings=warnings,
        data=FamilyGraph(persons=persons, partnerships=partnerships, version=version),
    )


def get_validation_error_key(error: str) -> str:
    """Map an error or warning code to its message key ('validation.*')."""
    error_type = error.split(':')[0]

    if error_type in _DIRECT_CODES:
        return f'validation.{error_type}'
    if error_type in _MISSING_FIELD_CODES:
        return 'validation.missingField'
    if error_type in _INVALID_REFERENCE_CODES:
        return 'validation.invalidReference'
    return 'validation.unknownError'
