"""
Tests for field conflict detection.
"""

from treemerge.matching import (
    ConflictField,
    ConflictResolution,
    FieldConflict,
    detect_conflicts,
)


class TestDetectConflicts:
    """Tests for detect_conflicts."""

    def test_no_conflicts_for_equal_records(self, person_factory):
        p1 = person_factory("e1", "Jan", "Novák", birth_date="1950-03-01")
        p2 = person_factory("i1", "Jan", "Novák", birth_date="1950-03-01")

        assert detect_conflicts(p1, p2) == []

    def test_one_sided_value_is_not_a_conflict(self, person_factory):
        """Test that a value present on one side only is left for fill-in."""
        p1 = person_factory("e1", "Jan", "Novák", birth_date="1950-03-01")
        p2 = person_factory("i1", "Jan", "Novák", death_place="Brno")

        assert detect_conflicts(p1, p2) == []

    def test_conflicts_in_field_order(self, person_factory):
        p1 = person_factory("e1", "Jan", "Novák", birth_date="1950-03-01", death_place="Brno")
        p2 = person_factory("i1", "Ian", "Novák", birth_date="1950", death_place="Praha")

        conflicts = detect_conflicts(p1, p2)

        assert [c.field for c in conflicts] == [
            ConflictField.FIRST_NAME,
            ConflictField.BIRTH_DATE,
            ConflictField.DEATH_PLACE,
        ]
        assert all(c.resolution == ConflictResolution.KEEP_EXISTING for c in conflicts)
        assert conflicts[1].existing_value == "1950-03-01"
        assert conflicts[1].incoming_value == "1950"

    def test_empty_string_is_not_a_value(self, person_factory):
        p1 = person_factory("e1", "Jan", "")
        p2 = person_factory("i1", "Jan", "Novák")

        assert detect_conflicts(p1, p2) == []


class TestFieldConflict:
    """Tests for FieldConflict."""

    def test_with_resolution_returns_copy(self):
        conflict = FieldConflict(ConflictField.BIRTH_DATE, "1950", "1951")

        resolved = conflict.with_resolution(ConflictResolution.USE_INCOMING)

        assert resolved.resolution == ConflictResolution.USE_INCOMING
        assert conflict.resolution == ConflictResolution.KEEP_EXISTING

    def test_dict_round_trip(self):
        conflict = FieldConflict(
            ConflictField.DEATH_PLACE, "Brno", "Praha",
            ConflictResolution.MANUAL, "Brno-venkov")

        data = conflict.to_dict()

        assert data['field'] == "death_place"
        assert data['resolution'] == "manual"
        assert FieldConflict.from_dict(data) == conflict

    def test_str(self):
        conflict = FieldConflict(ConflictField.FIRST_NAME, "Jan", "Ian")

        text = str(conflict)

        assert "first_name" in text
        assert "keep_existing" in text

    def test_field_accessors(self, person_factory):
        person = person_factory("e1", "Jan", "Novák")

        ConflictField.BIRTH_PLACE.set(person, "Praha")

        assert person.birth_place == "Praha"
        assert ConflictField.LAST_NAME.get(person) == "Novák"
