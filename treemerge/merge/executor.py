"""
Merge execution.

Turns a reviewed merge state into a new merged graph. The existing graph
of the state is backed up and deep-cloned first, and every change is made
on the clone. If anything fails the caller gets the original, untouched
existing graph back.

Merge Process:
1. Back up and clone the existing graph, clear its viewing state
2. Merge matched persons (fill-ins and accepted conflicts)
3. Add rejected and unmatched persons under their mapped ids
4. Add placeholders referenced as parents by added persons
5. Merge or add partnerships, dropping those that cannot be resolved
6. Repair parent/child/partnership back-references
7. Validate (problems become warnings)
"""

import logging
from collections import deque
from dataclasses import dataclass, field, replace, asdict
from enum import Enum
from typing import List, Dict, Optional, Any

from ..config import default_config
from ..core.graph import FamilyGraph
from ..core.person import Person
from ..matching.conflicts import FILL_IN_FIELDS, ConflictResolution, FieldConflict, detect_conflicts
from ..storage.backends import StorageBackend, MemoryStorage
from ..storage.backups import create_merge_backup
from .audit import MergeAudit, AuditEntry, OperationType
from .mapping import IdMapping, build_id_mapping
from .state import MergeState, DecisionType

logger = logging.getLogger(__name__)

# Optional partnership fields filled in from an incoming duplicate
PARTNERSHIP_FILL_IN_FIELDS = ('start_date', 'start_place', 'end_date', 'note')


class ExecutorPhase(str, Enum):
    """Progress of a merge execution."""
    CLONING = "cloning"
    MERGING = "merging"
    REPAIRING = "repairing"
    VALIDATING = "validating"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


@dataclass
class MergeCounts:
    """Counts reported by a merge.

    Attributes:
        merged: Incoming persons merged into an existing person
        added: Incoming persons added as new persons
        partnerships: Partnerships in the merged graph
        dropped_partnerships: Incoming partnerships that could not be kept
    """
    merged: int = 0
    added: int = 0
    partnerships: int = 0
    dropped_partnerships: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class MergeResult:
    """Result of a merge execution."""
    success: bool
    merged_data: FamilyGraph
    stats: MergeCounts = field(default_factory=MergeCounts)
    backup_key: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    audit: List[AuditEntry] = field(default_factory=list)

    def __str__(self) -> str:
        """Human-readable result."""
        if self.success:
            return (
                f"Merge succeeded\n"
                f"  Merged: {self.stats.merged}\n"
                f"  Added: {self.stats.added}\n"
                f"  Partnerships: {self.stats.partnerships}\n"
                f"  Dropped partnerships: {self.stats.dropped_partnerships}\n"
                f"  Warnings: {len(self.warnings)}"
            )
        return f"Merge failed\n  Errors: {', '.join(self.errors)}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'merged_data': self.merged_data.to_dict(),
            'stats': self.stats.to_dict(),
            'backup_key': self.backup_key,
            'errors': list(self.errors),
            'warnings': list(self.warnings),
            'audit': [e.to_dict() for e in self.audit],
        }


def _remap(ids: List[str], table: Dict[str, str]) -> List[str]:
    """Translate ids through a mapping table, dropping ids that do not map."""
    return [table[i] for i in ids if i in table]


class MergeExecutor:
    """
    Executes a merge state against a storage backend.

    The executor never modifies the state it is given, and a failure in
    any step returns the original existing graph.
    """

    def __init__(self, storage: Optional[StorageBackend] = None):
        """
        Initialize the executor.

        Args:
            storage: Backend that receives the pre-merge backup
                (in-memory storage if None)
        """
        self.storage = storage if storage is not None else MemoryStorage()
        self.max_parents = default_config.max_parents
        self.phase: Optional[ExecutorPhase] = None
        self.audit = MergeAudit()
        self.warnings: List[str] = []

    def _enter(self, phase: ExecutorPhase) -> None:
        self.phase = phase
        logger.debug("Merge phase: %s", phase.value)

    async def execute(self, state: MergeState) -> MergeResult:
        """
        Execute a merge.

        Args:
            state: Reviewed merge state

        Returns:
            MergeResult; on failure success is False and merged_data is the
            state's original existing graph
        """
        self.audit = MergeAudit()
        self.warnings = []
        backup_key = None

        try:
            self._enter(ExecutorPhase.CLONING)
            backup_key = await create_merge_backup(state.existing_data, self.storage)
            mapping = build_id_mapping(state)
            merged = state.existing_data.clone()
            merged.clear_focus()

            self._enter(ExecutorPhase.MERGING)
            counts = MergeCounts()
            counts.merged = self._merge_matched_persons(merged, state)

            to_add = self._persons_to_add(state)
            counts.added = self._add_persons(merged, state, mapping, to_add)
            self._add_referenced_placeholders(merged, state, mapping, to_add)
            counts.dropped_partnerships = self._merge_partnerships(merged, state, mapping)

            self._enter(ExecutorPhase.REPAIRING)
            self._repair_relationships(merged)

            self._enter(ExecutorPhase.VALIDATING)
            problems = self._validate(merged)
            if problems:
                logger.warning("Merge validation warnings: %s", problems)
                self.warnings.extend(problems)

            counts.partnerships = len(merged.partnerships)

            self._enter(ExecutorPhase.COMMITTED)
            logger.info(
                "Merge committed: %d merged, %d added, %d partnerships",
                counts.merged, counts.added, counts.partnerships
            )
            return MergeResult(
                success=True,
                merged_data=merged,
                stats=counts,
                backup_key=backup_key,
                warnings=list(self.warnings),
                audit=list(self.audit.entries),
            )

        except Exception as e:
            logger.error("Merge execution failed: %s", e, exc_info=True)
            self._enter(ExecutorPhase.ROLLED_BACK)
            return MergeResult(
                success=False,
                merged_data=state.existing_data,
                stats=MergeCounts(),
                backup_key=backup_key,
                errors=[str(e)],
                audit=list(self.audit.entries),
            )

    # ==================== PERSONS ====================

    def _merge_matched_persons(self, merged: FamilyGraph, state: MergeState) -> int:
        """Merge confirmed, undecided and manually matched persons."""
        merged_count = 0

        for match in state.matches:
            decision = state.decisions.get(match.incoming_id)
            if decision is None or decision.type == DecisionType.CONFIRM:
                target_id = match.existing_id
            elif decision.type == DecisionType.MANUAL_MATCH:
                target_id = decision.target_id
            else:
                continue

            existing = merged.persons.get(target_id)
            if existing is None:
                continue

            if target_id != match.existing_id:
                # Match conflicts were detected against the suggested person
                conflicts = detect_conflicts(existing, match.incoming_person)
            else:
                conflicts = state.conflicts_for(match)

            self._merge_person_data(existing, match.incoming_person, conflicts)
            self.audit.log_change(
                OperationType.PERSON_MERGE, existing.id,
                old_value=match.incoming_id, new_value=existing.id,
                reason="Merged incoming person",
            )
            merged_count += 1

        return merged_count

    def _merge_person_data(
        self,
        existing: Person,
        incoming: Person,
        conflicts: List[FieldConflict]
    ) -> None:
        """Fill in empty fields and apply conflicts resolved to the incoming value."""
        for fill_field in FILL_IN_FIELDS:
            incoming_value = fill_field.get(incoming)
            if not fill_field.get(existing) and incoming_value:
                fill_field.set(existing, incoming_value)
                self.audit.log_change(
                    OperationType.FIELD_FILL, existing.id, fill_field.value,
                    new_value=incoming_value,
                )

        for conflict in conflicts:
            # keep_existing and manual leave the existing value
            if conflict.resolution != ConflictResolution.USE_INCOMING:
                continue
            old_value = conflict.field.get(existing)
            new_value = conflict.field.get(incoming)
            conflict.field.set(existing, new_value)
            self.audit.log_change(
                OperationType.CONFLICT_APPLIED, existing.id, conflict.field.value,
                old_value=old_value, new_value=new_value,
            )

        if existing.is_placeholder and not incoming.is_placeholder:
            existing.is_placeholder = False

    def _persons_to_add(self, state: MergeState) -> List[str]:
        """Rejected incoming ids followed by unmatched ids without a manual target.

        Placeholders are never added here, only as referenced parents.
        """
        to_add = [
            incoming_id for incoming_id, person in state.incoming_data.persons.items()
            if not person.is_placeholder
            and (decision := state.decisions.get(incoming_id)) is not None
            and decision.type == DecisionType.REJECT
        ]
        seen = set(to_add)

        for incoming_id in state.unmatched_incoming:
            decision = state.decisions.get(incoming_id)
            if decision is not None and decision.type == DecisionType.MANUAL_MATCH:
                continue
            if incoming_id not in seen:
                seen.add(incoming_id)
                to_add.append(incoming_id)

        return to_add

    def _copy_person(self, person: Person, new_id: str, mapping: IdMapping) -> Person:
        return replace(
            person,
            id=new_id,
            partnerships=_remap(person.partnerships, mapping.partnerships),
            parent_ids=_remap(person.parent_ids, mapping.persons),
            child_ids=_remap(person.child_ids, mapping.persons),
        )

    def _add_persons(
        self,
        merged: FamilyGraph,
        state: MergeState,
        mapping: IdMapping,
        to_add: List[str]
    ) -> int:
        added = 0
        for incoming_id in to_add:
            incoming = state.incoming_data.persons.get(incoming_id)
            if incoming is None:
                continue

            new_id = mapping.persons[incoming_id]
            merged.add_person(self._copy_person(incoming, new_id, mapping))
            self.audit.log_change(
                OperationType.PERSON_ADD, new_id,
                old_value=incoming_id, new_value=new_id,
                reason="Added incoming person",
            )
            added += 1
        return added

    def _add_referenced_placeholders(
        self,
        merged: FamilyGraph,
        state: MergeState,
        mapping: IdMapping,
        to_add: List[str]
    ) -> None:
        """Add incoming placeholders that an added person has as a parent."""
        referenced = set()
        for added_id in to_add:
            added = state.incoming_data.persons.get(added_id)
            if added is not None:
                referenced.update(added.parent_ids)

        for incoming_id, person in state.incoming_data.persons.items():
            if not person.is_placeholder or incoming_id not in referenced:
                continue
            new_id = mapping.persons[incoming_id]
            if new_id in merged.persons:
                continue

            merged.add_person(self._copy_person(person, new_id, mapping))
            self.audit.log_change(
                OperationType.PLACEHOLDER_ADD, new_id,
                old_value=incoming_id, new_value=new_id,
                reason="Placeholder parent of an added person",
            )

    # ==================== PARTNERSHIPS ====================

    def _drop_partnership(self, incoming_id: str, reason: str) -> None:
        message = f"Dropped partnership {incoming_id}: {reason}"
        logger.warning(message)
        self.warnings.append(message)
        self.audit.log_change(OperationType.PARTNERSHIP_DROP, incoming_id, reason=reason)

    def _merge_partnerships(self, merged: FamilyGraph, state: MergeState, mapping: IdMapping) -> int:
        """
        Merge or add every incoming partnership.

        Returns:
            Number of dropped partnerships
        """
        dropped = 0

        for incoming_id, partnership in state.incoming_data.partnerships.items():
            person1_id = mapping.person(partnership.person1_id)
            person2_id = mapping.person(partnership.person2_id)

            if (person1_id is None or person2_id is None or
                    person1_id not in merged.persons or person2_id not in merged.persons):
                self._drop_partnership(incoming_id, "partner not present in merged data")
                dropped += 1
                continue

            if person1_id == person2_id:
                self._drop_partnership(incoming_id, f"both partners merged into {person1_id}")
                dropped += 1
                continue

            existing = merged.find_partnership(person1_id, person2_id)
            if existing is not None:
                for name in PARTNERSHIP_FILL_IN_FIELDS:
                    incoming_value = getattr(partnership, name)
                    if not getattr(existing, name) and incoming_value:
                        setattr(existing, name, incoming_value)
                        self.audit.log_change(
                            OperationType.FIELD_FILL, existing.id, name, new_value=incoming_value)
                self.audit.log_change(
                    OperationType.PARTNERSHIP_MERGE, existing.id,
                    old_value=incoming_id, new_value=existing.id,
                )
                target_id = existing.id
            else:
                target_id = mapping.partnerships[incoming_id]
                merged.add_partnership(replace(
                    partnership,
                    id=target_id,
                    person1_id=person1_id,
                    person2_id=person2_id,
                    child_ids=_remap(partnership.child_ids, mapping.persons),
                ))
                self.audit.log_change(
                    OperationType.PARTNERSHIP_ADD, target_id,
                    old_value=incoming_id, new_value=target_id,
                )

            for endpoint_id in (person1_id, person2_id):
                endpoint = merged.persons[endpoint_id]
                if target_id not in endpoint.partnerships:
                    endpoint.partnerships.append(target_id)

        return dropped

    # ==================== REPAIR ====================

    def _repair_relationships(self, merged: FamilyGraph) -> None:
        """
        Make references consistent.

        Prunes references to absent persons and partnerships, makes
        parent/child references mutual, gives partnership children both
        partners as parents, and truncates persons with too many parents.
        """
        self._prune_references(merged)

        for person in merged.persons.values():
            for parent_id in person.parent_ids:
                parent = merged.persons.get(parent_id)
                if parent is not None and person.id not in parent.child_ids:
                    parent.child_ids.append(person.id)
                    self.audit.log_change(
                        OperationType.RELATIONSHIP_FIX, parent.id, 'child_ids', new_value=person.id)

            for child_id in person.child_ids:
                child = merged.persons.get(child_id)
                if (child is not None and person.id not in child.parent_ids and
                        len(child.parent_ids) < self.max_parents):
                    child.parent_ids.append(person.id)
                    self.audit.log_change(
                        OperationType.RELATIONSHIP_FIX, child.id, 'parent_ids', new_value=person.id)

        for partnership in merged.partnerships.values():
            for child_id in partnership.child_ids:
                child = merged.persons.get(child_id)
                if child is None:
                    continue

                for parent_id in (partnership.person1_id, partnership.person2_id):
                    parent = merged.persons.get(parent_id)
                    if parent is None:
                        continue
                    if parent_id not in child.parent_ids and len(child.parent_ids) < self.max_parents:
                        child.parent_ids.append(parent_id)
                        self.audit.log_change(
                            OperationType.RELATIONSHIP_FIX, child.id, 'parent_ids', new_value=parent_id)
                    if parent_id in child.parent_ids and child.id not in parent.child_ids:
                        parent.child_ids.append(child.id)
                        self.audit.log_change(
                            OperationType.RELATIONSHIP_FIX, parent.id, 'child_ids', new_value=child.id)

        for person in merged.persons.values():
            if len(person.parent_ids) <= self.max_parents:
                continue

            removed = person.parent_ids[self.max_parents:]
            logger.warning("Person %s has more than %d parents, truncating",
                           person.id, self.max_parents)
            person.parent_ids = person.parent_ids[:self.max_parents]
            for parent_id in removed:
                parent = merged.persons.get(parent_id)
                if parent is not None and person.id in parent.child_ids:
                    parent.child_ids.remove(person.id)
            self.audit.log_change(
                OperationType.PARENT_TRUNCATE, person.id, 'parent_ids',
                old_value=removed, new_value=person.parent_ids,
            )

    def _prune_references(self, merged: FamilyGraph) -> None:
        """Drop references to persons and partnerships missing from the graph."""
        for person in merged.persons.values():
            for attr, pool in (
                ('parent_ids', merged.persons),
                ('child_ids', merged.persons),
                ('partnerships', merged.partnerships),
            ):
                refs = getattr(person, attr)
                kept = [ref for ref in refs if ref in pool]
                if len(kept) != len(refs):
                    setattr(person, attr, kept)
                    self.audit.log_change(
                        OperationType.REFERENCE_PRUNE, person.id, attr,
                        old_value=refs, new_value=kept,
                    )

        for partnership in merged.partnerships.values():
            kept = [cid for cid in partnership.child_ids if cid in merged.persons]
            if len(kept) != len(partnership.child_ids):
                self.audit.log_change(
                    OperationType.REFERENCE_PRUNE, partnership.id, 'child_ids',
                    old_value=partnership.child_ids, new_value=kept,
                )
                partnership.child_ids = kept

    # ==================== VALIDATION ====================

    def _validate(self, merged: FamilyGraph) -> List[str]:
        """Check references and parent cycles; returns problem descriptions."""
        errors = []
        persons = merged.persons

        for person in persons.values():
            for parent_id in person.parent_ids:
                if parent_id not in persons:
                    errors.append(f"Invalid parent reference: {person.id} -> {parent_id}")
            for child_id in person.child_ids:
                if child_id not in persons:
                    errors.append(f"Invalid child reference: {person.id} -> {child_id}")
            for partnership_id in person.partnerships:
                if partnership_id not in merged.partnerships:
                    errors.append(f"Invalid partnership reference: {person.id} -> {partnership_id}")
            if len(person.parent_ids) > self.max_parents:
                errors.append(f"Too many parents: {person.id}")

        for partnership in merged.partnerships.values():
            if partnership.person1_id not in persons:
                errors.append(
                    f"Invalid partnership person1: {partnership.id} -> {partnership.person1_id}")
            if partnership.person2_id not in persons:
                errors.append(
                    f"Invalid partnership person2: {partnership.id} -> {partnership.person2_id}")
            for child_id in partnership.child_ids:
                if child_id not in persons:
                    errors.append(f"Invalid partnership child: {partnership.id} -> {child_id}")

        for person in persons.values():
            visited = set()
            queue = deque(person.parent_ids)
            while queue:
                current = queue.popleft()
                if current == person.id:
                    errors.append(f"Circular parent relationship detected for: {person.id}")
                    break
                if current in visited:
                    continue
                visited.add(current)
                parent = persons.get(current)
                if parent is not None:
                    queue.extend(parent.parent_ids)

        return errors


async def execute_merge(state: MergeState, storage: Optional[StorageBackend] = None) -> MergeResult:
    """Execute a merge with a fresh executor."""
    return await MergeExecutor(storage).execute(state)
