"""
Audit log for merge operations.

Records every change the merge executor makes to the merged graph so that
a reviewer can see exactly what was merged, added, repaired or dropped.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from typing import List, Dict, Any, Optional


class OperationType(Enum):
    """Types of merge operations."""
    PERSON_MERGE = "person_merge"
    FIELD_FILL = "field_fill"
    CONFLICT_APPLIED = "conflict_applied"
    PERSON_ADD = "person_add"
    PLACEHOLDER_ADD = "placeholder_add"
    PARTNERSHIP_MERGE = "partnership_merge"
    PARTNERSHIP_ADD = "partnership_add"
    PARTNERSHIP_DROP = "partnership_drop"
    RELATIONSHIP_FIX = "relationship_fix"
    PARENT_TRUNCATE = "parent_truncate"
    REFERENCE_PRUNE = "reference_prune"


@dataclass
class AuditEntry:
    """Single audit log entry."""
    operation_type: str = ""
    record_id: str = ""
    field_name: str = ""
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    reason: Optional[str] = None
    timestamp: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AuditEntry':
        """Create from dictionary."""
        return cls(**data)


class MergeAudit:
    """Collects the audit entries of one merge run."""

    def __init__(self):
        self.entries: List[AuditEntry] = []

    def __len__(self) -> int:
        return len(self.entries)

    def log_change(
        self,
        operation_type: OperationType | str,
        record_id: str,
        field_name: str = "",
        old_value: Any = None,
        new_value: Any = None,
        reason: Optional[str] = None
    ) -> AuditEntry:
        """Log a single change.

        Args:
            operation_type: Type of operation
            record_id: ID of the person or partnership changed
            field_name: Name of the field changed
            old_value: Previous value
            new_value: New value
            reason: Human-readable reason for the change

        Returns:
            The recorded entry
        """
        if isinstance(operation_type, OperationType):
            operation_type = operation_type.value

        entry = AuditEntry(
            operation_type=operation_type,
            record_id=record_id,
            field_name=field_name,
            old_value=str(old_value) if old_value is not None else None,
            new_value=str(new_value) if new_value is not None else None,
            reason=reason,
            timestamp=datetime.now().isoformat(),
        )
        self.entries.append(entry)
        return entry

    def get_entries(
        self,
        operation_type: Optional[OperationType | str] = None,
        record_id: Optional[str] = None
    ) -> List[AuditEntry]:
        """Get entries, optionally filtered by operation type and record."""
        if isinstance(operation_type, OperationType):
            operation_type = operation_type.value

        return [
            e for e in self.entries
            if (operation_type is None or e.operation_type == operation_type)
            and (record_id is None or e.record_id == record_id)
        ]

    def get_statistics(self) -> Dict[str, int]:
        """Count entries per operation type."""
        counts: Dict[str, int] = {}
        for entry in self.entries:
            counts[entry.operation_type] = counts.get(entry.operation_type, 0) + 1
        return counts

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self.entries]
