"""
Merging of an incoming family graph into an existing one.

This module provides the reviewable merge state, the id mapping and the
transactional merge executor with its audit log.
"""

from .state import (
    MergeState,
    MergePhase,
    MergeStats,
    MatchDecision,
    DecisionType,
    create_merge_state,
    update_match_decision,
    update_conflict_resolution,
    set_phase,
    reanalyze_matches,
    calculate_merge_stats,
)
from .mapping import IdMapping, build_id_mapping
from .audit import MergeAudit, AuditEntry, OperationType
from .executor import (
    MergeExecutor,
    MergeResult,
    MergeCounts,
    ExecutorPhase,
    execute_merge,
)

__all__ = [
    'MergeState',
    'MergePhase',
    'MergeStats',
    'MatchDecision',
    'DecisionType',
    'create_merge_state',
    'update_match_decision',
    'update_conflict_resolution',
    'set_phase',
    'reanalyze_matches',
    'calculate_merge_stats',
    'IdMapping',
    'build_id_mapping',
    'MergeAudit',
    'AuditEntry',
    'OperationType',
    'MergeExecutor',
    'MergeResult',
    'MergeCounts',
    'ExecutorPhase',
    'execute_merge',
]
