"""treemerge - Match and merge genealogical family trees."""

__version__ = "0.1.0"

from .core.person import Person, Gender
from .core.partnership import Partnership, PartnershipStatus
from .core.graph import FamilyGraph
from .matching.normalize import normalize_name, string_similarity
from .matching.matcher import find_matches
from .matching.conflicts import detect_conflicts
from .merge.state import (
    create_merge_state,
    update_match_decision,
    update_conflict_resolution,
    reanalyze_matches,
    calculate_merge_stats,
)
from .merge.mapping import build_id_mapping
from .merge.executor import execute_merge
from .storage.backups import create_merge_backup, restore_from_backup, delete_backup
from .validation.import_validator import validate_json_import

__all__ = [
    'Person',
    'Gender',
    'Partnership',
    'PartnershipStatus',
    'FamilyGraph',
    'normalize_name',
    'string_similarity',
    'find_matches',
    'detect_conflicts',
    'create_merge_state',
    'update_match_decision',
    'update_conflict_resolution',
    'reanalyze_matches',
    'calculate_merge_stats',
    'build_id_mapping',
    'execute_merge',
    'create_merge_backup',
    'restore_from_backup',
    'delete_backup',
    'validate_json_import',
]
