"""
Person matching engine.

This module provides the lexical normalization, pairwise scoring and
three-phase matching used to decide which persons of two family graphs
represent the same individual.
"""

from .normalize import normalize_name, string_similarity
from .scorer import MatchScorer, MatchReason, ScoreResult
from .matcher import (
    PersonMatcher,
    PersonMatch,
    MatchConfidence,
    MatchSession,
    find_matches,
    score_to_confidence,
)
from .conflicts import ConflictField, ConflictResolution, FieldConflict, detect_conflicts

__all__ = [
    'normalize_name',
    'string_similarity',
    'MatchScorer',
    'MatchReason',
    'ScoreResult',
    'PersonMatcher',
    'PersonMatch',
    'MatchConfidence',
    'MatchSession',
    'find_matches',
    'score_to_confidence',
    'ConflictField',
    'ConflictResolution',
    'FieldConflict',
    'detect_conflicts',
]
