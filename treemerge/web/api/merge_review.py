"""
Merge review API endpoints.

Supports:
- Creating a review session from two uploaded trees
- Recording decisions and conflict resolutions
- Re-analysis and execution of the merge
- Saving sessions and managing pre-merge backups
"""

import json
import logging
import uuid
from typing import Dict, Any, Optional, Literal

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ...core.graph import FamilyGraph
from ...matching.conflicts import ConflictField, ConflictResolution
from ...merge.state import (
    MergeState,
    MergePhase,
    MatchDecision,
    DecisionType,
    create_merge_state,
    update_match_decision,
    update_conflict_resolution,
    reanalyze_matches,
    set_phase,
    calculate_merge_stats,
)
from ...merge.executor import MergeExecutor
from ...storage.backends import StorageBackend, MemoryStorage
from ...storage.backups import restore_from_backup, delete_backup
from ...storage.sessions import SessionStore
from ...validation.import_validator import validate_json_import

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api/merge", tags=["merge_review"])

# Storage for backups and saved sessions
storage: StorageBackend = MemoryStorage()
session_store = SessionStore(storage)

# Review sessions in progress
sessions: Dict[str, MergeState] = {}


# Pydantic models for requests
class CreateSessionRequest(BaseModel):
    existing: Dict[str, Any]
    incoming: Dict[str, Any]


class DecisionRequest(BaseModel):
    incoming_id: str
    type: Literal["confirm", "reject", "manual_match"]
    target_id: Optional[str] = None


class ConflictResolutionRequest(BaseModel):
    incoming_id: str
    field: ConflictField
    resolution: ConflictResolution
    resolved_value: Optional[str] = None


class SaveSessionRequest(BaseModel):
    file_name: Optional[str] = None
    target_tree_name: Optional[str] = None
    source_tree_name: Optional[str] = None


# Helper functions
def _parse_graph(payload: Dict[str, Any], label: str) -> FamilyGraph:
    """Validate an uploaded tree, raising 400 on errors."""
    result = validate_json_import(json.dumps(payload))
    if not result.valid:
        raise HTTPException(
            status_code=400,
            detail={"tree": label, "errors": result.errors},
        )
    return result.data


def _get_state(session_id: str) -> MergeState:
    state = sessions.get(session_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return state


def _summary(session_id: str, state: MergeState) -> Dict[str, Any]:
    return {
        "session_id": session_id,
        "version": state.version,
        "phase": state.phase.value,
        "stats": calculate_merge_stats(state).to_dict(),
        "matches": [m.to_dict() for m in state.matches],
        "unmatched_existing": list(state.unmatched_existing),
        "unmatched_incoming": list(state.unmatched_incoming),
        "decisions": {pid: d.to_dict() for pid, d in state.decisions.items()},
    }


# Session endpoints
@router.post("/sessions")
async def create_session(request: CreateSessionRequest):
    """Match two trees and open a review session."""
    existing = _parse_graph(request.existing, "existing")
    incoming = _parse_graph(request.incoming, "incoming")

    state = set_phase(create_merge_state(existing, incoming), MergePhase.REVIEWING)
    session_id = uuid.uuid4().hex
    sessions[session_id] = state

    logger.info(f"Created merge session {session_id} with {len(state.matches)} matches")
    return _summary(session_id, state)


@router.get("/sessions/{session_id}")
async def get_session(session_id: str):
    """Get the current state of a review session."""
    return _summary(session_id, _get_state(session_id))


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    """Discard a review session without merging."""
    _get_state(session_id)
    del sessions[session_id]
    return {"status": "deleted", "session_id": session_id}


@router.post("/sessions/{session_id}/decisions")
async def set_decision(session_id: str, request: DecisionRequest):
    """Record a reviewer decision for an incoming person."""
    state = _get_state(session_id)

    decision_type = DecisionType(request.type)
    if decision_type == DecisionType.MANUAL_MATCH and not request.target_id:
        raise HTTPException(status_code=400, detail="manual_match requires target_id")

    new_state = update_match_decision(
        state, request.incoming_id, MatchDecision(decision_type, request.target_id))
    if new_state is state:
        raise HTTPException(status_code=400, detail="Unknown person")

    sessions[session_id] = new_state
    return _summary(session_id, new_state)


@router.put("/sessions/{session_id}/conflicts")
async def set_conflict_resolution(session_id: str, request: ConflictResolutionRequest):
    """Set how a conflicting field is resolved."""
    state = _get_state(session_id)

    new_state = update_conflict_resolution(
        state, request.incoming_id, request.field, request.resolution, request.resolved_value)
    if new_state is state:
        raise HTTPException(status_code=400, detail="No match for incoming person")

    sessions[session_id] = new_state
    return _summary(session_id, new_state)


@router.post("/sessions/{session_id}/reanalyze")
async def reanalyze_session(session_id: str):
    """Recompute matches while keeping reviewer decisions."""
    state = reanalyze_matches(_get_state(session_id))
    sessions[session_id] = state
    return _summary(session_id, state)


@router.post("/sessions/{session_id}/execute")
async def execute_session(session_id: str):
    """Execute the merge of a review session."""
    state = set_phase(_get_state(session_id), MergePhase.EXECUTING)
    sessions[session_id] = state

    result = await MergeExecutor(storage).execute(state)

    if result.success:
        state = set_phase(state, MergePhase.COMPLETE)
        # Completed sessions are not kept in memory
        del sessions[session_id]
        logger.info(f"Merge of session {session_id} complete, session closed")
    else:
        state = set_phase(state, MergePhase.REVIEWING)
        sessions[session_id] = state
        logger.error(f"Merge of session {session_id} failed: {result.errors}")

    response = result.to_dict()
    response["phase"] = state.phase.value
    return response


@router.post("/sessions/{session_id}/save")
async def save_session(session_id: str, request: SaveSessionRequest):
    """Save a review session so it can be resumed later."""
    state = _get_state(session_id)
    saved_id = await session_store.save_session(
        state, request.file_name, request.target_tree_name, request.source_tree_name)
    return {"saved_id": saved_id}


@router.get("/saved")
async def list_saved_sessions():
    """List saved review sessions."""
    return [info.to_dict() for info in await session_store.list_sessions_info()]


@router.post("/saved/{saved_id}/resume")
async def resume_saved_session(saved_id: str):
    """Reopen a saved review session."""
    state = await session_store.load_session(saved_id)
    if state is None:
        raise HTTPException(status_code=404, detail="Saved session not found")

    session_id = uuid.uuid4().hex
    sessions[session_id] = state
    return _summary(session_id, state)


# Backup endpoints
@router.get("/backups/{backup_key}")
async def get_backup(backup_key: str):
    """Get a pre-merge backup."""
    graph = await restore_from_backup(backup_key, storage)
    if graph is None:
        raise HTTPException(status_code=404, detail="Backup not found")
    return graph.to_dict()


@router.delete("/backups/{backup_key}")
async def remove_backup(backup_key: str):
    """Delete a pre-merge backup."""
    if await restore_from_backup(backup_key, storage) is None:
        raise HTTPException(status_code=404, detail="Backup not found")
    await delete_backup(backup_key, storage)
    return {"status": "deleted", "backup_key": backup_key}
