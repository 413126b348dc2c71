"""
Persistence of in-progress merge reviews.

A review can be auto-saved as the single "current" merge, or saved as a
named session that can be resumed later. Saved sessions are kept as one
list under a single storage key.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, List, Dict, Any

from ..config import default_config
from ..merge.state import MergeState
from .backends import StorageBackend

logger = logging.getLogger(__name__)


@dataclass
class SessionStats:
    """Review progress of a saved session.

    Attributes:
        total: Matches plus unmatched incoming persons
        reviewed: Number of decisions taken
        resolved: Matches whose conflicts were all edited
        conflicts: Conflicts across all matches
    """
    total: int = 0
    reviewed: int = 0
    resolved: int = 0
    conflicts: int = 0

    @classmethod
    def from_state(cls, state: MergeState) -> 'SessionStats':
        conflicts = sum(len(m.conflicts) for m in state.matches)

        resolved = 0
        for incoming_id, resolutions in state.conflict_resolutions.items():
            match = state.get_match(incoming_id)
            if match is not None and len(resolutions) == len(match.conflicts):
                resolved += 1

        return cls(
            total=len(state.matches) + len(state.unmatched_incoming),
            reviewed=len(state.decisions),
            resolved=resolved,
            conflicts=conflicts,
        )


@dataclass
class SessionInfo:
    """Metadata of a saved session, without the state itself."""
    id: str
    saved_at: str
    incoming_file_name: Optional[str] = None
    target_tree_name: Optional[str] = None
    source_tree_name: Optional[str] = None
    stats: SessionStats = field(default_factory=SessionStats)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SessionInfo':
        return cls(
            id=data['id'],
            saved_at=data['saved_at'],
            incoming_file_name=data.get('incoming_file_name'),
            target_tree_name=data.get('target_tree_name'),
            source_tree_name=data.get('source_tree_name'),
            stats=SessionStats(**data.get('stats', {})),
        )


def generate_session_id() -> str:
    """Generate a unique session ID ('merge-<millis>-<7 random>')."""
    return f"merge-{int(time.time() * 1000)}-{uuid.uuid4().hex[:7]}"


class SessionStore:
    """Saves and resumes merge reviews through a storage backend."""

    def __init__(self, storage: StorageBackend):
        self.storage = storage
        self.namespace = default_config.storage_namespace

    def _record(
        self,
        session_id: str,
        state: MergeState,
        file_name: Optional[str] = None,
        target_tree_name: Optional[str] = None,
        source_tree_name: Optional[str] = None
    ) -> Dict[str, Any]:
        info = SessionInfo(
            id=session_id,
            saved_at=datetime.now().isoformat(),
            incoming_file_name=file_name,
            target_tree_name=target_tree_name,
            source_tree_name=source_tree_name,
            stats=SessionStats.from_state(state),
        )
        record = info.to_dict()
        record['state'] = state.to_dict()
        return record

    # ==================== CURRENT MERGE (AUTO-SAVE) ====================

    async def save_current(self, state: MergeState, file_name: Optional[str] = None) -> None:
        """Auto-save the merge in progress, replacing any previous one."""
        record = self._record(default_config.current_session_key, state, file_name)
        await self.storage.set(self.namespace, default_config.current_session_key, record)

    async def get_current(self) -> Optional[MergeState]:
        """Load the auto-saved merge, or None if there is none."""
        record = await self.storage.get(self.namespace, default_config.current_session_key)
        if record is None:
            return None
        return MergeState.from_dict(record['state'])

    async def get_current_info(self) -> Optional[SessionInfo]:
        """Metadata of the auto-saved merge, or None if there is none."""
        record = await self.storage.get(self.namespace, default_config.current_session_key)
        if record is None:
            return None
        return SessionInfo.from_dict(record)

    async def clear_current(self) -> None:
        await self.storage.delete(self.namespace, default_config.current_session_key)

    # ==================== SAVED SESSIONS ====================

    async def _list_records(self) -> List[Dict[str, Any]]:
        records = await self.storage.get(self.namespace, default_config.sessions_key)
        return records or []

    async def _store_records(self, records: List[Dict[str, Any]]) -> None:
        await self.storage.set(self.namespace, default_config.sessions_key, records)

    async def save_session(
        self,
        state: MergeState,
        file_name: Optional[str] = None,
        target_tree_name: Optional[str] = None,
        source_tree_name: Optional[str] = None
    ) -> str:
        """
        Save a merge as a named session and clear the auto-saved merge.

        Args:
            state: Merge state to save
            file_name: Name of the imported file
            target_tree_name: Tree being merged into
            source_tree_name: Tree being merged from

        Returns:
            Session ID
        """
        session_id = generate_session_id()
        records = await self._list_records()
        records.append(self._record(
            session_id, state, file_name, target_tree_name, source_tree_name))
        await self._store_records(records)
        await self.clear_current()

        logger.info("Saved merge session %s", session_id)
        return session_id

    async def load_session(self, session_id: str) -> Optional[MergeState]:
        """Load a saved session, or None if it does not exist."""
        for record in await self._list_records():
            if record['id'] == session_id:
                return MergeState.from_dict(record['state'])
        return None

    async def delete_session(self, session_id: str) -> None:
        records = await self._list_records()
        await self._store_records([r for r in records if r['id'] != session_id])

    async def rename_session(self, session_id: str, new_name: str) -> bool:
        """
        Rename a saved session (its incoming file name).

        Returns:
            True if the session exists
        """
        records = await self._list_records()
        for record in records:
            if record['id'] == session_id:
                record['incoming_file_name'] = new_name
                await self._store_records(records)
                return True
        return False

    async def list_sessions_info(self) -> List[SessionInfo]:
        """Metadata of all saved sessions, oldest first."""
        return [SessionInfo.from_dict(r) for r in await self._list_records()]

    async def has_pending_merges(self) -> bool:
        """True if there is an auto-saved merge or any saved session."""
        if await self.get_current_info() is not None:
            return True
        return bool(await self._list_records())
