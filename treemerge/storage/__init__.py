"""
Persistence for merges: storage backends, backups and review sessions.
"""

from .backends import StorageBackend, MemoryStorage, SqliteStorage
from .backups import create_merge_backup, restore_from_backup, delete_backup
from .sessions import SessionStore, SessionInfo, SessionStats

__all__ = [
    'StorageBackend',
    'MemoryStorage',
    'SqliteStorage',
    'create_merge_backup',
    'restore_from_backup',
    'delete_backup',
    'SessionStore',
    'SessionInfo',
    'SessionStats',
]
