"""Backups of the existing graph taken before a merge."""

import logging
import time
import uuid
from typing import Optional

from ..config import default_config
from ..core.graph import FamilyGraph
from .backends import StorageBackend

logger = logging.getLogger(__name__)


async def create_merge_backup(graph: FamilyGraph, storage: StorageBackend) -> str:
    """
    Store a copy of a graph before it is merged into.

    Args:
        graph: Graph to back up
        storage: Storage backend

    Returns:
        Backup key ('backup-<millis>-<hex>')
    """
    key = f"{default_config.backup_key_prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"
    await storage.set(default_config.storage_namespace, key, graph.to_dict())
    logger.debug("Created merge backup %s", key)
    return key


async def restore_from_backup(key: str, storage: StorageBackend) -> Optional[FamilyGraph]:
    """Load a backed-up graph, or None if the backup does not exist."""
    data = await storage.get(default_config.storage_namespace, key)
    if data is None:
        return None
    return FamilyGraph.from_dict(data)


async def delete_backup(key: str, storage: StorageBackend) -> None:
    """Delete a backup."""
    await storage.delete(default_config.storage_namespace, key)
    logger.debug("Deleted merge backup %s", key)
