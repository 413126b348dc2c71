"""Configuration for merge storage, id generation and relationship repair."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class MergeConfig:
    """Configuration for the merge engine.

    Scoring thresholds live on the scorer and matcher classes.
    """

    # Storage
    storage_namespace: str = "merge"
    storage_path: Path = field(default_factory=lambda: Path("treemerge.db"))
    backup_key_prefix: str = "backup"
    current_session_key: str = "current"
    sessions_key: str = "sessions"

    # Id generation
    person_id_prefix: str = "p"
    partnership_id_prefix: str = "u"

    # Relationship repair
    max_parents: int = 2


# Global configuration instance
default_config = MergeConfig()
