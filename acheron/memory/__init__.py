"""
Memory system for Acheron.

Provides:
- SQLite store for users, aggregate stats and prefix overrides
- One-shot import of the legacy JSON files
"""

from acheron.memory.store import (
    GLOBAL_SCOPE,
    MemoryStore,
    StoreStats,
    UserRecord,
)
from acheron.memory.migrate import (
    MigrationReport,
    migrate_from_json,
)

__all__ = [
    "GLOBAL_SCOPE",
    "MemoryStore",
    "StoreStats",
    "UserRecord",
    "MigrationReport",
    "migrate_from_json",
]
