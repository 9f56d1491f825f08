"""
One-shot import of the legacy flat-file memory.

Older installs kept ``users.json`` and ``stats.json`` next to the database:

    users.json  {"<jid>": {"jid", "pushName", "messageCount", "lastSeen"}}
    stats.json  {"totalMessages": <int>}

The import upserts by user id, so running it twice is harmless.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from acheron.errors import MigrationError
from acheron.memory.store import MemoryStore


USERS_FILE = "users.json"
STATS_FILE = "stats.json"


@dataclass
class MigrationReport:
    """What a legacy import touched."""
    users_imported: int = 0
    total_messages: int | None = None
    sources: list[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.sources


def _read_json_object(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise MigrationError(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise MigrationError(str(path), "expected a JSON object")
    return data


async def migrate_from_json(store: MemoryStore, data_dir: Path) -> MigrationReport:
    """
    Import legacy JSON files from ``data_dir`` into the store.

    Missing files are skipped.

    Raises:
        MigrationError: A file exists but is not valid JSON.
    """
    data_dir = Path(data_dir)
    report = MigrationReport()

    users: dict[str, Any] = {}
    users_path = data_dir / USERS_FILE
    if users_path.exists():
        users = _read_json_object(users_path)
        report.sources.append(str(users_path))

    stats_path = data_dir / STATS_FILE
    if stats_path.exists():
        stats = _read_json_object(stats_path)
        report.sources.append(str(stats_path))
        if "totalMessages" in stats:
            try:
                report.total_messages = int(stats.get("totalMessages") or 0)
            except (TypeError, ValueError) as e:
                raise MigrationError(str(stats_path), f"bad totalMessages: {e}") from e

    if report.empty:
        logger.debug(f"No legacy memory files in {data_dir}")
        return report

    report.users_imported = await store.import_legacy(users, report.total_messages)
    logger.info(
        f"Imported {report.users_imported} user(s) from legacy memory"
        + (f", totalMessages={report.total_messages}" if report.total_messages is not None else "")
    )
    return report
