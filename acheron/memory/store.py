"""
Persistent memory for Acheron.

One SQLite database holds:
- users: message count, display name and last-seen time per participant
- stats: aggregate counters (``totalMessages``)
- prefixes: command prefix overrides per chat, participant or ``global``

Pruning removes users but leaves ``totalMessages`` alone, so after a prune
the counter reports more messages than the remaining users account for.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Mapping

import aiosqlite
from loguru import logger

from acheron.errors import StoreUnavailable


GLOBAL_SCOPE = "global"
TOTAL_MESSAGES_KEY = "totalMessages"
DEFAULT_DISPLAY_NAME = "Unknown"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    jid TEXT PRIMARY KEY,
    push_name TEXT,
    message_count INTEGER NOT NULL DEFAULT 0,
    last_seen TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS stats (
    key TEXT PRIMARY KEY,
    value TEXT
);
CREATE TABLE IF NOT EXISTS prefixes (
    jid TEXT PRIMARY KEY,
    prefix TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_users_last_seen ON users (last_seen);
"""


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """
    Serialize a timestamp for storage.

    Fixed-width UTC text, so string order in SQL equals time order.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value: str | datetime | None) -> datetime:
    """
    Parse a stored or legacy ISO timestamp (naive values are UTC).

    Raises:
        TypeError: for anything that is not a string or datetime.
        ValueError: for text that is not an ISO timestamp.
    """
    if value is None:
        return utcnow()
    if isinstance(value, datetime):
        parsed = value
    elif not isinstance(value, str):
        raise TypeError(f"Expected an ISO timestamp string, got {type(value).__name__}")
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class UserRecord:
    """A known chat participant."""
    user_id: str
    display_name: str
    message_count: int
    last_seen: datetime

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "UserRecord":
        return cls(
            user_id=row["jid"],
            display_name=row["push_name"] or DEFAULT_DISPLAY_NAME,
            message_count=int(row["message_count"] or 0),
            last_seen=parse_timestamp(row["last_seen"]),
        )


@dataclass
class StoreStats:
    """Aggregate counters."""
    total_messages: int
    users_count: int


class MemoryStore:
    """
    SQLite-backed store for users, stats and prefix overrides.

    Every operation raises StoreUnavailable until ``init()`` has run.
    Each write commits before returning.
    """

    def __init__(
        self,
        data_dir: Path | str,
        db_name: str = "acheron.db",
        clock: Callable[[], datetime] = utcnow,
    ):
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / db_name
        self._clock = clock
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Open the database and create tables if needed."""
        if self._conn is not None:
            return

        self.data_dir.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(self.db_path)
        conn.row_factory = aiosqlite.Row
        try:
            await conn.executescript(_SCHEMA)
            await conn.execute(
                "INSERT OR IGNORE INTO stats (key, value) VALUES (?, '0')",
                (TOTAL_MESSAGES_KEY,),
            )
            await conn.commit()
        except Exception:
            await conn.close()
            raise

        self._conn = conn
        logger.debug(f"Store opened at {self.db_path}")

    async def close(self) -> None:
        """Close the database."""
        if self._conn is not None:
            await self._conn.close()
            self._conn = None

    async def __aenter__(self) -> "MemoryStore":
        await self.init()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def _db(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise StoreUnavailable()
        return self._conn

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def record_message(self, user_id: str, display_name: str | None = None) -> None:
        """
        Count one message for a user.

        Creates the user if needed, bumps its count, refreshes display name
        and last-seen, and bumps the total counter, all in one transaction.
        """
        db = self._db()
        now = format_timestamp(self._clock())
        name = display_name or None

        try:
            await db.execute(
                "INSERT OR IGNORE INTO users (jid, push_name, message_count, last_seen) "
                "VALUES (?, ?, 0, ?)",
                (user_id, name or DEFAULT_DISPLAY_NAME, now),
            )
            await db.execute(
                "UPDATE users SET message_count = message_count + 1, "
                "push_name = COALESCE(?, push_name), last_seen = ? WHERE jid = ?",
                (name, now, user_id),
            )
            await db.execute(
                "UPDATE stats SET value = CAST(value AS INTEGER) + 1 WHERE key = ?",
                (TOTAL_MESSAGES_KEY,),
            )
            await db.commit()
        except BaseException:
            # Cancellation must not leave a half-applied count for the next commit
            await db.rollback()
            raise

    async def ensure_user(self, user_id: str, display_name: str | None = None) -> bool:
        """
        Create a user with zero messages if it does not exist yet.

        Returns:
            True if a record was created.
        """
        db = self._db()
        cursor = await db.execute(
            "INSERT OR IGNORE INTO users (jid, push_name, message_count, last_seen) "
            "VALUES (?, ?, 0, ?)",
            (user_id, display_name or DEFAULT_DISPLAY_NAME, format_timestamp(self._clock())),
        )
        await db.commit()
        return cursor.rowcount > 0

    async def get_user(self, user_id: str) -> UserRecord | None:
        db = self._db()
        async with db.execute(
            "SELECT jid, push_name, message_count, last_seen FROM users WHERE jid = ?",
            (user_id,),
        ) as cursor:
            row = await cursor.fetchone()
        return UserRecord.from_row(row) if row else None

    async def get_top_users(self, limit: int = 5) -> list[UserRecord]:
        """Users by message count, highest first; ties keep creation order."""
        db = self._db()
        async with db.execute(
            "SELECT jid, push_name, message_count, last_seen FROM users "
            "ORDER BY message_count DESC, rowid ASC LIMIT ?",
            (max(limit, 0),),
        ) as cursor:
            rows = await cursor.fetchall()
        return [UserRecord.from_row(row) for row in rows]

    async def get_stats(self) -> StoreStats:
        db = self._db()
        async with db.execute(
            "SELECT value FROM stats WHERE key = ?", (TOTAL_MESSAGES_KEY,)
        ) as cursor:
            row = await cursor.fetchone()
        async with db.execute("SELECT COUNT(*) FROM users") as cursor:
            count_row = await cursor.fetchone()

        total = int(row["value"] or 0) if row else 0
        return StoreStats(total_messages=total, users_count=int(count_row[0]))

    async def prune_older_than(self, cutoff: datetime) -> int:
        """
        Delete users whose last-seen time is before ``cutoff``.

        Returns:
            Number of users removed.
        """
        db = self._db()
        cursor = await db.execute(
            "DELETE FROM users WHERE last_seen < ?",
            (format_timestamp(cutoff),),
        )
        await db.commit()
        return max(cursor.rowcount, 0)

    # ------------------------------------------------------------------
    # Prefix overrides
    # ------------------------------------------------------------------

    async def set_prefix_for(self, scope_key: str, prefix: str) -> None:
        db = self._db()
        await db.execute(
            "INSERT INTO prefixes (jid, prefix) VALUES (?, ?) "
            "ON CONFLICT(jid) DO UPDATE SET prefix = excluded.prefix",
            (scope_key, prefix),
        )
        await db.commit()

    async def get_prefix_for(self, scope_key: str) -> str | None:
        db = self._db()
        async with db.execute(
            "SELECT prefix FROM prefixes WHERE jid = ?", (scope_key,)
        ) as cursor:
            row = await cursor.fetchone()
        return row["prefix"] if row else None

    async def clear_prefix_for(self, scope_key: str) -> bool:
        """Remove an override. Returns True if one existed."""
        db = self._db()
        cursor = await db.execute("DELETE FROM prefixes WHERE jid = ?", (scope_key,))
        await db.commit()
        return cursor.rowcount > 0

    async def set_global_prefix(self, prefix: str) -> None:
        await self.set_prefix_for(GLOBAL_SCOPE, prefix)

    async def get_global_prefix(self) -> str | None:
        return await self.get_prefix_for(GLOBAL_SCOPE)

    # ------------------------------------------------------------------
    # Legacy import
    # ------------------------------------------------------------------

    async def import_legacy(
        self,
        users: Mapping[str, Mapping[str, Any]],
        total_messages: int | None = None,
    ) -> int:
        """
        Upsert users (and optionally the total counter) from the flat-file
        layout. Running it again with the same data changes nothing.

        Args:
            users: ``{jid: {"pushName", "messageCount", "lastSeen"}}``.
            total_messages: Value for the total counter, if known.

        Returns:
            Number of users written.
        """
        db = self._db()
        written = 0
        try:
            for user_id, data in users.items():
                if not user_id or not isinstance(data, Mapping):
                    continue
                try:
                    last_seen = parse_timestamp(data.get("lastSeen"))
                except (TypeError, ValueError):
                    last_seen = self._clock()
                try:
                    count = max(int(data.get("messageCount") or 0), 0)
                except (TypeError, ValueError):
                    count = 0
                await db.execute(
                    "INSERT INTO users (jid, push_name, message_count, last_seen) "
                    "VALUES (?, ?, ?, ?) "
                    "ON CONFLICT(jid) DO UPDATE SET push_name = excluded.push_name, "
                    "message_count = excluded.message_count, last_seen = excluded.last_seen",
                    (
                        user_id,
                        data.get("pushName") or DEFAULT_DISPLAY_NAME,
                        count,
                        format_timestamp(last_seen),
                    ),
                )
                written += 1

            if total_messages is not None:
                await db.execute(
                    "INSERT INTO stats (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (TOTAL_MESSAGES_KEY, str(int(total_messages))),
                )
            await db.commit()
        except BaseException:
            await db.rollback()
            raise
        return written
