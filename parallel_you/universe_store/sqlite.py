"""
SQLite-backed Universe Store.

Universe records and conversation entries live in separate tables. Every write
runs as one transaction under the connection lock, so a reader sees either
the whole universe or nothing, and conversation sequence numbers form a
single total order per universe.
"""

import asyncio
import json
import logging
import sqlite3
import threading
from datetime import datetime
from typing import List, Optional

from parallel_you.errors import UniverseIdCollision, UniverseNotFound
from parallel_you.models.universe import ConversationEntry, Universe

logger = logging.getLogger(__name__)


class SQLiteUniverseStore:
    """
    Durable universe store.
    Blocking sqlite3 calls run on worker threads; one lock guards the connection.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        """Create the universe tables if they don't exist."""
        with self._lock, self._conn:
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS universes (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    divergence_point TEXT,
                    created_at TEXT NOT NULL,
                    record_json TEXT NOT NULL
                )
            """)
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS conversation_entries (
                    universe_id TEXT NOT NULL
                        REFERENCES universes(id) ON DELETE CASCADE,
                    sequence INTEGER NOT NULL,
                    message TEXT NOT NULL,
                    response TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    PRIMARY KEY (universe_id, sequence)
                )
            """)
            self._conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_universes_owner_id ON universes(owner_id)
            """)

    # --- Blocking operations (called on worker threads) ---

    def _put_sync(self, universe_id: str, record: Universe, replace: bool) -> None:
        header = record.model_dump(mode="json", exclude={"conversation_log"})
        header["id"] = universe_id
        with self._lock, self._conn:
            exists = self._conn.execute(
                "SELECT 1 FROM universes WHERE id = ?", (universe_id,)
            ).fetchone()
            if exists and not replace:
                raise UniverseIdCollision(universe_id)

            # Replacing drops the old log with the old record
            self._conn.execute("DELETE FROM universes WHERE id = ?", (universe_id,))
            self._conn.execute(
                """
                INSERT INTO universes (
                    id, owner_id, divergence_point, created_at, record_json
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    universe_id,
                    record.owner_id,
                    record.divergence_point,
                    record.created_at.isoformat(),
                    json.dumps(header),
                ),
            )
            self._conn.executemany(
                """
                INSERT INTO conversation_entries (
                    universe_id, sequence, message, response, timestamp
                ) VALUES (?, ?, ?, ?, ?)
                """,
                [
                    (
                        universe_id,
                        i + 1,
                        entry.message,
                        entry.response,
                        entry.timestamp.isoformat(),
                    )
                    for i, entry in enumerate(record.conversation_log)
                ],
            )

    def _get_sync(self, universe_id: str) -> Optional[Universe]:
        with self._lock:
            row = self._conn.execute(
                "SELECT record_json FROM universes WHERE id = ?", (universe_id,)
            ).fetchone()
            if row is None:
                return None
            entries = self._conn.execute(
                "SELECT sequence, message, response, timestamp "
                "FROM conversation_entries WHERE universe_id = ? ORDER BY sequence",
                (universe_id,),
            ).fetchall()
        return self._deserialize(row, entries)

    def _append_sync(
        self, universe_id: str, entry: ConversationEntry
    ) -> ConversationEntry:
        with self._lock, self._conn:
            exists = self._conn.execute(
                "SELECT 1 FROM universes WHERE id = ?", (universe_id,)
            ).fetchone()
            if not exists:
                raise UniverseNotFound(universe_id)

            row = self._conn.execute(
                "SELECT COALESCE(MAX(sequence), 0) + 1 AS next_seq "
                "FROM conversation_entries WHERE universe_id = ?",
                (universe_id,),
            ).fetchone()
            sequence = row["next_seq"]
            self._conn.execute(
                """
                INSERT INTO conversation_entries (
                    universe_id, sequence, message, response, timestamp
                ) VALUES (?, ?, ?, ?, ?)
                """,
                (
                    universe_id,
                    sequence,
                    entry.message,
                    entry.response,
                    entry.timestamp.isoformat(),
                ),
            )
        return entry.model_copy(update={"sequence": sequence})

    def _list_by_owner_sync(self, owner_id: str) -> List[Universe]:
        with self._lock:
            ids = [
                r["id"] for r in self._conn.execute(
                    "SELECT id FROM universes WHERE owner_id = ? "
                    "ORDER BY created_at, rowid",
                    (owner_id,),
                ).fetchall()
            ]
        records = [self._get_sync(universe_id) for universe_id in ids]
        return [r for r in records if r is not None]

    def _close_sync(self) -> None:
        with self._lock:
            self._conn.close()

    def _count_sync(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) AS cnt FROM universes").fetchone()
        return row["cnt"]

    def _deserialize(
        self, row: sqlite3.Row, entries: List[sqlite3.Row]
    ) -> Universe:
        """Rebuild a Universe from its header row and ordered entry rows."""
        data = json.loads(row["record_json"])
        data["conversation_log"] = [
            {
                "message": e["message"],
                "response": e["response"],
                "timestamp": datetime.fromisoformat(e["timestamp"]),
                "sequence": e["sequence"],
            }
            for e in entries
        ]
        return Universe.model_validate(data)

    # --- Async contract ---

    async def put(
        self, universe_id: str, record: Universe, replace: bool = True
    ) -> None:
        await asyncio.to_thread(self._put_sync, universe_id, record, replace)

    async def get(self, universe_id: str) -> Optional[Universe]:
        return await asyncio.to_thread(self._get_sync, universe_id)

    async def append_conversation(
        self, universe_id: str, entry: ConversationEntry
    ) -> ConversationEntry:
        stored = await asyncio.to_thread(self._append_sync, universe_id, entry)
        logger.debug(
            "Appended entry %d to universe %s", stored.sequence, universe_id
        )
        return stored

    async def list_by_owner(self, owner_id: str) -> List[Universe]:
        return await asyncio.to_thread(self._list_by_owner_sync, owner_id)

    async def count(self) -> int:
        return await asyncio.to_thread(self._count_sync)

    async def close(self) -> None:
        """Close the database connection."""
        await asyncio.to_thread(self._close_sync)
