"""Durable key/value store on SQLite.

Keys are tuples of strings, e.g. ("backups", "backup-2024-01-01-abcd1234", "meta").
Values are anything JSON can hold.
"""

import json
import sqlite3
from pathlib import Path

SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,  -- key parts joined with KEY_SEP
    value TEXT NOT NULL,   -- JSON
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

KEY_SEP = "/"


def _encode_key(key: tuple[str, ...]) -> str:
    for part in key:
        if KEY_SEP in part:
            raise ValueError(f"Key part may not contain {KEY_SEP!r}: {part!r}")
    return KEY_SEP.join(key)


def _decode_key(raw: str) -> tuple[str, ...]:
    return tuple(raw.split(KEY_SEP))


class KvStore:
    """Key/value store backed by one SQLite file."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        conn.executescript(SCHEMA)
        conn.commit()
        conn.close()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.row_factory = sqlite3.Row
        return conn

    def get(self, key: tuple[str, ...]):
        """Value stored under key, or None."""
        conn = self._connect()
        row = conn.execute("SELECT value FROM kv WHERE key = ?", (_encode_key(key),)).fetchone()
        conn.close()
        return json.loads(row["value"]) if row else None

    def set(self, key: tuple[str, ...], value) -> None:
        conn = self._connect()
        conn.execute(
            """INSERT INTO kv (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
               ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at""",
            (_encode_key(key), json.dumps(value)),
        )
        conn.commit()
        conn.close()

    def delete(self, key: tuple[str, ...]) -> bool:
        """Delete key. Returns True if it existed."""
        conn = self._connect()
        cursor = conn.execute("DELETE FROM kv WHERE key = ?", (_encode_key(key),))
        conn.commit()
        conn.close()
        return cursor.rowcount > 0

    def list(self, prefix: tuple[str, ...] = ()) -> list[tuple[tuple[str, ...], object]]:
        """All (key, value) pairs whose key starts with prefix, ordered by key."""
        conn = self._connect()
        if prefix:
            raw = _encode_key(prefix) + KEY_SEP
            cursor = conn.execute(
                "SELECT key, value FROM kv WHERE substr(key, 1, ?) = ? ORDER BY key",
                (len(raw), raw),
            )
        else:
            cursor = conn.execute("SELECT key, value FROM kv ORDER BY key")
        entries = [(_decode_key(row["key"]), json.loads(row["value"])) for row in cursor.fetchall()]
        conn.close()
        return entries
