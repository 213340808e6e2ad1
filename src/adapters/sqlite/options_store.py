import sqlite3
from datetime import UTC, datetime
from typing import Any


# Helper to convert sqlite rows to dicts
def dict_factory(cursor: sqlite3.Cursor, row: Any) -> dict[str, Any]:
    d = {}
    for idx, col in enumerate(cursor.description):
        d[col[0]] = row[idx]
    return d


class SQLiteOptionStore:
    """SQLite adapter for named option blobs (one row per key)."""

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        return conn

    def get(self, key: str, default: str | None = None) -> str | None:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT option_value FROM options WHERE option_name = ?", (key,)
            ).fetchone()
            if not row:
                return default
            value: str = row["option_value"]
            return value
        finally:
            conn.close()

    def set(self, key: str, blob: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO options (option_name, option_value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(option_name) DO UPDATE SET
                    option_value=excluded.option_value,
                    updated_at=excluded.updated_at
            """,
                (key, blob, datetime.now(UTC).isoformat()),
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
