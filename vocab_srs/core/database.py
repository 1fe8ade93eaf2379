import os
import sqlite3
from pathlib import Path
from typing import Optional, Union

DB_PATH = Path(os.getenv("VOCAB_DB_PATH") or Path(__file__).resolve().parent.parent / "vocab.sqlite3")

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS app_state (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""


def _table_exists(conn, table: str) -> bool:
    row = conn.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,)).fetchone()
    return bool(row)


def get_conn(db_path: Union[str, Path, None] = None) -> sqlite3.Connection:
    path = Path(db_path or DB_PATH)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    if not _table_exists(conn, "app_state"):
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    return conn


class StateStore:
    """
    Key/value records in one sqlite table. Each key holds a whole aggregate
    (the vocabulary collection, the view settings) written in one statement.
    """

    def __init__(self, db_path: Union[str, Path, None] = None):
        self.db_path = Path(db_path or DB_PATH)

    def read(self, key: str) -> Optional[str]:
        conn = get_conn(self.db_path)
        try:
            row = conn.execute("SELECT value FROM app_state WHERE key = ?", (key,)).fetchone()
            return row["value"] if row else None
        finally:
            conn.close()

    def write(self, key: str, value: str) -> None:
        conn = get_conn(self.db_path)
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO app_state(key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = CURRENT_TIMESTAMP
                    """,
                    (key, value),
                )
        finally:
            conn.close()

    def remove(self, key: str) -> None:
        conn = get_conn(self.db_path)
        try:
            with conn:
                conn.execute("DELETE FROM app_state WHERE key = ?", (key,))
        finally:
            conn.close()
