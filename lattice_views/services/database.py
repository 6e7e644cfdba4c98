"""SQLite database helpers for the note index schema."""

from __future__ import annotations

from pathlib import Path
import sqlite3
from typing import Iterable

from .config import AppConfig, get_config

DDL_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS note_metadata (
        note_path TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        updated TEXT NOT NULL,
        size_bytes INTEGER NOT NULL DEFAULT 0
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_metadata_updated ON note_metadata(updated DESC)",
    """
    CREATE VIRTUAL TABLE IF NOT EXISTS note_fts USING fts5(
        note_path UNINDEXED,
        title,
        body,
        tokenize='porter unicode61',
        prefix='2 3'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS note_tags (
        note_path TEXT NOT NULL,
        tag TEXT NOT NULL,
        PRIMARY KEY (note_path, tag)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_tags_tag ON note_tags(tag)",
    """
    CREATE TABLE IF NOT EXISTS index_health (
        id INTEGER PRIMARY KEY CHECK (id = 1),
        note_count INTEGER NOT NULL DEFAULT 0,
        last_full_rebuild TEXT
    )
    """,
)


class DatabaseService:
    """Manage SQLite connections and schema initialization."""

    def __init__(self, db_path: str | Path | None = None, config: AppConfig | None = None):
        if db_path is None:
            db_path = (config or get_config()).resolved_index_db_path
        self.db_path = Path(db_path)

    def _ensure_directory(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def connect(self) -> sqlite3.Connection:
        """Return a sqlite3 connection with the proper data directory created."""
        self._ensure_directory()
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self, statements: Iterable[str] | None = None) -> Path:
        """Create all schema artifacts required for indexing."""
        conn = self.connect()
        try:
            with conn:  # Transactional apply of DDL
                for statement in statements or DDL_STATEMENTS:
                    conn.execute(statement)
        finally:
            conn.close()
        return self.db_path


def init_database(db_path: str | Path | None = None) -> Path:
    """Convenience wrapper used at application startup."""
    return DatabaseService(db_path).initialize()


__all__ = ["DatabaseService", "init_database", "DDL_STATEMENTS"]
