"""SQLite-backed note index: full-text search, tags and rebuilds."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging
from pathlib import Path
import re
import sqlite3
import time
from typing import Any, Dict, List, Optional

from ..models.vault import IndexHealth, NoteHit
from .database import DatabaseService
from .interfaces import INoteIndex, NeedsIndexRebuildError
from .vault import VaultNote, VaultService

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"[0-9A-Za-z]+(?:\*)?")


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def normalize_index_tag(tag: str | None) -> str:
    """Index form of a tag: no leading '#', lowercase."""
    if not isinstance(tag, str):
        return ""
    return tag.strip().lstrip("#").strip().lower()


def _prepare_match_query(query: str) -> str:
    """
    Sanitize user-supplied query text for FTS5 MATCH usage.

    - Extracts tokens comprised of alphanumeric characters.
    - Preserves a single trailing '*' to allow prefix searches.
    - Wraps each token in double quotes to neutralize MATCH operators.
    """
    sanitized_terms: List[str] = []

    for match in TOKEN_PATTERN.finditer(query or ""):
        token = match.group()
        has_prefix_star = token.endswith("*")
        core = token[:-1] if has_prefix_star else token
        if not core:
            continue
        sanitized_terms.append(f'"{core}"{"*" if has_prefix_star else ""}')

    if not sanitized_terms:
        raise ValueError("Search query must contain alphanumeric characters")

    return " ".join(sanitized_terms)


class IndexerService(INoteIndex):
    """Manage the SQLite search index, tag table and index health."""

    def __init__(
        self,
        db_service: DatabaseService | None = None,
        vault_service: VaultService | None = None,
    ) -> None:
        self.db_service = db_service or DatabaseService()
        self.vault_service = vault_service

    # -- async collaborator contract -------------------------------------

    async def search(self, query: str, limit: int) -> List[NoteHit]:
        rows = await asyncio.to_thread(self.search_notes, query, limit=limit)
        return [NoteHit(id=row["path"], title=row["title"]) for row in rows]

    async def tag_notes(self, tag: str, limit: int) -> List[NoteHit]:
        rows = await asyncio.to_thread(self.notes_for_tag, tag, limit=limit)
        return [NoteHit(id=row["path"], title=row["title"]) for row in rows]

    async def rebuild_index(self) -> int:
        return await asyncio.to_thread(self.rebuild)

    # -- indexing ---------------------------------------------------------

    def rebuild(self) -> int:
        """Re-index every note of the vault from scratch. Safe to repeat."""
        if self.vault_service is None:
            raise RuntimeError("IndexerService needs a vault service to rebuild")
        start_time = time.time()
        self.db_service.initialize()

        notes: List[VaultNote] = []
        for note_path in self.vault_service.list_note_paths():
            try:
                notes.append(self.vault_service.read_note(note_path))
            except (OSError, ValueError) as exc:
                logger.warning("Skipping unreadable note %s: %s", note_path, exc)

        conn = self.db_service.connect()
        try:
            with conn:
                conn.execute("DELETE FROM note_metadata")
                conn.execute("DELETE FROM note_fts")
                conn.execute("DELETE FROM note_tags")
                for note in notes:
                    self._index_note(conn, note)
                self._update_index_health(conn)
        finally:
            conn.close()

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Index rebuilt",
            extra={"notes_indexed": len(notes), "duration_ms": f"{duration_ms:.2f}"},
        )
        return len(notes)

    # -- queries ----------------------------------------------------------

    def search_notes(self, query: str, *, limit: int = 50) -> List[Dict[str, Any]]:
        """Full-text search ordered by relevance."""
        if not query or not query.strip():
            raise ValueError("Search query cannot be empty")

        sanitized_query = _prepare_match_query(query)

        conn = self.db_service.connect()
        try:
            self._ensure_ready(conn)
            rows = conn.execute(
                """
                SELECT m.note_path, m.title, bm25(note_fts, 3.0, 1.0) AS score
                FROM note_fts
                JOIN note_metadata m ON m.note_path = note_fts.note_path
                WHERE note_fts MATCH ?
                ORDER BY score ASC, m.note_path ASC
                LIMIT ?
                """,
                (sanitized_query, limit),
            ).fetchall()
        finally:
            conn.close()

        return [{"path": row["note_path"], "title": row["title"]} for row in rows]

    def notes_for_tag(self, tag: str, *, limit: int = 500) -> List[Dict[str, Any]]:
        """Notes carrying ``tag`` (with or without '#'), ordered by path."""
        normalized = normalize_index_tag(tag)
        if not normalized:
            raise ValueError("Tag cannot be empty")

        conn = self.db_service.connect()
        try:
            self._ensure_ready(conn)
            rows = conn.execute(
                """
                SELECT t.note_path, m.title
                FROM note_tags t
                JOIN note_metadata m ON m.note_path = t.note_path
                WHERE t.tag = ?
                ORDER BY lower(t.note_path), t.note_path
                LIMIT ?
                """,
                (normalized, limit),
            ).fetchall()
        finally:
            conn.close()

        return [{"path": row["note_path"], "title": row["title"]} for row in rows]

    def get_tags(self) -> List[Dict[str, Any]]:
        """Return tag counts."""
        conn = self.db_service.connect()
        try:
            self._ensure_ready(conn)
            rows = conn.execute(
                """
                SELECT tag, COUNT(DISTINCT note_path) AS count
                FROM note_tags
                GROUP BY tag
                ORDER BY count DESC, tag ASC
                """
            ).fetchall()
        finally:
            conn.close()

        return [{"tag": row["tag"], "count": int(row["count"])} for row in rows]

    def get_health(self) -> IndexHealth:
        """Index health; an index that was never built reports zero notes."""
        conn = self.db_service.connect()
        try:
            try:
                row = conn.execute(
                    "SELECT note_count, last_full_rebuild FROM index_health WHERE id = 1"
                ).fetchone()
            except sqlite3.OperationalError:
                row = None
        finally:
            conn.close()

        if row is None:
            return IndexHealth(note_count=0)
        return IndexHealth(
            note_count=row["note_count"],
            last_full_rebuild=_parse_iso(row["last_full_rebuild"]),
        )

    # -- internals --------------------------------------------------------

    def _ensure_ready(self, conn: sqlite3.Connection) -> None:
        try:
            row = conn.execute(
                "SELECT last_full_rebuild FROM index_health WHERE id = 1"
            ).fetchone()
        except sqlite3.OperationalError as exc:
            raise NeedsIndexRebuildError(f"index schema missing: {exc}") from exc
        if row is None or not row["last_full_rebuild"]:
            raise NeedsIndexRebuildError("index has not been built")

    def _index_note(self, conn: sqlite3.Connection, note: VaultNote) -> None:
        note_path = note["path"]
        metadata = dict(note.get("metadata") or {})
        title = note.get("title") or metadata.get("title") or Path(note_path).stem
        body = note.get("body", "") or ""
        size_bytes = int(note.get("size_bytes") or len(body.encode("utf-8")))
        modified = note.get("modified")
        updated = modified.isoformat() if isinstance(modified, datetime) else _utcnow_iso()
        tags = self._prepare_tags(metadata.get("tags"))

        conn.execute(
            "INSERT INTO note_metadata (note_path, title, updated, size_bytes) VALUES (?, ?, ?, ?)",
            (note_path, title, updated, size_bytes),
        )
        conn.execute(
            "INSERT INTO note_fts (note_path, title, body) VALUES (?, ?, ?)",
            (note_path, title, body),
        )
        if tags:
            conn.executemany(
                "INSERT INTO note_tags (note_path, tag) VALUES (?, ?)",
                [(note_path, tag) for tag in tags],
            )

    def _update_index_health(self, conn: sqlite3.Connection) -> None:
        row = conn.execute("SELECT COUNT(*) AS count FROM note_metadata").fetchone()
        note_count = int(row["count"])
        conn.execute(
            """
            INSERT INTO index_health (id, note_count, last_full_rebuild)
            VALUES (1, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                note_count = excluded.note_count,
                last_full_rebuild = excluded.last_full_rebuild
            """,
            (note_count, _utcnow_iso()),
        )

    def _prepare_tags(self, tags: Any) -> List[str]:
        if isinstance(tags, str):
            tags = [tags]
        if not isinstance(tags, list):
            return []
        normalized: List[str] = []
        for tag in tags:
            cleaned = normalize_index_tag(tag)
            if cleaned and cleaned not in normalized:
                normalized.append(cleaned)
        return normalized


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


__all__ = ["IndexerService", "normalize_index_tag"]
