"""Filesystem vault access."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import frontmatter

from ..models.vault import FsEntry, TextReadResult
from .config import AppConfig, get_config
from .interfaces import IVaultStore
from .note_preview import derive_title

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIXES = {".md", ".markdown"}

VaultNote = Dict[str, Any]


def is_markdown_path(rel_path: str) -> bool:
    return Path(rel_path).suffix.lower() in MARKDOWN_SUFFIXES


def sanitize_path(vault_root: Path, rel_path: str) -> Path:
    """
    Resolve a path relative to the vault.

    Raises ValueError if the resolved path escapes the vault root.
    """
    if "\\" in rel_path or ".." in rel_path.split("/"):
        raise ValueError(f"Path contains invalid segments: {rel_path}")
    vault = vault_root.resolve()
    full_path = (vault / rel_path.strip("/")).resolve()
    if not full_path.is_relative_to(vault):
        raise ValueError(f"Path escapes vault root: {rel_path}")
    return full_path


class VaultService(IVaultStore):
    """File listing and batch reads over one vault directory."""

    def __init__(self, config: AppConfig | None = None, vault_root: Path | None = None) -> None:
        self.config = config or get_config()
        self.vault_root = (vault_root or self.config.vault_path).resolve()
        self.vault_root.mkdir(parents=True, exist_ok=True)

    async def list_files(
        self, directory: Optional[str], recursive: bool, limit: int
    ) -> List[FsEntry]:
        return await asyncio.to_thread(self._list_files, directory, recursive, limit)

    async def read_texts_batch(self, paths: Sequence[str]) -> List[TextReadResult]:
        return await asyncio.to_thread(self._read_texts, list(paths))

    def list_note_paths(self) -> List[str]:
        """All Markdown notes in the vault, sorted case-insensitively."""
        entries = self._list_files(None, recursive=True, limit=None)
        return [entry.rel_path for entry in entries if entry.is_markdown]

    def read_note(self, note_path: str) -> VaultNote:
        """Read a Markdown note, returning metadata, body, and derived title."""
        absolute_path = sanitize_path(self.vault_root, note_path)
        if not absolute_path.is_file():
            raise FileNotFoundError(f"Note not found: {note_path}")
        post = frontmatter.load(absolute_path)
        metadata = dict(post.metadata or {})
        body = post.content or ""
        stat = absolute_path.stat()
        return {
            "path": note_path,
            "title": derive_title(note_path, metadata, body),
            "metadata": metadata,
            "body": body,
            "size_bytes": stat.st_size,
            "modified": datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        }

    def _list_files(
        self, directory: Optional[str], recursive: bool, limit: Optional[int]
    ) -> List[FsEntry]:
        cleaned = (directory or "").strip().strip("/")
        folder = sanitize_path(self.vault_root, cleaned) if cleaned else self.vault_root
        if not folder.is_dir():
            return []

        files: List[Path] = []
        if recursive:
            for root, dirnames, filenames in os.walk(folder):
                # Hidden folders hold tool state (view store, index), not notes.
                dirnames[:] = [name for name in dirnames if not name.startswith(".")]
                files.extend(Path(root) / name for name in filenames if not name.startswith("."))
        else:
            files = [
                child
                for child in folder.iterdir()
                if child.is_file() and not child.name.startswith(".")
            ]

        rel_paths = sorted(
            (path.relative_to(self.vault_root).as_posix() for path in files),
            key=lambda rel: (rel.lower(), rel),
        )
        if limit is not None:
            rel_paths = rel_paths[:limit]
        return [FsEntry(rel_path=rel, is_markdown=is_markdown_path(rel)) for rel in rel_paths]

    def _read_texts(self, paths: List[str]) -> List[TextReadResult]:
        results: List[TextReadResult] = []
        for rel_path in paths:
            try:
                text = sanitize_path(self.vault_root, rel_path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError, ValueError) as exc:
                logger.warning("Failed to read %s: %s", rel_path, exc)
                text = None
            results.append(TextReadResult(rel_path=rel_path, text=text))
        return results


__all__ = ["VaultService", "VaultNote", "sanitize_path", "is_markdown_path"]
