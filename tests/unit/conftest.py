"""In-memory collaborators shared by the unit tests."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence

import pytest

from lattice_views.models import FsEntry, NoteHit, TextReadResult
from lattice_views.services.config import AppConfig
from lattice_views.services.interfaces import (
    INoteIndex,
    ITextStore,
    IVaultStore,
    NeedsIndexRebuildError,
)


class MemoryTextStore(ITextStore):
    def __init__(self) -> None:
        self.files: Dict[str, str] = {}
        self.writes: List[str] = []
        self.fail_writes = False

    async def read_text(self, path: str) -> str:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    async def write_text(self, path: str, text: str) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        self.files[path] = text
        self.writes.append(path)


class FakeVault(IVaultStore):
    """Vault backed by a dict of path -> text (None marks an unreadable file)."""

    def __init__(self, files: Optional[Dict[str, Optional[str]]] = None) -> None:
        self.files: Dict[str, Optional[str]] = dict(files or {})

    async def list_files(
        self, directory: Optional[str], recursive: bool, limit: int
    ) -> List[FsEntry]:
        prefix = f"{directory}/" if directory else ""
        paths = []
        for path in self.files:
            if not path.startswith(prefix):
                continue
            if not recursive and "/" in path[len(prefix):]:
                continue
            paths.append(path)
        paths.sort(key=lambda p: (p.lower(), p))
        return [
            FsEntry(rel_path=p, is_markdown=p.endswith(".md")) for p in paths[:limit]
        ]

    async def read_texts_batch(self, paths: Sequence[str]) -> List[TextReadResult]:
        return [TextReadResult(rel_path=p, text=self.files.get(p)) for p in paths]


class FakeIndex(INoteIndex):
    """
    Index answering from dicts.

    ``pending_failures`` queries raise NeedsIndexRebuildError before the
    index starts answering; ``query_error`` is raised by every query while
    set; ``gates`` hold queries until their event is set.
    """

    def __init__(
        self,
        tags: Optional[Dict[str, List[NoteHit]]] = None,
        searches: Optional[Dict[str, List[NoteHit]]] = None,
    ) -> None:
        self.tags = dict(tags or {})
        self.searches = dict(searches or {})
        self.pending_failures = 0
        self.rebuild_calls = 0
        self.query_calls = 0
        self.last_limit: Optional[int] = None
        self.gates: Dict[str, asyncio.Event] = {}
        self.on_rebuild: Optional[Callable[[], None]] = None
        self.query_error: Optional[Exception] = None

    async def _answer(self, key: str, table: Dict[str, List[NoteHit]], limit: int) -> List[NoteHit]:
        self.query_calls += 1
        self.last_limit = limit
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        if self.query_error is not None:
            raise self.query_error
        if self.pending_failures > 0:
            self.pending_failures -= 1
            raise NeedsIndexRebuildError("index not built", missing_count=1)
        return list(table.get(key, []))[:limit]

    async def search(self, query: str, limit: int) -> List[NoteHit]:
        return await self._answer(query, self.searches, limit)

    async def tag_notes(self, tag: str, limit: int) -> List[NoteHit]:
        return await self._answer(tag.lstrip("#"), self.tags, limit)

    async def rebuild_index(self) -> int:
        self.rebuild_calls += 1
        if self.on_rebuild is not None:
            self.on_rebuild()
        return len(self.tags)


@pytest.fixture()
def store() -> MemoryTextStore:
    return MemoryTextStore()


@pytest.fixture()
def vault() -> FakeVault:
    return FakeVault(
        {
            "alpha.md": "# Alpha\n\nFirst note body.",
            "beta.md": "---\ntitle: Beta\ntags: [project]\n---\nSecond note body.",
            "gamma.md": "Plain gamma text.",
        }
    )


@pytest.fixture()
def index() -> FakeIndex:
    return FakeIndex(
        tags={
            "project": [
                NoteHit(id="alpha.md", title="alpha"),
                NoteHit(id="beta.md", title="beta"),
            ]
        },
        searches={"alpha": [NoteHit(id="alpha.md", title="alpha")]},
    )


@pytest.fixture()
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(vault_path=tmp_path / "vault")
