"""Contracts of the collaborators consumed by view builders."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from ..models.vault import FsEntry, NoteHit, TextReadResult


class NeedsIndexRebuildError(Exception):
    """The note index is missing, stale or being rebuilt."""

    def __init__(self, message: str, missing_count: int = 0) -> None:
        super().__init__(message)
        self.missing_count = missing_count


class IVaultStore(ABC):
    @abstractmethod
    async def list_files(
        self, directory: Optional[str], recursive: bool, limit: int
    ) -> List[FsEntry]: ...

    @abstractmethod
    async def read_texts_batch(self, paths: Sequence[str]) -> List[TextReadResult]:
        """Read many files; a failed read yields ``text=None`` for that path."""
        ...


class INoteIndex(ABC):
    @abstractmethod
    async def search(self, query: str, limit: int) -> List[NoteHit]:
        """Raises NeedsIndexRebuildError when the index cannot answer."""
        ...

    @abstractmethod
    async def tag_notes(self, tag: str, limit: int) -> List[NoteHit]:
        """Raises NeedsIndexRebuildError when the index cannot answer."""
        ...

    @abstractmethod
    async def rebuild_index(self) -> int:
        """Rebuild from the vault; safe to call when not needed."""
        ...


class ITextStore(ABC):
    @abstractmethod
    async def read_text(self, path: str) -> str:
        """Raises FileNotFoundError when nothing is stored at ``path``."""
        ...

    @abstractmethod
    async def write_text(self, path: str, text: str) -> None: ...


__all__ = ["NeedsIndexRebuildError", "IVaultStore", "INoteIndex", "ITextStore"]
