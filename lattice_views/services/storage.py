"""Filesystem store for persisted view documents."""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
import tempfile

from .config import AppConfig, get_config
from .interfaces import ITextStore

logger = logging.getLogger(__name__)


def sanitize_store_path(root: Path, rel_path: str) -> Path:
    """
    Resolve a relative store path under ``root``.

    Raises ValueError if the resolved path escapes the root.
    """
    if not rel_path or rel_path.startswith("/") or "\\" in rel_path:
        raise ValueError(f"Invalid store path: {rel_path!r}")
    base = root.resolve()
    full_path = (base / rel_path).resolve()
    if not full_path.is_relative_to(base):
        raise ValueError(f"Path escapes store root: {rel_path}")
    return full_path


class FileTextStore(ITextStore):
    """Reads and atomically writes UTF-8 text files below a root directory."""

    def __init__(self, root: Path | None = None, config: AppConfig | None = None) -> None:
        if root is None:
            root = (config or get_config()).resolved_view_store_path
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    async def read_text(self, path: str) -> str:
        full_path = sanitize_store_path(self.root, path)
        return await asyncio.to_thread(full_path.read_text, encoding="utf-8")

    async def write_text(self, path: str, text: str) -> None:
        full_path = sanitize_store_path(self.root, path)
        await asyncio.to_thread(self._write_atomic, full_path, text)
        logger.debug("Stored text", extra={"path": path, "bytes": len(text)})

    @staticmethod
    def _write_atomic(full_path: Path, text: str) -> None:
        full_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=full_path.parent, prefix=".tmp-", suffix=full_path.suffix)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
            os.replace(tmp_name, full_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


__all__ = ["FileTextStore", "sanitize_store_path"]
