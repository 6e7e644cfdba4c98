"""Title and excerpt extraction for note cards."""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
import re
from typing import Any, Dict, Sequence

import frontmatter
import yaml

from ..models.vault import NotePreview
from .interfaces import IVaultStore

logger = logging.getLogger(__name__)

H1_PATTERN = re.compile(r"^\s*#\s+(.+)$", re.MULTILINE)
MAX_PREVIEW_LINES = 20
ELLIPSIS = "…"


def title_for_file(rel_path: str) -> str:
    """File name without a trailing .md extension."""
    name = PurePosixPath(rel_path).name or rel_path
    return name[:-3] if name.lower().endswith(".md") else name


def derive_title(rel_path: str, metadata: Dict[str, Any], body: str) -> str:
    title = metadata.get("title")
    if isinstance(title, str) and title.strip():
        return title.strip()
    match = H1_PATTERN.search(body or "")
    if match:
        return match.group(1).strip()
    return title_for_file(rel_path)


def _split_frontmatter(text: str) -> tuple[Dict[str, Any], str]:
    try:
        post = frontmatter.loads(text)
    except (yaml.YAMLError, ValueError) as exc:
        logger.debug("Unreadable frontmatter, using raw text: %s", exc)
        return {}, text
    return dict(post.metadata or {}), post.content or ""


def parse_note_preview(rel_path: str, text: str) -> NotePreview:
    """Title from frontmatter or the first heading; body capped at 20 lines."""
    metadata, body = _split_frontmatter(text)
    title = derive_title(rel_path, metadata, body)
    lines = body.split("\n")
    if len(lines) > MAX_PREVIEW_LINES:
        body = "\n".join(lines[:MAX_PREVIEW_LINES]) + f"\n{ELLIPSIS}"
    return NotePreview(title=title, content=body)


async def fetch_note_previews(
    vault: IVaultStore, note_ids: Sequence[str]
) -> Dict[str, NotePreview]:
    """
    Read note previews in one batch.

    Unreadable notes degrade to an empty preview (no title, no content) so the
    caller can fall back to another title source.
    """
    if not note_ids:
        return {}
    previews: Dict[str, NotePreview] = {}
    for result in await vault.read_texts_batch(list(note_ids)):
        if result.text is None:
            previews[result.rel_path] = NotePreview(title="")
        else:
            previews[result.rel_path] = parse_note_preview(result.rel_path, result.text)
    for note_id in note_ids:
        previews.setdefault(note_id, NotePreview(title=""))
    return previews


__all__ = ["title_for_file", "derive_title", "parse_note_preview", "fetch_note_previews"]
