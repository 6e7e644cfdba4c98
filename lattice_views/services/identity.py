"""Stable identities and content-addressed storage paths for views."""

from __future__ import annotations

import hashlib

from ..models.view import (
    FolderViewRef,
    GlobalViewRef,
    SearchViewRef,
    TagViewRef,
    ViewIdentity,
    ViewRef,
)

VIEWS_DIR = "views"
GLOBAL_VIEW_PATH = f"{VIEWS_DIR}/global.json"
ROOT_TITLE = "Vault"


def basename(rel_path: str) -> str:
    """Last non-empty segment of a slash separated path."""
    parts = [part for part in rel_path.split("/") if part]
    return parts[-1] if parts else rel_path


def normalize_folder_selector(directory: str) -> str:
    """Trim, use forward slashes and strip leading/trailing slashes."""
    return directory.strip().replace("\\", "/").strip("/")


def normalize_tag(tag: str) -> str:
    """Tags are always addressed with a leading '#'."""
    cleaned = tag.strip()
    return cleaned if cleaned.startswith("#") else f"#{cleaned}"


def sha256_hex(text: str) -> str:
    """Lowercase hex SHA-256 of the UTF-8 encoding of ``text``."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def view_identity(view: ViewRef) -> ViewIdentity:
    """Derive the identity of a view reference.

    References that normalize to the same selector share an identity and
    therefore a storage path.
    """
    if isinstance(view, GlobalViewRef):
        return ViewIdentity(id="global", kind="global", selector="", title=ROOT_TITLE)
    if isinstance(view, FolderViewRef):
        selector = normalize_folder_selector(view.dir)
        title = basename(selector) if selector else ROOT_TITLE
        return ViewIdentity(id=f"folder:{selector}", kind="folder", selector=selector, title=title)
    if isinstance(view, TagViewRef):
        selector = normalize_tag(view.tag)
        return ViewIdentity(id=f"tag:{selector}", kind="tag", selector=selector, title=selector)
    if isinstance(view, SearchViewRef):
        selector = view.query.strip()
        return ViewIdentity(
            id=f"search:{selector}",
            kind="search",
            selector=selector,
            title=f"Search: {selector}".strip(),
        )
    raise TypeError(f"Unsupported view reference: {view!r}")


def view_doc_path(view: ViewRef) -> str:
    """Relative storage path of the view document for ``view``."""
    identity = view_identity(view)
    if identity.kind == "global":
        return GLOBAL_VIEW_PATH
    return f"{VIEWS_DIR}/{identity.kind}/{sha256_hex(identity.id)}.json"


__all__ = [
    "GLOBAL_VIEW_PATH",
    "ROOT_TITLE",
    "basename",
    "normalize_folder_selector",
    "normalize_tag",
    "sha256_hex",
    "view_identity",
    "view_doc_path",
]
