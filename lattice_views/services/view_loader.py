"""Load, rebuild and publish view documents with a single index-rebuild retry."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Awaitable, Callable, Optional, Set

from ..models.view import (
    FolderViewRef,
    GlobalViewRef,
    SearchViewRef,
    TagViewRef,
    ViewBuildResult,
    ViewDocument,
    ViewOptions,
    ViewRef,
)
from .builders import (
    build_folder_view_doc,
    build_global_view_doc,
    build_search_view_doc,
    build_tag_view_doc,
)
from .codec import load_view_doc, save_view_doc
from .config import AppConfig, get_config
from .identity import view_identity
from .interfaces import INoteIndex, ITextStore, IVaultStore, NeedsIndexRebuildError

logger = logging.getLogger(__name__)

INDEXING_MESSAGE = "Indexing vault…"

BuildFn = Callable[[Optional[ViewDocument]], Awaitable[ViewBuildResult]]


class LoaderState(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    REBUILDING = "rebuilding"
    FAILED = "failed"


class IndexRebuildFailedError(Exception):
    """The index still needed a rebuild after the one allowed retry."""


@dataclass(frozen=True)
class ViewLoadResult:
    """What the caller should display after a load request returns."""

    path: Optional[str]
    doc: Optional[ViewDocument]
    state: LoaderState
    loading_message: str = ""
    error: str = ""
    superseded: bool = False
    exception: Optional[Exception] = field(default=None, compare=False, repr=False)


class ViewLoader:
    """
    Caller-facing coordinator for one display surface.

    Every request bumps ``request_version``; a request only publishes its
    results (``active_view_doc``, ``active_view_path``, ``loading_message``,
    ``error``, ``last_exception``, ``state``) while its captured version is
    still the latest. Work already committed by a superseded request (a
    written document) stays.
    """

    def __init__(
        self,
        store: ITextStore,
        vault: IVaultStore,
        index: INoteIndex,
        config: AppConfig | None = None,
    ) -> None:
        self.store = store
        self.vault = vault
        self.index = index
        self.config = config or get_config()
        self.request_version = 0
        self.active_view_path: Optional[str] = None
        self.active_view_doc: Optional[ViewDocument] = None
        self.loading_message = ""
        self.error = ""
        self.last_exception: Optional[Exception] = None
        self.state = LoaderState.IDLE
        self._background: Set[asyncio.Task] = set()

    def snapshot(self, superseded: bool = False) -> ViewLoadResult:
        """Caller-visible state as it stands now."""
        return ViewLoadResult(
            path=self.active_view_path,
            doc=self.active_view_doc,
            state=self.state,
            loading_message=self.loading_message,
            error=self.error,
            superseded=superseded,
            exception=self.last_exception,
        )

    def _publish(self, path: str, doc: ViewDocument) -> None:
        self.active_view_path = path
        self.active_view_doc = doc

    async def load_and_build(self, view: ViewRef, build_fn: BuildFn) -> ViewLoadResult:
        """
        Show the persisted document (if any), rebuild it and persist changes.

        When the index needs a rebuild and a stale document is already shown,
        the rebuild and the single retry run in a background task; otherwise
        the caller waits for both with ``loading_message`` set.
        """
        self.request_version += 1
        version = self.request_version

        def is_stale() -> bool:
            return self.request_version != version

        identity = view_identity(view)
        self.error = ""
        self.last_exception = None
        self.loading_message = ""
        self.state = LoaderState.BUILDING
        logger.info("Loading view", extra={"view_id": identity.id, "request_version": version})

        try:
            loaded = await load_view_doc(self.store, view)
            if is_stale():
                return self.snapshot(superseded=True)
            if loaded.doc is not None:
                self._publish(loaded.path, loaded.doc)

            existing = loaded.doc

            async def build_and_apply() -> None:
                nonlocal existing
                built = await build_fn(existing)
                if is_stale():
                    return
                save_error: Optional[Exception] = None
                if existing is None or built.changed:
                    try:
                        await save_view_doc(self.store, loaded.path, built.doc)
                    except Exception as exc:
                        save_error = exc
                if is_stale():
                    return
                existing = built.doc
                self._publish(loaded.path, built.doc)
                if save_error is not None:
                    raise save_error

            try:
                await build_and_apply()
            except NeedsIndexRebuildError as exc:
                logger.info(
                    "Index needs rebuild",
                    extra={"view_id": identity.id, "missing_count": exc.missing_count},
                )
                if loaded.doc is not None:
                    self.state = LoaderState.REBUILDING
                    self._spawn(self._rebuild_in_background(build_and_apply, is_stale))
                    return self.snapshot()
                self.loading_message = INDEXING_MESSAGE
                self.state = LoaderState.REBUILDING
                await self.index.rebuild_index()
                if is_stale():
                    return self.snapshot(superseded=True)
                self.loading_message = ""
                await self._retry_once(build_and_apply)

            if is_stale():
                return self.snapshot(superseded=True)
            self.state = LoaderState.IDLE
            return self.snapshot()
        except Exception as exc:
            if is_stale():
                return self.snapshot(superseded=True)
            logger.exception("View build failed", extra={"view_id": identity.id})
            self.loading_message = ""
            self.error = str(exc) or exc.__class__.__name__
            self.last_exception = exc
            self.state = LoaderState.FAILED
            return self.snapshot()

    async def _retry_once(self, build_and_apply: Callable[[], Awaitable[None]]) -> None:
        self.state = LoaderState.BUILDING
        try:
            await build_and_apply()
        except NeedsIndexRebuildError as exc:
            raise IndexRebuildFailedError(
                f"Index still not ready after rebuild: {exc}"
            ) from exc

    async def _rebuild_in_background(
        self,
        build_and_apply: Callable[[], Awaitable[None]],
        is_stale: Callable[[], bool],
    ) -> None:
        try:
            await self.index.rebuild_index()
            if is_stale():
                return
            await self._retry_once(build_and_apply)
            if not is_stale():
                self.state = LoaderState.IDLE
        except Exception as exc:
            if is_stale():
                return
            logger.warning("Background view refresh failed: %s", exc)
            self.error = str(exc) or exc.__class__.__name__
            self.last_exception = exc
            self.state = LoaderState.FAILED

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def wait_for_background(self) -> None:
        """Wait until background refreshes started so far have finished."""
        while self._background:
            await asyncio.gather(*list(self._background))

    # -- per-kind entry points ------------------------------------------

    async def load_folder_view(
        self, directory: str, options: ViewOptions | None = None
    ) -> ViewLoadResult:
        options = options or ViewOptions(recursive=True, limit=self.config.folder_view_limit)
        return await self.load_and_build(
            FolderViewRef(dir=directory),
            lambda existing: build_folder_view_doc(directory, options, existing, vault=self.vault),
        )

    async def load_global_view(self, options: ViewOptions | None = None) -> ViewLoadResult:
        options = options or ViewOptions(recursive=True, limit=self.config.folder_view_limit)
        return await self.load_and_build(
            GlobalViewRef(),
            lambda existing: build_global_view_doc(options, existing, vault=self.vault),
        )

    async def load_tag_view(
        self, tag: str, options: ViewOptions | None = None
    ) -> Optional[ViewLoadResult]:
        cleaned = tag.strip()
        if not cleaned.lstrip("#"):
            return None
        options = options or ViewOptions(limit=self.config.tag_view_limit)
        return await self.load_and_build(
            TagViewRef(tag=cleaned),
            lambda existing: build_tag_view_doc(
                cleaned, options, existing, index=self.index, vault=self.vault
            ),
        )

    async def load_search_view(
        self, query: str, options: ViewOptions | None = None
    ) -> Optional[ViewLoadResult]:
        cleaned = query.strip()
        if not cleaned:
            return None
        options = options or ViewOptions(limit=self.config.search_view_limit)
        return await self.load_and_build(
            SearchViewRef(query=cleaned),
            lambda existing: build_search_view_doc(
                cleaned, options, existing, index=self.index, vault=self.vault
            ),
        )


__all__ = [
    "INDEXING_MESSAGE",
    "LoaderState",
    "IndexRebuildFailedError",
    "ViewLoadResult",
    "ViewLoader",
]
