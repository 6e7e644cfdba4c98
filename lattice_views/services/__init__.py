"""Service layer: identity, codec, layouts, builders, collaborators and the loader."""

from .codec import LoadedViewDoc, load_view_doc, save_view_doc, try_parse_view_doc
from .config import AppConfig, configure_logging, get_config, reload_config
from .database import DatabaseService, init_database
from .identity import sha256_hex, view_doc_path, view_identity
from .indexer import IndexerService
from .interfaces import INoteIndex, ITextStore, IVaultStore, NeedsIndexRebuildError
from .storage import FileTextStore
from .vault import VaultService
from .view_loader import IndexRebuildFailedError, LoaderState, ViewLoader, ViewLoadResult

__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "configure_logging",
    "DatabaseService",
    "init_database",
    "IndexerService",
    "VaultService",
    "FileTextStore",
    "IVaultStore",
    "INoteIndex",
    "ITextStore",
    "NeedsIndexRebuildError",
    "IndexRebuildFailedError",
    "LoadedViewDoc",
    "load_view_doc",
    "save_view_doc",
    "try_parse_view_doc",
    "sha256_hex",
    "view_doc_path",
    "view_identity",
    "LoaderState",
    "ViewLoader",
    "ViewLoadResult",
]
