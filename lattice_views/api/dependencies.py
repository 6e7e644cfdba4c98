"""Shared service instances for request handlers."""

from __future__ import annotations

from functools import lru_cache

from ..services.config import get_config
from ..services.database import DatabaseService
from ..services.indexer import IndexerService
from ..services.storage import FileTextStore
from ..services.vault import VaultService
from ..services.view_loader import ViewLoader


@lru_cache(maxsize=1)
def get_vault_service() -> VaultService:
    return VaultService(config=get_config())


@lru_cache(maxsize=1)
def get_text_store() -> FileTextStore:
    return FileTextStore(config=get_config())


@lru_cache(maxsize=1)
def get_indexer_service() -> IndexerService:
    return IndexerService(DatabaseService(config=get_config()), get_vault_service())


def get_view_loader() -> ViewLoader:
    """A fresh loader per request, so concurrent requests never supersede each other."""
    return ViewLoader(
        store=get_text_store(),
        vault=get_vault_service(),
        index=get_indexer_service(),
        config=get_config(),
    )


__all__ = ["get_vault_service", "get_text_store", "get_indexer_service", "get_view_loader"]
