"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_VAULT_PATH = PROJECT_ROOT / "data" / "vault"
VIEW_STORE_DIRNAME = ".lattice"
INDEX_DB_FILENAME = "index.db"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class AppConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    vault_path: Path = Field(..., description="Root directory of the notes vault")
    view_store_path: Optional[Path] = Field(
        default=None,
        description="Directory holding persisted view documents (defaults to <vault>/.lattice)",
    )
    index_db_path: Optional[Path] = Field(
        default=None,
        description="SQLite note index file (defaults to <view store>/index.db)",
    )
    folder_view_limit: int = Field(default=500, ge=1, description="Max files in a folder view")
    tag_view_limit: int = Field(default=500, ge=1, description="Max notes in a tag view")
    search_view_limit: int = Field(default=200, ge=1, description="Max notes in a search view")
    log_level: str = Field(default="INFO", description="Root log level")

    @field_validator("vault_path", mode="before")
    @classmethod
    def _normalize_vault_path(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            raise ValueError("VAULT_PATH is required")
        path = value if isinstance(value, Path) else Path(value)
        return path.expanduser().resolve()

    @field_validator("view_store_path", "index_db_path", mode="before")
    @classmethod
    def _normalize_optional_path(cls, value: str | Path | None) -> Optional[Path]:
        if value is None or value == "":
            return None
        path = value if isinstance(value, Path) else Path(value)
        return path.expanduser().resolve()

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def resolved_view_store_path(self) -> Path:
        return self.view_store_path or self.vault_path / VIEW_STORE_DIRNAME

    @property
    def resolved_index_db_path(self) -> Path:
        return self.index_db_path or self.resolved_view_store_path / INDEX_DB_FILENAME


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


def _read_int_env(key: str, default: int) -> int:
    raw = _read_env(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from exc


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration."""
    config = AppConfig(
        vault_path=_read_env("VAULT_PATH", str(DEFAULT_VAULT_PATH)),
        view_store_path=_read_env("VIEW_STORE_PATH"),
        index_db_path=_read_env("INDEX_DB_PATH"),
        folder_view_limit=_read_int_env("FOLDER_VIEW_LIMIT", 500),
        tag_view_limit=_read_int_env("TAG_VIEW_LIMIT", 500),
        search_view_limit=_read_int_env("SEARCH_VIEW_LIMIT", 200),
        log_level=_read_env("LOG_LEVEL", "INFO"),
    )
    # Ensure the vault and view store exist for downstream services.
    config.vault_path.mkdir(parents=True, exist_ok=True)
    config.resolved_view_store_path.mkdir(parents=True, exist_ok=True)
    return config


def reload_config() -> AppConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


def configure_logging(level: str | None = None) -> None:
    """Apply the process-wide log format."""
    logging.basicConfig(
        level=level or get_config().log_level,
        format=LOG_FORMAT,
    )


__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "configure_logging",
    "PROJECT_ROOT",
    "DEFAULT_VAULT_PATH",
    "LOG_FORMAT",
]
