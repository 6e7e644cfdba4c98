from pathlib import Path

import pytest

from lattice_views.services.config import AppConfig
from lattice_views.services.database import DatabaseService
from lattice_views.services.indexer import IndexerService, _prepare_match_query, normalize_index_tag
from lattice_views.services.interfaces import NeedsIndexRebuildError
from lattice_views.services.vault import VaultService


@pytest.fixture()
def vault_dir(tmp_path: Path) -> Path:
    root = tmp_path / "vault"
    (root / "notes").mkdir(parents=True)
    (root / "notes" / "obrien.md").write_text(
        "---\ntitle: O'Brien Authentication\ntags: [Security, '#auth']\n---\n"
        "Details about O'Brien's authentication flow.",
        encoding="utf-8",
    )
    (root / "notes" / "auth.md").write_text(
        "---\ntags: auth\n---\n# Authorization Overview\nPrefix search should match.",
        encoding="utf-8",
    )
    (root / "plain.md").write_text("Nothing tagged here about graphs.", encoding="utf-8")
    return root


@pytest.fixture()
def indexer(tmp_path: Path, vault_dir: Path) -> IndexerService:
    config = AppConfig(vault_path=vault_dir, index_db_path=tmp_path / "index.db")
    return IndexerService(
        db_service=DatabaseService(config=config),
        vault_service=VaultService(config=config),
    )


def test_normalize_index_tag() -> None:
    assert normalize_index_tag("#Project ") == "project"
    assert normalize_index_tag(None) == ""


def test_prepare_match_query() -> None:
    assert _prepare_match_query("O'Brien auth*") == '"O" "Brien" "auth"*'
    with pytest.raises(ValueError):
        _prepare_match_query("!!!")


def test_queries_before_rebuild_need_rebuild(indexer: IndexerService) -> None:
    with pytest.raises(NeedsIndexRebuildError):
        indexer.search_notes("auth")

    indexer.db_service.initialize()

    with pytest.raises(NeedsIndexRebuildError):
        indexer.notes_for_tag("auth")


def test_rebuild_indexes_vault(indexer: IndexerService) -> None:
    assert indexer.rebuild() == 3

    health = indexer.get_health()
    assert health.note_count == 3
    assert health.last_full_rebuild is not None

    tagged = indexer.notes_for_tag("#AUTH")
    assert [row["path"] for row in tagged] == ["notes/auth.md", "notes/obrien.md"]
    assert tagged[0]["title"] == "Authorization Overview"

    results = indexer.search_notes("O'Brien")
    assert results[0]["path"] == "notes/obrien.md"

    assert {row["tag"]: row["count"] for row in indexer.get_tags()} == {"auth": 2, "security": 1}


def test_rebuild_is_repeatable(indexer: IndexerService) -> None:
    indexer.rebuild()
    indexer.rebuild()

    assert indexer.get_health().note_count == 3
    assert len(indexer.notes_for_tag("security")) == 1


def test_rebuild_drops_notes_removed_from_vault(indexer: IndexerService, vault_dir: Path) -> None:
    indexer.rebuild()
    (vault_dir / "plain.md").unlink()

    assert indexer.rebuild() == 2

    assert indexer.get_health().note_count == 2
    assert indexer.search_notes("graphs") == []


def test_health_before_any_build(indexer: IndexerService) -> None:
    assert indexer.get_health().note_count == 0


@pytest.mark.asyncio
async def test_async_contract(indexer: IndexerService) -> None:
    assert await indexer.rebuild_index() == 3

    hits = await indexer.tag_notes("#security", 10)
    assert [(hit.id, hit.title) for hit in hits] == [("notes/obrien.md", "O'Brien Authentication")]

    found = await indexer.search("prefix", 10)
    assert [hit.id for hit in found] == ["notes/auth.md"]


def test_search_rejects_empty_query(indexer: IndexerService) -> None:
    indexer.rebuild()
    with pytest.raises(ValueError):
        indexer.search_notes("   ")
