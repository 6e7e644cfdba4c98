import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from lattice_views.cli import app
from lattice_views.services import config as config_module

runner = CliRunner()


@pytest.fixture(autouse=True)
def vault_env(monkeypatch, tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    (vault / "ideas").mkdir(parents=True)
    (vault / "ideas" / "one.md").write_text("---\ntags: [project]\n---\n# One\nFirst", encoding="utf-8")
    (vault / "two.md").write_text("---\ntags: [project]\n---\n# Two\nSecond", encoding="utf-8")
    for key in ("VIEW_STORE_PATH", "INDEX_DB_PATH", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("VAULT_PATH", str(vault))
    config_module.get_config.cache_clear()
    yield vault
    config_module.get_config.cache_clear()


def test_rebuild_index_and_health() -> None:
    rebuilt = runner.invoke(app, ["rebuild-index"])
    assert rebuilt.exit_code == 0
    assert "Indexed 2 notes" in rebuilt.stdout

    health = runner.invoke(app, ["health", "--json"])
    assert health.exit_code == 0
    assert json.loads(health.stdout)["note_count"] == 2


def test_tag_view_rebuilds_index_on_first_use(vault_env: Path) -> None:
    result = runner.invoke(app, ["view", "tag", "project", "--json"])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["state"] == "idle"
    assert payload["doc"]["view_id"] == "tag:#project"
    assert [node["id"] for node in payload["doc"]["nodes"]] == ["ideas/one.md", "two.md"]
    assert (vault_env / ".lattice" / payload["path"]).is_file()


def test_folder_view_json_uses_parent_alias() -> None:
    result = runner.invoke(app, ["view", "folder", "--json"])

    assert result.exit_code == 0
    nodes = {node["id"]: node for node in json.loads(result.stdout)["doc"]["nodes"]}
    assert nodes["ideas/one.md"]["parentNode"] == "folder:ideas"


def test_empty_tag_is_rejected() -> None:
    result = runner.invoke(app, ["view", "tag", "#"])

    assert result.exit_code == 2
