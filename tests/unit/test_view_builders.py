import pytest

from lattice_views.models import CanvasEdge, CanvasNode, NoteHit, Position, ViewOptions
from lattice_views.services.builders import (
    build_folder_view_doc,
    build_global_view_doc,
    build_search_view_doc,
    build_tag_view_doc,
)
from lattice_views.services.builders.common import max_right_for_nodes
from lattice_views.services.layout import GRID_GAP, GRID_SIZE

from conftest import FakeIndex, FakeVault


def _by_id(doc):
    return {node.id: node for node in doc.nodes}


@pytest.mark.asyncio
async def test_tag_view_first_build(index, vault) -> None:
    result = await build_tag_view_doc("project", ViewOptions(), None, index=index, vault=vault)

    doc = result.doc
    assert result.changed is True
    assert doc.view_id == "tag:#project"
    assert doc.kind == "tag"
    assert doc.options.limit == 500
    assert [node.id for node in doc.nodes] == ["alpha.md", "beta.md"]
    nodes = _by_id(doc)
    assert nodes["alpha.md"].data["title"] == "Alpha"
    assert nodes["alpha.md"].data["noteId"] == "alpha.md"
    assert "First note body." in nodes["alpha.md"].data["content"]
    assert nodes["beta.md"].data["title"] == "Beta"
    positions = {(node.position.x, node.position.y) for node in doc.nodes}
    assert len(positions) == 2


@pytest.mark.asyncio
async def test_rebuild_without_changes_is_stable(index, vault) -> None:
    first = await build_tag_view_doc("project", ViewOptions(), None, index=index, vault=vault)
    second = await build_tag_view_doc("#project", ViewOptions(), first.doc, index=index, vault=vault)

    assert second.changed is False
    assert second.doc == first.doc


@pytest.mark.asyncio
async def test_existing_positions_are_kept_and_new_nodes_placed_to_the_right(index, vault) -> None:
    first = await build_tag_view_doc("project", ViewOptions(), None, index=index, vault=vault)
    moved = [
        node.model_copy(update={"position": Position(x=120, y=80)}) if node.id == "alpha.md" else node
        for node in first.doc.nodes
    ]
    existing = first.doc.model_copy(update={"nodes": moved})
    vault.files["alpha.md"] = "# Alpha v2\nChanged body."
    index.tags["project"].append(NoteHit(id="gamma.md", title="gamma"))

    result = await build_tag_view_doc("project", ViewOptions(), existing, index=index, vault=vault)

    nodes = _by_id(result.doc)
    assert result.changed is True
    assert (nodes["alpha.md"].position.x, nodes["alpha.md"].position.y) == (120, 80)
    assert nodes["alpha.md"].data["title"] == "Alpha v2"
    assert "Changed body." in nodes["alpha.md"].data["content"]
    assert nodes["beta.md"].position == _by_id(first.doc)["beta.md"].position
    gamma = nodes["gamma.md"]
    assert gamma.position.x >= max_right_for_nodes(moved) + GRID_GAP * 2 - GRID_SIZE
    assert gamma.position.x % GRID_SIZE == 0
    assert gamma.position.y % GRID_SIZE == 0


@pytest.mark.asyncio
async def test_foreign_nodes_survive_and_edges_are_pruned(index, vault) -> None:
    first = await build_tag_view_doc("project", ViewOptions(), None, index=index, vault=vault)
    sticky = CanvasNode(id="sticky", type="text", position={"x": -400, "y": 0}, data={"text": "hi"})
    stale_note = CanvasNode(id="old.md", type="note", data={"title": "Old"})
    existing = first.doc.model_copy(
        update={
            "nodes": [*first.doc.nodes, sticky, stale_note],
            "edges": [
                CanvasEdge(id="e1", source="alpha.md", target="beta.md"),
                CanvasEdge(id="e2", source="alpha.md", target="sticky"),
                CanvasEdge(id="e3", source="alpha.md", target="old.md"),
            ],
        }
    )

    result = await build_tag_view_doc("project", ViewOptions(), existing, index=index, vault=vault)

    nodes = _by_id(result.doc)
    assert nodes["sticky"] == sticky
    assert "old.md" not in nodes
    assert [edge.id for edge in result.doc.edges] == ["e1", "e2"]
    assert result.changed is True


@pytest.mark.asyncio
async def test_existing_card_keeps_layout_fields(index, vault) -> None:
    first = await build_tag_view_doc("project", ViewOptions(), None, index=index, vault=vault)
    styled = [
        node.model_copy(update={"style": {"width": 400}, "data": {**node.data, "color": "red"}})
        for node in first.doc.nodes
    ]
    existing = first.doc.model_copy(update={"nodes": styled})
    vault.files["alpha.md"] = "# Alpha Renamed\nNew body."

    result = await build_tag_view_doc("project", ViewOptions(), existing, index=index, vault=vault)

    alpha = _by_id(result.doc)["alpha.md"]
    assert alpha.style == {"width": 400}
    assert alpha.data["color"] == "red"
    assert alpha.data["title"] == "Alpha Renamed"
    assert "New body." in alpha.data["content"]
    assert alpha.position == _by_id(first.doc)["alpha.md"].position


@pytest.mark.asyncio
async def test_search_view_uses_hit_title_for_unreadable_note(vault) -> None:
    index = FakeIndex(
        searches={
            "alpha": [
                NoteHit(id="alpha.md", title="alpha"),
                NoteHit(id="ghost.md", title="Ghost Hit"),
                NoteHit(id="alpha.md", title="alpha"),
            ]
        }
    )

    result = await build_search_view_doc("  alpha ", ViewOptions(limit=10), None, index=index, vault=vault)

    doc = result.doc
    assert doc.view_id == "search:alpha"
    assert doc.title == "Search: alpha"
    assert doc.options.limit == 10
    assert [node.id for node in doc.nodes] == ["alpha.md", "ghost.md"]
    ghost = _by_id(doc)["ghost.md"]
    assert ghost.data["title"] == "Ghost Hit"
    assert ghost.data["content"] == ""


@pytest.mark.asyncio
async def test_search_view_defaults_limit(vault, index) -> None:
    await build_search_view_doc("alpha", ViewOptions(), None, index=index, vault=vault)

    assert index.last_limit == 200


@pytest.fixture()
def folder_vault() -> FakeVault:
    return FakeVault(
        {
            "a/x.md": "# X",
            "a/y.md": "# Y",
            "b/z.md": "# Z",
            "root.md": "Root note",
            "diagram.png": None,
        }
    )


@pytest.mark.asyncio
async def test_folder_view_first_build_groups_into_frames(folder_vault) -> None:
    result = await build_folder_view_doc("", ViewOptions(), None, vault=folder_vault)

    doc = result.doc
    nodes = _by_id(doc)
    assert doc.view_id == "folder:"
    assert doc.title == "Vault"
    assert doc.options.recursive is True
    assert doc.options.limit == 500
    assert {node.id for node in doc.nodes if node.type == "frame"} == {
        "folder:a",
        "folder:b",
        "folder:__root__",
    }
    assert nodes["a/x.md"].parent_node == "folder:a"
    assert nodes["root.md"].parent_node == "folder:__root__"
    assert nodes["diagram.png"].type == "file"
    assert nodes["diagram.png"].data == {"path": "diagram.png", "title": "diagram.png"}
    assert nodes["diagram.png"].parent_node == "folder:__root__"
    assert nodes["a/x.md"].data["title"] == "X"


@pytest.mark.asyncio
async def test_folder_view_rebuild_keeps_frames_and_places_new_files(folder_vault) -> None:
    first = await build_folder_view_doc("", ViewOptions(), None, vault=folder_vault)

    second = await build_folder_view_doc("", ViewOptions(), first.doc, vault=folder_vault)
    assert second.changed is False

    folder_vault.files["c/new.md"] = "# New"
    third = await build_folder_view_doc("", ViewOptions(), second.doc, vault=folder_vault)

    nodes = _by_id(third.doc)
    assert third.changed is True
    assert nodes["folder:a"] == _by_id(first.doc)["folder:a"]
    assert nodes["c/new.md"].parent_node is None
    assert nodes["c/new.md"].position.x >= max_right_for_nodes(first.doc.nodes)


@pytest.mark.asyncio
async def test_folder_view_drops_removed_files(folder_vault) -> None:
    first = await build_folder_view_doc("", ViewOptions(), None, vault=folder_vault)
    del folder_vault.files["b/z.md"]

    result = await build_folder_view_doc("", ViewOptions(), first.doc, vault=folder_vault)

    nodes = _by_id(result.doc)
    assert "b/z.md" not in nodes
    assert "folder:b" not in nodes
    assert nodes["folder:a"] == _by_id(first.doc)["folder:a"]
    assert result.changed is True


@pytest.mark.asyncio
async def test_folder_view_keeps_user_frames_and_frames_with_children(folder_vault) -> None:
    first = await build_folder_view_doc("", ViewOptions(), None, vault=folder_vault)
    user_frame = CanvasNode(id="frame-notes", type="frame", position={"x": -600, "y": 0})
    sticky = CanvasNode(
        id="sticky", type="text", position={"x": 10, "y": 10}, parentNode="folder:b"
    )
    existing = first.doc.model_copy(update={"nodes": [*first.doc.nodes, user_frame, sticky]})
    del folder_vault.files["b/z.md"]

    result = await build_folder_view_doc("", ViewOptions(), existing, vault=folder_vault)

    nodes = _by_id(result.doc)
    assert "frame-notes" in nodes
    assert "folder:b" in nodes
    assert nodes["sticky"].parent_node == "folder:b"


@pytest.mark.asyncio
async def test_subfolder_view_is_scoped(folder_vault) -> None:
    result = await build_folder_view_doc("a", ViewOptions(recursive=False), None, vault=folder_vault)

    ids = {node.id for node in result.doc.nodes if node.type != "frame"}
    assert ids == {"a/x.md", "a/y.md"}
    assert result.doc.title == "a"
    assert result.doc.options.recursive is False


@pytest.mark.asyncio
async def test_global_view_covers_vault(folder_vault) -> None:
    result = await build_global_view_doc(ViewOptions(), None, vault=folder_vault)

    assert result.doc.view_id == "global"
    assert result.doc.kind == "global"
    assert {"a/x.md", "root.md", "diagram.png"} <= {node.id for node in result.doc.nodes}


@pytest.mark.asyncio
async def test_query_failure_propagates_out_of_builder(index, vault) -> None:
    first = await build_tag_view_doc("project", ViewOptions(), None, index=index, vault=vault)
    index.query_error = RuntimeError("index offline")

    with pytest.raises(RuntimeError, match="index offline"):
        await build_tag_view_doc("project", ViewOptions(), first.doc, index=index, vault=vault)
