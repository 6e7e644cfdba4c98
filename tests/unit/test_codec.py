import json

import pytest

from lattice_views.models import CanvasEdge, CanvasNode, TagViewRef, ViewDocument, ViewOptions
from lattice_views.services.codec import (
    dump_view_doc,
    has_view_doc_changed,
    load_view_doc,
    save_view_doc,
    try_parse_view_doc,
)
from lattice_views.services.identity import view_doc_path


def _doc(**overrides) -> ViewDocument:
    payload = {
        "view_id": "tag:#project",
        "kind": "tag",
        "selector": "#project",
        "title": "#project",
        "options": ViewOptions(limit=50),
        "nodes": [
            CanvasNode(id="a.md", type="note", data={"title": "A", "content": ""}),
            CanvasNode(id="b.md", type="note", position={"x": 240, "y": 0}),
        ],
        "edges": [CanvasEdge(id="e1", source="a.md", target="b.md")],
    }
    payload.update(overrides)
    return ViewDocument(**payload)


@pytest.mark.asyncio
async def test_load_absent_document_returns_none(store) -> None:
    loaded = await load_view_doc(store, TagViewRef(tag="project"))

    assert loaded.doc is None
    assert loaded.path == view_doc_path(TagViewRef(tag="project"))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "raw",
    [
        "{not json",
        json.dumps({"schema_version": 2, "view_id": "x", "kind": "tag", "selector": "", "title": ""}),
        json.dumps({"schema_version": 1, "kind": "tag"}),
        json.dumps({"view_id": "x", "kind": "tag", "selector": "#a", "title": "#a"}),
        json.dumps(
            {"view_id": "x", "kind": "tag", "selector": "#a", "title": "#a", "nodes": [], "edges": []}
        ),
        json.dumps({"schema_version": 1, "view_id": "x", "kind": "tag", "selector": "#a", "title": "#a"}),
        json.dumps(
            {
                "schema_version": 1,
                "view_id": "x",
                "kind": "tag",
                "selector": "#a",
                "title": "#a",
                "nodes": {},
                "edges": [],
            }
        ),
        json.dumps([]),
    ],
)
async def test_load_unusable_document_returns_none(store, raw: str) -> None:
    path = view_doc_path(TagViewRef(tag="project"))
    store.files[path] = raw

    loaded = await load_view_doc(store, TagViewRef(tag="project"))

    assert loaded.doc is None
    assert loaded.path == path


def test_dangling_parent_is_dropped_on_read() -> None:
    raw = json.dumps(
        {
            "schema_version": 1,
            "view_id": "folder:",
            "kind": "folder",
            "selector": "",
            "title": "Vault",
            "nodes": [
                {
                    "id": "a.md",
                    "type": "note",
                    "position": {"x": 50, "y": 60},
                    "data": {},
                    "parentNode": "folder:gone",
                    "extent": "parent",
                }
            ],
            "edges": [],
        }
    )

    doc = try_parse_view_doc(raw)

    assert doc is not None
    assert doc.nodes[0].parent_node is None
    assert doc.nodes[0].extent is None
    assert doc.nodes[0].position.x == 50


def test_transient_keys_are_not_persisted() -> None:
    doc = _doc(
        nodes=[
            CanvasNode(id="a.md", type="note", selected=True, dragging=False),
        ],
        edges=[],
    )

    payload = json.loads(dump_view_doc(doc))

    assert payload["nodes"] == [
        {"id": "a.md", "type": "note", "position": {"x": 0, "y": 0}, "data": {}}
    ]
    assert payload["options"] == {"limit": 50}
    assert payload["schema_version"] == 1


def test_dump_is_byte_stable() -> None:
    assert dump_view_doc(_doc()) == dump_view_doc(_doc())


def test_change_detection_ignores_transient_keys() -> None:
    prev = _doc()
    noisy = [node.model_copy(update={"selected": True}) for node in prev.nodes]

    assert has_view_doc_changed(None, prev.nodes, prev.edges) is True
    assert has_view_doc_changed(prev, prev.nodes, prev.edges) is False
    assert has_view_doc_changed(prev, noisy, prev.edges) is False
    assert has_view_doc_changed(prev, prev.nodes, []) is True


@pytest.mark.asyncio
async def test_saved_document_loads_back(store) -> None:
    path = view_doc_path(TagViewRef(tag="project"))
    await save_view_doc(store, path, _doc())

    loaded = await load_view_doc(store, TagViewRef(tag="#project"))

    assert loaded.doc is not None
    assert dump_view_doc(loaded.doc) == store.files[path]
