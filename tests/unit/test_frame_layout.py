from lattice_views.models import CanvasNode
from lattice_views.services.frame_layout import (
    ROOT_GROUP_KEY,
    build_frame_layout,
    frame_id_for,
    group_key_for,
)


def _make_child(rel_path: str) -> CanvasNode:
    return CanvasNode(id=rel_path, type="note", data={"title": rel_path})


def test_group_key_for() -> None:
    assert group_key_for("a/x.md", "") == "a"
    assert group_key_for("root.md", "") == ROOT_GROUP_KEY
    assert group_key_for("projects/a/deep/x.md", "projects") == "a"
    assert group_key_for("projects/readme.md", "projects") == ROOT_GROUP_KEY


def test_frame_id_for() -> None:
    assert frame_id_for("", "a") == "folder:a"
    assert frame_id_for("projects", "a") == "folder:projects/a"


def test_files_are_grouped_into_frames() -> None:
    nodes = build_frame_layout("", ["b/z.md", "root.md", "a/y.md", "a/x.md"], _make_child)
    by_id = {node.id: node for node in nodes}

    frames = [node for node in nodes if node.type == "frame"]
    assert [frame.id for frame in frames] == ["folder:a", "folder:b", "folder:__root__"]
    assert [frame.data["title"] for frame in frames] == ["a", "b", "Root"]

    assert by_id["folder:a"].style == {"width": 740, "height": 400}
    assert by_id["folder:b"].style == {"width": 420, "height": 400}
    assert (by_id["folder:a"].position.x, by_id["folder:a"].position.y) == (0, 0)
    assert (by_id["folder:b"].position.x, by_id["folder:b"].position.y) == (820, 0)
    assert (by_id["folder:__root__"].position.x, by_id["folder:__root__"].position.y) == (0, 480)

    assert by_id["a/x.md"].parent_node == "folder:a"
    assert by_id["a/y.md"].parent_node == "folder:a"
    assert by_id["b/z.md"].parent_node == "folder:b"
    assert by_id["root.md"].parent_node == "folder:__root__"
    assert all(by_id[p].extent == "parent" for p in ("a/x.md", "a/y.md", "b/z.md", "root.md"))

    assert (by_id["a/x.md"].position.x, by_id["a/x.md"].position.y) == (50, 60)
    assert (by_id["a/y.md"].position.x, by_id["a/y.md"].position.y) == (370, 60)
    assert (by_id["b/z.md"].position.x, by_id["b/z.md"].position.y) == (50, 60)


def test_frames_do_not_overlap() -> None:
    paths = [f"g{g}/n{i}.md" for g in range(5) for i in range(g * 3 + 1)]
    frames = [node for node in build_frame_layout("", paths, _make_child) if node.type == "frame"]

    for i, a in enumerate(frames):
        for b in frames[i + 1:]:
            ax2 = a.position.x + a.style["width"]
            ay2 = a.position.y + a.style["height"]
            bx2 = b.position.x + b.style["width"]
            by2 = b.position.y + b.style["height"]
            assert ax2 <= b.position.x or bx2 <= a.position.x or ay2 <= b.position.y or by2 <= a.position.y


def test_inner_columns_are_capped() -> None:
    paths = [f"big/n{i:02d}.md" for i in range(25)]
    frame = build_frame_layout("", paths, _make_child)[0]

    assert frame.style["width"] == 50 * 2 + 4 * 320
    assert frame.style["height"] == 60 * 2 + 7 * 280
