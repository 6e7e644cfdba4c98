"""View builders: query a collaborator, reconcile, report whether anything changed."""

from .common import PrimaryNode, build_primary_file_node, build_primary_note_node
from .folder_view import build_folder_view_doc, build_global_view_doc
from .list_view import reconcile_view_doc
from .search_view import build_search_view_doc
from .tag_view import build_tag_view_doc

__all__ = [
    "PrimaryNode",
    "build_primary_note_node",
    "build_primary_file_node",
    "reconcile_view_doc",
    "build_folder_view_doc",
    "build_global_view_doc",
    "build_tag_view_doc",
    "build_search_view_doc",
]
