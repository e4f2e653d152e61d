"""Filtered, sorted, expansion-aware projections of the workspace tree.

Nothing here is cached: every call re-lists the filesystem and reads the
session's current selection, search, and exclusion state.
"""

from __future__ import annotations

import locale
import os
from pathlib import Path

from ..file_tree_model.fs import safe_list_entries
from ..search.matching import directory_matches_search, path_matches_search
from ..selection.session import SelectionSession
from .types import TreeNode


def node_sort_key(node: TreeNode) -> tuple[bool, str]:
    """Sort directories before files, then by undecorated name."""
    return (not node.is_dir, locale.strxfrm(node.name))


def _node_for(session: SelectionSession, path: Path, name: str, is_dir: bool, depth: int) -> TreeNode:
    return TreeNode(
        path=path,
        name=name,
        is_dir=is_dir,
        weight=session.selection_weight(path),
        token_count=session.token_count_for(path, is_dir),
        depth=depth,
    )


def node_matches_search(session: SelectionSession, node: TreeNode) -> bool:
    """Keep a node that matches directly, or a directory holding a match."""
    terms = session.search_terms
    if not terms:
        return True
    if not node.is_dir:
        return path_matches_search(session.relative_path(node.path), terms)
    return directory_matches_search(session.filesystem, node.path, session.root, terms, session.rules)


def list_children(
    session: SelectionSession,
    path: str | os.PathLike[str] | None = None,
    depth: int = 1,
) -> list[TreeNode]:
    """List visible children of ``path`` (the workspace root when ``None``)."""
    directory = session.root if path is None else session.resolve_path(path)
    children, scan_error = safe_list_entries(session.filesystem, directory)
    if scan_error is not None:
        return []

    nodes: list[TreeNode] = []
    for child in children:
        child_path = Path(child.path)
        if session.is_excluded(child_path):
            continue
        node = _node_for(session, child_path, child.name, child.is_dir, depth)
        if not node_matches_search(session, node):
            continue
        nodes.append(node)
    nodes.sort(key=node_sort_key)
    return nodes


def root_node(session: SelectionSession) -> TreeNode:
    root = session.root
    return _node_for(session, root, root.name or str(root), True, 0)


def build_visible_nodes(session: SelectionSession) -> tuple[list[TreeNode], set[Path]]:
    """Flatten the tree through expanded directories.

    The root is always open. While a search is active every projected
    directory renders expanded so matches are visible; the session's own
    expanded set is left unchanged. Returns ``(nodes, render_expanded)``.
    """
    render_expanded = set(session.expanded)
    render_expanded.add(session.root)
    forced = bool(session.search_terms)

    nodes: list[TreeNode] = []
    stack: list[TreeNode] = [root_node(session)]
    while stack:
        node = stack.pop()
        nodes.append(node)
        if not node.is_dir:
            continue
        if forced:
            render_expanded.add(node.path)
        if node.path not in render_expanded:
            continue
        children = list_children(session, node.path, node.depth + 1)
        stack.extend(reversed(children))
    return nodes, render_expanded


__all__ = [
    "node_sort_key",
    "node_matches_search",
    "list_children",
    "root_node",
    "build_visible_nodes",
]
