"""Tree projection and row formatting.

Defines ``TreeNode`` and the filtered, sorted, expansion-aware views built
from a selection session.
"""

from __future__ import annotations

from .projection import build_visible_nodes, list_children, node_matches_search, node_sort_key, root_node
from .rendering import checkbox_for, format_tree, format_tree_node, highlight_terms
from .types import STATE_PARTIAL, STATE_SELECTED, STATE_UNSELECTED, TreeNode

__all__ = [
    "TreeNode",
    "STATE_SELECTED",
    "STATE_PARTIAL",
    "STATE_UNSELECTED",
    "list_children",
    "build_visible_nodes",
    "node_matches_search",
    "node_sort_key",
    "root_node",
    "checkbox_for",
    "format_tree",
    "format_tree_node",
    "highlight_terms",
]
