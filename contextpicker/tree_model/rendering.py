"""Formatting helpers for projected tree rows."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from .types import STATE_PARTIAL, STATE_SELECTED, TreeNode

CHECKBOX_MARKERS = {
    STATE_SELECTED: "[x]",
    STATE_PARTIAL: "[-]",
}
UNCHECKED_MARKER = "[ ]"

ANSI_HIGHLIGHT = "\033[7;1m"
ANSI_HIGHLIGHT_RESET = "\033[27;22m"


def checkbox_for(node: TreeNode) -> str:
    return CHECKBOX_MARKERS.get(node.selection_state, UNCHECKED_MARKER)


def highlight_terms(text: str, terms: Iterable[str]) -> str:
    """Highlight the first case-insensitive occurrence of the earliest matching term."""
    folded_text = text.casefold()
    best: tuple[int, int] | None = None
    for term in terms:
        if not term:
            continue
        idx = folded_text.find(term.casefold())
        if idx < 0:
            continue
        if best is None or idx < best[0]:
            best = (idx, idx + len(term))
    if best is None:
        return text
    start, end = best
    return text[:start] + ANSI_HIGHLIGHT + text[start:end] + ANSI_HIGHLIGHT_RESET + text[end:]


def format_tree_node(
    node: TreeNode,
    expanded: set[Path] | frozenset[Path],
    search_terms: Iterable[str] = (),
    highlight: bool = False,
) -> str:
    """Render one row as ``"[x] ▾ name/ (N tokens)"``."""
    name = node.name + ("/" if node.is_dir else "")
    if highlight:
        name = highlight_terms(name, search_terms)
    suffix = f" ({node.token_count} tokens)" if node.token_count > 0 else ""
    checkbox = checkbox_for(node)
    if node.is_dir:
        indent = "  " * node.depth
        marker = "▾ " if node.path in expanded else "▸ "
        return f"{indent}{checkbox} {marker}{name}{suffix}"

    # Align file names under the parent directory arrow column.
    indent = "  " * max(0, node.depth - 1)
    return f"{indent}  {checkbox} {name}{suffix}"


def format_tree(
    nodes: Iterable[TreeNode],
    expanded: set[Path] | frozenset[Path],
    search_terms: Iterable[str] = (),
    highlight: bool = False,
) -> str:
    terms = tuple(search_terms)
    return "\n".join(format_tree_node(node, expanded, terms, highlight) for node in nodes)
