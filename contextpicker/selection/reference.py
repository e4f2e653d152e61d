"""Brute-force recomputation of directory entries from file entries.

Used to check the incremental engine: after any sequence of operations the
session's map should equal ``recompute_selection`` applied to it. The walk
here is a plain recursion over directory listings and shares no derivation
code with the engine.
"""

from __future__ import annotations

from pathlib import Path

from ..exclusion import ExclusionRules, is_excluded
from ..file_tree_model.fs import FilesystemAdapter, relative_posix, safe_list_entries
from ..search.matching import path_matches_search
from .map import FULL_DIRECTORY_WEIGHT, PARTIAL_WEIGHT, SelectionMap, SelectionSnapshot


def recompute_selection(
    selection: SelectionMap,
    filesystem: FilesystemAdapter,
    root: Path,
    rules: ExclusionRules,
    terms: tuple[str, ...] = (),
) -> SelectionSnapshot:
    """Return the map ``selection`` should hold, derived from scratch.

    File entries are kept as they are. For every visible directory:

    - with eligible files below it, it is full iff all of them are selected
    - without eligible files but with child directories, it is full iff
      every child directory is full
    - a leaf without eligible files is full iff it already carries a full
      marker (the only record of a selected empty directory)

    Otherwise it is partial iff any file entry or child directory below it is
    present. Markers of directories that are no longer visible are dropped.
    """
    file_weights = dict(selection.file_items())
    rebuilt = SelectionMap()
    for path, weight in file_weights.items():
        rebuilt.set_file(path, weight)

    def visit(directory: Path) -> tuple[int | None, int, bool]:
        """Return ``(weight, eligible_count, every_eligible_selected)``."""
        children, scan_error = safe_list_entries(filesystem, directory)
        if scan_error is not None:
            children = []
        eligible = 0
        all_selected = True
        child_weights: list[int | None] = []
        for child in sorted(children, key=lambda item: item.name):
            if is_excluded(child.path, root, rules):
                continue
            if child.is_dir:
                weight, count, child_all_selected = visit(child.path)
                child_weights.append(weight)
                eligible += count
                all_selected = all_selected and child_all_selected
            elif path_matches_search(relative_posix(child.path, root), terms):
                eligible += 1
                all_selected = all_selected and child.path in file_weights

        if eligible:
            full = all_selected
        elif child_weights:
            full = all(weight == FULL_DIRECTORY_WEIGHT for weight in child_weights)
        else:
            full = selection.is_directory(directory) and selection.get(directory) == FULL_DIRECTORY_WEIGHT

        if full:
            weight = FULL_DIRECTORY_WEIGHT
        elif any(weight is not None for weight in child_weights) or any(
            path != directory and path.is_relative_to(directory) for path in file_weights
        ):
            weight = PARTIAL_WEIGHT
        else:
            weight = None
        if weight is not None:
            rebuilt.set_directory(directory, weight)
        return weight, eligible, all_selected

    visit(root)
    return rebuilt.snapshot()


def recompute_session(session) -> SelectionSnapshot:
    """Convenience wrapper running ``recompute_selection`` on a session's state."""
    return recompute_selection(
        session.selection,
        session.filesystem,
        session.root,
        session.rules,
        session.search_terms,
    )


__all__ = [
    "recompute_selection",
    "recompute_session",
]
