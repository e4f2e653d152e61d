"""Tri-state derivation of directory entries from file entries.

A directory is fully selected when every eligible file below it is present,
partially selected when anything below it is present, and absent otherwise.
A directory without eligible files is full when all of its child directories
are; a leaf without eligible files keeps an existing full marker, which is
how an empty directory stays selected.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from ..exclusion import ExclusionRules, is_excluded
from ..file_tree_model.fs import FilesystemAdapter, iter_descendants, relative_posix
from ..search.matching import path_matches_search
from ..tokens import ancestor_chain
from .map import FULL_DIRECTORY_WEIGHT, PARTIAL_WEIGHT, SelectionMap


@dataclass
class DirectoryCounts:
    eligible: int = 0
    selected: int = 0


@dataclass(frozen=True)
class WorkspaceScan:
    """Visible directories and eligible files found under one walk root."""

    eligible_files: tuple[Path, ...]
    directories: tuple[Path, ...]


def scan_workspace(
    filesystem: FilesystemAdapter,
    directory: Path,
    root: Path,
    rules: ExclusionRules,
    terms: tuple[str, ...],
    should_cancel: Callable[[], bool] | None = None,
) -> WorkspaceScan:
    """Walk ``directory`` and split descendants into eligible files and directories.

    Eligible files are not excluded and, when ``terms`` is non-empty, match
    the search. Directories are listed whether or not they match.
    """
    files: list[Path] = []
    dirs: list[Path] = []
    for path, is_dir in iter_descendants(
        filesystem,
        directory,
        is_excluded=lambda candidate: is_excluded(candidate, root, rules),
        should_cancel=should_cancel,
    ):
        if is_dir:
            dirs.append(path)
        elif path_matches_search(relative_posix(path, root), terms):
            files.append(path)
    return WorkspaceScan(eligible_files=tuple(files), directories=tuple(dirs))


def count_eligible_files(
    eligible_files: Iterable[Path],
    selection: SelectionMap,
    root: Path,
) -> dict[Path, DirectoryCounts]:
    """Count eligible and selected eligible files for every ancestor directory."""
    counts: dict[Path, DirectoryCounts] = {}
    for file_path in eligible_files:
        present = file_path in selection and not selection.is_directory(file_path)
        for directory in ancestor_chain(file_path, root):
            entry = counts.get(directory)
            if entry is None:
                entry = DirectoryCounts()
                counts[directory] = entry
            entry.eligible += 1
            if present:
                entry.selected += 1
    return counts


def derive_directory_weight(
    counts: DirectoryCounts | None,
    has_present_descendant: bool,
    current_weight: int | None,
    children_full: bool | None = None,
) -> int | None:
    """Return the weight a directory should carry (``None`` for absent).

    ``children_full`` is ``None`` for a directory without visible child
    directories; otherwise it says whether every child directory is full.
    """
    eligible = counts.eligible if counts is not None else 0
    selected = counts.selected if counts is not None else 0
    if eligible and selected == eligible:
        return FULL_DIRECTORY_WEIGHT
    if not eligible:
        if children_full is None and current_weight == FULL_DIRECTORY_WEIGHT:
            return FULL_DIRECTORY_WEIGHT
        if children_full:
            return FULL_DIRECTORY_WEIGHT
    if selected or has_present_descendant:
        return PARTIAL_WEIGHT
    return None


def rederive_directories(
    selection: SelectionMap,
    targets: Iterable[Path],
    eligible_files: Iterable[Path],
    root: Path,
    directories: Iterable[Path] = (),
) -> None:
    """Re-derive ``targets`` bottom-up from the file entries in ``selection``.

    ``directories`` lists the visible directories; a target without eligible
    files is full when all of its visible child directories are. Deeper
    directories are derived first so a parent sees the final state of its
    children.
    """
    target_list = sorted(set(targets), key=lambda item: len(item.parts), reverse=True)
    target_set = set(target_list)
    counts = count_eligible_files(eligible_files, selection, root)

    children: dict[Path, list[Path]] = {}
    for directory in directories:
        if directory.parent in target_set and directory != root:
            children.setdefault(directory.parent, []).append(directory)

    present_below: set[Path] = set()
    for path in selection:
        if path in target_set:
            continue
        present_below.update(ancestor_chain(path, root))

    for directory in target_list:
        child_dirs = children.get(directory)
        children_full = None
        if child_dirs:
            children_full = all(selection.get(child) == FULL_DIRECTORY_WEIGHT for child in child_dirs)
        weight = derive_directory_weight(
            counts.get(directory),
            directory in present_below,
            selection.get(directory) if selection.is_directory(directory) else None,
            children_full,
        )
        selection.set_weight(directory, weight, is_directory=True)
        if weight is not None:
            present_below.update(ancestor_chain(directory, root))


__all__ = [
    "DirectoryCounts",
    "WorkspaceScan",
    "scan_workspace",
    "count_eligible_files",
    "derive_directory_weight",
    "rederive_directories",
]
