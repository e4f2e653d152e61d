"""Case-insensitive substring search over workspace-relative paths."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path

from ..exclusion import ExclusionRules, is_excluded
from ..file_tree_model.fs import FilesystemAdapter, iter_descendants, relative_posix


def parse_search_terms(text: str | None) -> tuple[str, ...]:
    """Split comma-separated input into trimmed lowercase terms (OR semantics)."""
    if not text:
        return ()
    terms: list[str] = []
    for raw in text.split(","):
        term = raw.strip().lower()
        if term and term not in terms:
            terms.append(term)
    return tuple(terms)


def path_matches_search(relative_path: str, terms: Iterable[str]) -> bool:
    """Return whether ``relative_path`` contains any term; empty terms match all."""
    terms = tuple(terms)
    if not terms:
        return True
    folded = relative_path.replace("\\", "/").lower()
    return any(term in folded for term in terms)


def has_matching_descendant(
    filesystem: FilesystemAdapter,
    directory: Path,
    root: Path,
    terms: Iterable[str],
    rules: ExclusionRules | None = None,
    should_cancel: Callable[[], bool] | None = None,
) -> bool:
    """Return whether any visible descendant of ``directory`` matches ``terms``."""
    terms = tuple(terms)
    if not terms:
        return True

    def excluded(candidate: Path) -> bool:
        return rules is not None and is_excluded(candidate, root, rules)

    for path, _is_dir in iter_descendants(
        filesystem,
        directory,
        is_excluded=excluded,
        should_cancel=should_cancel,
    ):
        if path_matches_search(relative_posix(path, root), terms):
            return True
    return False


def directory_matches_search(
    filesystem: FilesystemAdapter,
    directory: Path,
    root: Path,
    terms: Iterable[str],
    rules: ExclusionRules | None = None,
) -> bool:
    """Directories stay visible when they match directly or hold a matching descendant."""
    terms = tuple(terms)
    if path_matches_search(relative_posix(directory, root), terms):
        return True
    return has_matching_descendant(filesystem, directory, root, terms, rules)


__all__ = [
    "parse_search_terms",
    "path_matches_search",
    "has_matching_descendant",
    "directory_matches_search",
]
