"""Directory-name and file-extension exclusion rules.

Excluded entries are invisible to both selection walks and tree projection.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path, PurePath

DEFAULT_EXCLUDE_DIRECTORIES: tuple[str, ...] = (".git", "node_modules")
DEFAULT_EXCLUDE_FILE_TYPES: tuple[str, ...] = (
    # images
    ".jpg",
    ".jpeg",
    ".png",
    ".gif",
    ".bmp",
    ".svg",
    # video
    ".mp4",
    ".avi",
    ".mov",
    ".wmv",
    # audio
    ".mp3",
    ".wav",
    ".ogg",
    # documents
    ".pdf",
    ".doc",
    ".docx",
    ".xls",
    ".xlsx",
    # archives
    ".zip",
    ".rar",
    ".tar",
    ".gz",
    # binaries
    ".exe",
    ".dll",
    ".so",
)


def _clean_items(values: Iterable[str]) -> list[str]:
    """Trim raw list items and drop blanks."""
    cleaned: list[str] = []
    for raw in values:
        if not isinstance(raw, str):
            continue
        stripped = raw.strip()
        if stripped:
            cleaned.append(stripped)
    return cleaned


def split_comma_list(text: str) -> list[str]:
    """Split comma-separated user input into trimmed non-empty items."""
    return _clean_items(text.split(","))


@dataclass(frozen=True)
class ExclusionRules:
    """Excluded directory names (path segments) and file extensions (suffixes).

    ``file_types`` are stored lowercased and compared against the lowercased
    path, leading dot included.
    """

    directories: frozenset[str] = field(default_factory=frozenset)
    file_types: tuple[str, ...] = ()

    @classmethod
    def from_lists(cls, directories: Iterable[str] = (), file_types: Iterable[str] = ()) -> ExclusionRules:
        return cls(
            directories=frozenset(_clean_items(directories)),
            file_types=tuple(dict.fromkeys(item.lower() for item in _clean_items(file_types))),
        )

    @classmethod
    def defaults(cls) -> ExclusionRules:
        return cls.from_lists(DEFAULT_EXCLUDE_DIRECTORIES, DEFAULT_EXCLUDE_FILE_TYPES)

    def is_excluded(self, path: Path, root: Path) -> bool:
        return is_excluded(path, root, self)


def is_excluded(path: Path, root: Path, rules: ExclusionRules) -> bool:
    """Return whether ``path`` is hidden by ``rules``.

    A directory rule matches when any segment of the root-relative path equals
    the configured name. An extension rule matches the lowercased path suffix.
    """
    pure = PurePath(path)
    if rules.directories:
        try:
            parts = pure.relative_to(root).parts
        except ValueError:
            parts = pure.parts
        if any(part in rules.directories for part in parts):
            return True
    if rules.file_types:
        lowered = str(pure).lower()
        if lowered.endswith(rules.file_types):
            return True
    return False


__all__ = [
    "DEFAULT_EXCLUDE_DIRECTORIES",
    "DEFAULT_EXCLUDE_FILE_TYPES",
    "ExclusionRules",
    "is_excluded",
    "split_comma_list",
]
