"""Flat path -> weight selection map with file/directory bookkeeping.

Weights follow one convention everywhere:

- absent: unselected
- ``0``: partially selected directory
- positive: fully selected; the token count for files, ``1`` for directories
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

PARTIAL_WEIGHT = 0
FULL_DIRECTORY_WEIGHT = 1


@dataclass(frozen=True)
class SelectionSnapshot:
    """Immutable copy of a selection map, used by tests and rollback."""

    weights: tuple[tuple[Path, int], ...]
    directories: frozenset[Path]

    def as_dict(self) -> dict[Path, int]:
        return dict(self.weights)


class SelectionMap:
    """Mapping of selected paths to weights.

    Directory entries are summaries of their descendants; file entries are the
    source of truth. The map remembers which keys are directory markers so
    token totals only ever sum file weights.
    """

    def __init__(self) -> None:
        self._weights: dict[Path, int] = {}
        self._directories: set[Path] = set()

    def __contains__(self, path: object) -> bool:
        return path in self._weights

    def __len__(self) -> int:
        return len(self._weights)

    def __iter__(self) -> Iterator[Path]:
        return iter(self._weights)

    def get(self, path: Path, default: int | None = None) -> int | None:
        return self._weights.get(path, default)

    def is_directory(self, path: Path) -> bool:
        return path in self._directories

    def set_file(self, path: Path, weight: int) -> None:
        self._weights[path] = int(weight)
        self._directories.discard(path)

    def set_directory(self, path: Path, weight: int) -> None:
        self._weights[path] = int(weight)
        self._directories.add(path)

    def set_weight(self, path: Path, weight: int | None, *, is_directory: bool) -> None:
        """Write or remove one entry; ``None`` means absent."""
        if weight is None:
            self.discard(path)
        elif is_directory:
            self.set_directory(path, weight)
        else:
            self.set_file(path, weight)

    def discard(self, path: Path) -> bool:
        existed = self._weights.pop(path, None) is not None
        self._directories.discard(path)
        return existed

    def clear(self) -> int:
        count = len(self._weights)
        self._weights.clear()
        self._directories.clear()
        return count

    def items(self) -> list[tuple[Path, int]]:
        return list(self._weights.items())

    def files(self) -> list[Path]:
        return [path for path in self._weights if path not in self._directories]

    def directories(self) -> list[Path]:
        return [path for path in self._weights if path in self._directories]

    def file_items(self) -> list[tuple[Path, int]]:
        return [(path, weight) for path, weight in self._weights.items() if path not in self._directories]

    def descendants_of(self, directory: Path) -> list[Path]:
        """Return every key strictly below ``directory``."""
        return [path for path in self._weights if path != directory and path.is_relative_to(directory)]

    def snapshot(self) -> SelectionSnapshot:
        return SelectionSnapshot(
            weights=tuple(sorted(self._weights.items(), key=lambda item: str(item[0]))),
            directories=frozenset(self._directories),
        )

    def restore(self, snapshot: SelectionSnapshot) -> None:
        self._weights = dict(snapshot.weights)
        self._directories = set(snapshot.directories)


__all__ = [
    "PARTIAL_WEIGHT",
    "FULL_DIRECTORY_WEIGHT",
    "SelectionSnapshot",
    "SelectionMap",
]
