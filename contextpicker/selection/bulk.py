"""Cancellation, progress, and rollback primitives for bulk selection changes."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from .map import SelectionMap

STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
STATUS_NO_MATCHES = "no_matches"

ProgressCallback = Callable[[int, int], None]


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and a bulk operation."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def __call__(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True)
class SkippedPath:
    """A file left out of an operation because it could not be read."""

    path: Path
    reason: str


@dataclass(frozen=True)
class SelectionResult:
    """Outcome of one selection-changing operation.

    ``processed`` counts files applied before completion or before the
    cancellation signal was observed; ``total`` is the number of candidates.
    """

    status: str = STATUS_COMPLETED
    processed: int = 0
    total: int = 0
    skipped: tuple[SkippedPath, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def completed(self) -> bool:
        return self.status == STATUS_COMPLETED

    @property
    def cancelled(self) -> bool:
        return self.status == STATUS_CANCELLED

    @property
    def no_matches(self) -> bool:
        return self.status == STATUS_NO_MATCHES


@dataclass
class RollbackJournal:
    """Prior state of every key written during one bulk operation.

    Only the first write of a key is journaled, so ``rollback`` restores the
    state from before the operation and leaves untouched keys alone.
    """

    selection: SelectionMap
    _prior: dict[Path, tuple[int | None, bool]] = field(default_factory=dict)

    def _remember(self, path: Path) -> None:
        if path in self._prior:
            return
        self._prior[path] = (self.selection.get(path), self.selection.is_directory(path))

    def set_file(self, path: Path, weight: int) -> None:
        self._remember(path)
        self.selection.set_file(path, weight)

    def set_directory(self, path: Path, weight: int) -> None:
        self._remember(path)
        self.selection.set_directory(path, weight)

    def discard(self, path: Path) -> None:
        self._remember(path)
        self.selection.discard(path)

    def rollback(self) -> int:
        """Restore every journaled key and return how many were restored."""
        for path, (weight, was_directory) in self._prior.items():
            self.selection.set_weight(path, weight, is_directory=was_directory)
        restored = len(self._prior)
        self._prior.clear()
        return restored


def normalize_should_cancel(
    should_cancel: Callable[[], bool] | CancellationToken | None,
) -> Callable[[], bool]:
    """Return a cancellation predicate, defaulting to "never cancel"."""
    if should_cancel is None:
        return lambda: False
    return should_cancel


def describe_os_error(exc: OSError) -> str:
    """Short reason text for a skipped path."""
    if isinstance(exc, FileNotFoundError):
        return "not found"
    if isinstance(exc, PermissionError):
        return "permission denied"
    if isinstance(exc, IsADirectoryError):
        return "is a directory"
    return exc.strerror or str(exc)


__all__ = [
    "STATUS_COMPLETED",
    "STATUS_CANCELLED",
    "STATUS_NO_MATCHES",
    "ProgressCallback",
    "CancellationToken",
    "SkippedPath",
    "SelectionResult",
    "RollbackJournal",
    "describe_os_error",
    "normalize_should_cancel",
]
