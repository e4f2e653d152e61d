"""Filesystem adapters and descendant walks used by the selection engine.

Adapters report failures with the builtin ``OSError`` family:
``FileNotFoundError``, ``PermissionError``, ``NotADirectoryError`` and
``IsADirectoryError``. Callers in the engine treat all of them as "skip".
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from pathlib import Path, PurePath

from .types import DirectoryChild

logger = logging.getLogger(__name__)


class FilesystemAdapter:
    """Directory listing and file reading contract consumed by the engine."""

    def list_entries(self, directory: Path) -> list[DirectoryChild]:
        raise NotImplementedError

    def read_file(self, path: Path) -> bytes:
        raise NotImplementedError

    def is_dir(self, path: Path) -> bool:
        raise NotImplementedError


class LocalFilesystem(FilesystemAdapter):
    """Adapter over the real filesystem via ``os.scandir``."""

    def list_entries(self, directory: Path) -> list[DirectoryChild]:
        children: list[DirectoryChild] = []
        with os.scandir(directory) as entries:
            for child in entries:
                try:
                    is_dir = child.is_dir(follow_symlinks=False)
                except OSError:
                    is_dir = False
                children.append(DirectoryChild(name=child.name, path=Path(child.path), is_dir=is_dir))
        return children

    def read_file(self, path: Path) -> bytes:
        return Path(path).read_bytes()

    def is_dir(self, path: Path) -> bool:
        return os.path.isdir(path) and not os.path.islink(path)


class InMemoryFilesystem(FilesystemAdapter):
    """Adapter over a ``{path: bytes}`` mapping; directories are implied by files.

    Paths are kept as given (no resolution), so callers should pass absolute
    normalized paths such as ``Path("/ws/a.txt")``.
    """

    def __init__(self, files: dict[Path, bytes] | None = None, directories: set[Path] | None = None) -> None:
        self._files: dict[Path, bytes] = {}
        self._dirs: set[Path] = set()
        for path, data in (files or {}).items():
            self.write_file(Path(path), data)
        for directory in directories or set():
            self.make_dir(Path(directory))

    def make_dir(self, directory: Path) -> None:
        current = Path(directory)
        while True:
            self._dirs.add(current)
            if current.parent == current:
                break
            current = current.parent

    def write_file(self, path: Path, data: bytes | str) -> None:
        path = Path(path)
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._files[path] = data
        self.make_dir(path.parent)

    def remove(self, path: Path) -> None:
        """Remove a file or a whole directory subtree."""
        path = Path(path)
        self._files.pop(path, None)
        for file_path in [candidate for candidate in self._files if candidate.is_relative_to(path)]:
            del self._files[file_path]
        self._dirs = {candidate for candidate in self._dirs if not candidate.is_relative_to(path)}

    def list_entries(self, directory: Path) -> list[DirectoryChild]:
        directory = Path(directory)
        if directory in self._files:
            raise NotADirectoryError(str(directory))
        if directory not in self._dirs:
            raise FileNotFoundError(str(directory))
        children: list[DirectoryChild] = []
        for candidate in self._dirs:
            if candidate.parent == directory and candidate != directory:
                children.append(DirectoryChild(name=candidate.name, path=candidate, is_dir=True))
        for candidate in self._files:
            if candidate.parent == directory:
                children.append(DirectoryChild(name=candidate.name, path=candidate, is_dir=False))
        return children

    def read_file(self, path: Path) -> bytes:
        path = Path(path)
        if path in self._dirs:
            raise IsADirectoryError(str(path))
        try:
            return self._files[path]
        except KeyError:
            raise FileNotFoundError(str(path)) from None

    def is_dir(self, path: Path) -> bool:
        return Path(path) in self._dirs


def decode_text(data: bytes) -> str:
    """Decode file bytes using tolerant encoding fallback order.

    Attempts UTF-8, UTF-8 with BOM, then latin-1.
    """
    for encoding in ("utf-8", "utf-8-sig", "latin-1"):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    return data.decode("utf-8", errors="replace")


def safe_list_entries(filesystem: FilesystemAdapter, directory: Path) -> tuple[list[DirectoryChild], OSError | None]:
    """List ``directory`` children, returning ``(children, scan_error)``.

    ``scan_error`` is set (and ``children`` empty) when the directory vanished
    or cannot be read.
    """
    try:
        return filesystem.list_entries(directory), None
    except OSError as exc:
        logger.debug("cannot list %s: %s", directory, exc)
        return [], exc


def relative_posix(path: Path, root: Path) -> str:
    """Return ``path`` relative to ``root`` in POSIX form ("" for the root itself)."""
    try:
        relative = PurePath(path).relative_to(root)
    except ValueError:
        relative = PurePath(path)
    text = relative.as_posix()
    return "" if text == "." else text


def iter_descendants(
    filesystem: FilesystemAdapter,
    directory: Path,
    *,
    is_excluded: Callable[[Path], bool] | None = None,
    should_cancel: Callable[[], bool] | None = None,
) -> Iterator[tuple[Path, bool]]:
    """Yield ``(path, is_dir)`` for every visible descendant of ``directory``.

    Uses an explicit worklist so deep trees never hit the recursion limit.
    Siblings are visited in name order and subdirectories depth first.
    Unreadable directories contribute nothing. ``should_cancel`` is polled
    before each directory scan.
    """
    stack: list[Path] = [Path(directory)]
    while stack:
        if should_cancel is not None and should_cancel():
            return
        current = stack.pop()
        children, scan_error = safe_list_entries(filesystem, current)
        if scan_error is not None:
            continue
        children.sort(key=lambda item: item.name)
        pending_dirs: list[Path] = []
        for child in children:
            if is_excluded is not None and is_excluded(child.path):
                continue
            yield child.path, child.is_dir
            if child.is_dir:
                pending_dirs.append(child.path)
        stack.extend(reversed(pending_dirs))


__all__ = [
    "FilesystemAdapter",
    "LocalFilesystem",
    "InMemoryFilesystem",
    "decode_text",
    "safe_list_entries",
    "relative_posix",
    "iter_descendants",
]
