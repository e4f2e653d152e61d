"""Per-workspace selection session: the tri-state selection engine.

The session exclusively owns the selection map. Every mutation runs under one
re-entrant lock, re-derives the affected directory entries from file entries,
recomputes directory token totals, and schedules a debounced change
notification for listeners (the rendering surface).
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from ..exclusion import ExclusionRules, is_excluded
from ..file_tree_model.fs import FilesystemAdapter, LocalFilesystem, decode_text
from ..refresh import DEFAULT_REFRESH_DELAY_SECONDS, DebouncedCallback
from ..search.matching import parse_search_terms
from ..tokens import (
    TiktokenCounter,
    TokenCounter,
    ancestor_chain,
    compute_directory_totals,
    total_token_count,
)
from ..transforms import prepare_file_content
from .bulk import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_NO_MATCHES,
    CancellationToken,
    ProgressCallback,
    RollbackJournal,
    SelectionResult,
    SkippedPath,
    describe_os_error,
    normalize_should_cancel,
)
from .derive import WorkspaceScan, rederive_directories, scan_workspace
from .map import FULL_DIRECTORY_WEIGHT, SelectionMap

logger = logging.getLogger(__name__)

READ_BATCH_SIZE = 16
DEFAULT_READ_WORKERS = 8
MIN_FILE_WEIGHT = 1

SelectionListener = Callable[[], None]


def normalize_path(path: str | os.PathLike[str]) -> Path:
    """Return an absolute, normalized path without resolving symlinks."""
    return Path(os.path.normpath(os.path.abspath(os.fspath(path))))


class SelectionSession:
    """Selection, expansion, search, and exclusion state for one workspace."""

    def __init__(
        self,
        root: str | os.PathLike[str],
        *,
        filesystem: FilesystemAdapter | None = None,
        token_counter: TokenCounter | None = None,
        rules: ExclusionRules | None = None,
        minify: bool = False,
        refresh_delay_seconds: float = DEFAULT_REFRESH_DELAY_SECONDS,
        read_workers: int = DEFAULT_READ_WORKERS,
    ) -> None:
        self.root = normalize_path(root)
        self.filesystem = filesystem if filesystem is not None else LocalFilesystem()
        self.token_counter = token_counter if token_counter is not None else TiktokenCounter()
        self.rules = rules if rules is not None else ExclusionRules.defaults()
        self.minify = bool(minify)
        self.read_workers = max(1, int(read_workers))
        self.search_terms: tuple[str, ...] = ()
        self.selection = SelectionMap()
        self._expanded: set[Path] = set()
        self._directory_totals: dict[Path, int] = {}
        self._listeners: list[SelectionListener] = []
        self._lock = threading.RLock()
        self._refresh = DebouncedCallback(self._notify_listeners, refresh_delay_seconds)

    # lifecycle
    def close(self) -> None:
        """Tear down the session; pending notifications are dropped."""
        self._refresh.close()
        with self._lock:
            self._listeners.clear()

    def __enter__(self) -> SelectionSession:
        return self

    def __exit__(self, *_exc_info) -> None:
        self.close()

    def subscribe(self, listener: SelectionListener) -> Callable[[], None]:
        """Register a change listener and return a function that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def refresh(self) -> None:
        """Recompute totals and schedule a debounced listener notification."""
        with self._lock:
            self._recompute_totals()
        self._refresh.trigger()

    def refresh_now(self) -> None:
        """Recompute totals and notify listeners immediately."""
        with self._lock:
            self._recompute_totals()
        self._refresh.cancel()
        self._notify_listeners()

    def flush_refresh(self) -> bool:
        return self._refresh.flush()

    def _notify_listeners(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener()

    # paths
    def resolve_path(self, path: str | os.PathLike[str]) -> Path:
        """Normalize ``path``; relative paths are taken from the workspace root."""
        raw = Path(os.fspath(path))
        if not raw.is_absolute():
            raw = self.root / raw
        normalized = normalize_path(raw)
        if not normalized.is_relative_to(self.root):
            raise ValueError(f"{normalized} is outside workspace {self.root}")
        return normalized

    def relative_path(self, path: Path) -> str:
        if path == self.root:
            return ""
        return path.relative_to(self.root).as_posix()

    def is_excluded(self, path: Path) -> bool:
        return is_excluded(path, self.root, self.rules)

    # inputs
    def set_search_terms(self, text: str | None) -> tuple[str, ...]:
        """Replace search terms from comma-separated input; selections persist."""
        with self._lock:
            self.search_terms = parse_search_terms(text)
            self._rederive_all()
        self.refresh()
        return self.search_terms

    def set_exclusion_rules(self, rules: ExclusionRules) -> None:
        with self._lock:
            self.rules = rules
            self._rederive_all()
        self.refresh()

    def set_minify(self, enabled: bool) -> None:
        """Change minification for files selected from now on."""
        with self._lock:
            self.minify = bool(enabled)
        self.refresh()

    # expansion
    @property
    def expanded(self) -> frozenset[Path]:
        with self._lock:
            return frozenset(self._expanded)

    def is_expanded(self, path: Path) -> bool:
        return path in self._expanded

    def toggle_expanded(self, path: str | os.PathLike[str]) -> bool:
        """Flip expansion of a directory and return the new state."""
        target = self.resolve_path(path)
        with self._lock:
            if target in self._expanded:
                self._expanded.discard(target)
                expanded = False
            else:
                self._expanded.add(target)
                expanded = True
        self._refresh.trigger()
        return expanded

    def set_expanded(self, path: str | os.PathLike[str], expanded: bool) -> None:
        target = self.resolve_path(path)
        with self._lock:
            if expanded:
                self._expanded.add(target)
            else:
                self._expanded.discard(target)
        self._refresh.trigger()

    # queries
    def selection_weight(self, path: Path) -> int | None:
        return self.selection.get(path)

    def is_selected(self, path: str | os.PathLike[str]) -> bool:
        weight = self.selection.get(self.resolve_path(path))
        return weight is not None and weight > 0

    def selected_files(self) -> list[Path]:
        with self._lock:
            return sorted(self.selection.files())

    def selected_paths(self) -> list[Path]:
        with self._lock:
            return sorted(self.selection)

    def directory_token_counts(self) -> dict[Path, int]:
        with self._lock:
            return dict(self._directory_totals)

    def token_count_for(self, path: Path, is_dir: bool) -> int:
        if is_dir:
            return self._directory_totals.get(path, 0)
        if self.selection.is_directory(path):
            return 0
        return self.selection.get(path) or 0

    def get_total_token_count(self) -> int:
        return total_token_count(self._directory_totals, self.root)

    # mutations
    def toggle_selection(
        self,
        path: str | os.PathLike[str],
        is_directory: bool | None = None,
        *,
        should_cancel: Callable[[], bool] | CancellationToken | None = None,
        progress: ProgressCallback | None = None,
    ) -> SelectionResult:
        """Select an unselected/partial path, or deselect a fully selected one."""
        target = self.resolve_path(path)
        if is_directory is None:
            is_directory = (
                target == self.root
                or self.filesystem.is_dir(target)
                or self.selection.is_directory(target)
            )
        with self._lock:
            select = not self.is_selected(target)
            if is_directory:
                if select:
                    return self.select_directory(target, should_cancel=should_cancel, progress=progress)
                return self.deselect_directory(target, should_cancel=should_cancel, progress=progress)
            if select:
                return self.select_file(target)
            return self.deselect_file(target)

    def select_file(self, path: str | os.PathLike[str]) -> SelectionResult:
        target = self.resolve_path(path)
        with self._lock:
            if self.is_excluded(target):
                return SelectionResult(status=STATUS_NO_MATCHES)
            try:
                weight, warning = self._weigh_file(target)
            except OSError as exc:
                logger.info("skipping unreadable file %s: %s", target, exc)
                return SelectionResult(
                    processed=1,
                    total=1,
                    skipped=(SkippedPath(target, describe_os_error(exc)),),
                )
            self.selection.set_file(target, weight)
            self._rederive(ancestor_chain(target, self.root))
            self.refresh()
            return SelectionResult(processed=1, total=1, warnings=(warning,) if warning else ())

    def deselect_file(self, path: str | os.PathLike[str]) -> SelectionResult:
        target = self.resolve_path(path)
        with self._lock:
            self.selection.discard(target)
            self._rederive(ancestor_chain(target, self.root))
            self.refresh()
            return SelectionResult(processed=1, total=1)

    def select_directory(
        self,
        path: str | os.PathLike[str],
        *,
        should_cancel: Callable[[], bool] | CancellationToken | None = None,
        progress: ProgressCallback | None = None,
    ) -> SelectionResult:
        """Select every eligible file below ``path`` as one cancellable bulk operation.

        Without a search, every visible descendant directory (and ``path``)
        is marked fully selected. With a search, only matching files take
        part and a directory without matches is a no-op.
        """
        target = self.resolve_path(path)
        cancel = normalize_should_cancel(should_cancel)
        with self._lock:
            if target != self.root and self.is_excluded(target):
                return SelectionResult(status=STATUS_NO_MATCHES)
            if not self.filesystem.is_dir(target):
                logger.info("cannot select missing directory %s", target)
                return SelectionResult(status=STATUS_NO_MATCHES)
            scan = self._scan(cancel)
            if cancel():
                return SelectionResult(status=STATUS_CANCELLED)
            files = _under(scan.eligible_files, target)
            subtree_dirs = _under(scan.directories, target)
            if self.search_terms and not files:
                logger.info("no files below %s match %s", target, ", ".join(self.search_terms))
                return SelectionResult(status=STATUS_NO_MATCHES)

            journal = RollbackJournal(self.selection)
            result = self._bulk_add(files, journal, cancel, progress)
            if result.cancelled:
                return result

            journal.set_directory(target, FULL_DIRECTORY_WEIGHT)
            if not self.search_terms:
                for directory in subtree_dirs:
                    journal.set_directory(directory, FULL_DIRECTORY_WEIGHT)
            self._rederive([target, *subtree_dirs, *ancestor_chain(target, self.root)], scan)
            self.refresh()
            logger.debug("selected %d file(s) below %s", result.processed, target)
            return result

    def deselect_directory(
        self,
        path: str | os.PathLike[str],
        *,
        should_cancel: Callable[[], bool] | CancellationToken | None = None,
        progress: ProgressCallback | None = None,
    ) -> SelectionResult:
        """Remove files below ``path`` as one cancellable bulk operation.

        Without a search every descendant entry goes, including entries that
        are no longer visible. With a search only matching files go.
        """
        target = self.resolve_path(path)
        cancel = normalize_should_cancel(should_cancel)
        with self._lock:
            scan = self._scan(cancel)
            if cancel():
                return SelectionResult(status=STATUS_CANCELLED)
            files = _under(scan.eligible_files, target)
            subtree_dirs = _under(scan.directories, target)
            if self.search_terms:
                if not files:
                    logger.info("no files below %s match %s", target, ", ".join(self.search_terms))
                    return SelectionResult(status=STATUS_NO_MATCHES)
            else:
                known = set(files)
                stale = [
                    candidate
                    for candidate in self.selection.descendants_of(target)
                    if not self.selection.is_directory(candidate) and candidate not in known
                ]
                files = [*files, *sorted(stale)]

            journal = RollbackJournal(self.selection)
            total = len(files)
            processed = 0
            for file_path in files:
                if cancel():
                    return self._cancelled(journal, processed, total)
                journal.discard(file_path)
                processed += 1
                if progress is not None:
                    progress(processed, total)

            journal.discard(target)
            if not self.search_terms:
                for directory in self.selection.descendants_of(target):
                    journal.discard(directory)
            for directory in ancestor_chain(target, self.root):
                journal.discard(directory)
            self._rederive([target, *subtree_dirs, *ancestor_chain(target, self.root)], scan)
            self.refresh()
            logger.debug("deselected %d file(s) below %s", processed, target)
            return SelectionResult(processed=processed, total=total)

    def deselect_all(self) -> int:
        """Clear the whole selection and return how many entries were removed."""
        with self._lock:
            count = self.selection.clear()
        self.refresh()
        return count

    # internals
    def _scan(self, should_cancel: Callable[[], bool] | None = None) -> WorkspaceScan:
        return scan_workspace(
            self.filesystem,
            self.root,
            self.root,
            self.rules,
            self.search_terms,
            should_cancel=should_cancel,
        )

    def _rederive(self, targets: Iterable[Path], scan: WorkspaceScan | None = None) -> None:
        if scan is None:
            scan = self._scan()
        rederive_directories(
            self.selection,
            [*targets, self.root],
            scan.eligible_files,
            self.root,
            scan.directories,
        )

    def _rederive_all(self) -> None:
        """Re-derive every directory entry against the current search and rules.

        File entries are left alone; markers of directories no longer visible
        are dropped.
        """
        scan = self._scan()
        visible = {self.root, *scan.directories}
        for directory in self.selection.directories():
            if directory not in visible:
                self.selection.discard(directory)
        self._rederive(visible, scan)

    def _recompute_totals(self) -> None:
        self._directory_totals = compute_directory_totals(self.selection, self.root)

    def _weigh_file(self, path: Path) -> tuple[int, str | None]:
        """Read, transform, and count one file; raises ``OSError`` when unreadable."""
        text = decode_text(self.filesystem.read_file(path))
        content, warning = prepare_file_content(text, path.name, self.minify)
        return max(MIN_FILE_WEIGHT, self.token_counter.count(content)), warning

    def _bulk_add(
        self,
        files: list[Path],
        journal: RollbackJournal,
        cancel: Callable[[], bool],
        progress: ProgressCallback | None,
    ) -> SelectionResult:
        """Weigh ``files`` with parallel reads and record them in walk order."""
        total = len(files)
        processed = 0
        skipped: list[SkippedPath] = []
        warnings: list[str] = []
        with ThreadPoolExecutor(
            max_workers=self.read_workers,
            thread_name_prefix="contextpicker-read",
        ) as pool:
            for start in range(0, total, READ_BATCH_SIZE):
                batch = files[start : start + READ_BATCH_SIZE]
                futures: list[Future[tuple[int, str | None]]] = [
                    pool.submit(self._weigh_file, file_path) for file_path in batch
                ]
                for idx, (file_path, future) in enumerate(zip(batch, futures)):
                    if cancel():
                        for pending in futures[idx:]:
                            pending.cancel()
                        return self._cancelled(journal, processed, total)
                    try:
                        weight, warning = future.result()
                    except OSError as exc:
                        logger.info("skipping unreadable file %s: %s", file_path, exc)
                        skipped.append(SkippedPath(file_path, describe_os_error(exc)))
                    else:
                        journal.set_file(file_path, weight)
                        if warning:
                            warnings.append(warning)
                    processed += 1
                    if progress is not None:
                        progress(processed, total)
        return SelectionResult(
            status=STATUS_COMPLETED,
            processed=processed,
            total=total,
            skipped=tuple(skipped),
            warnings=tuple(warnings),
        )

    def _cancelled(self, journal: RollbackJournal, processed: int, total: int) -> SelectionResult:
        restored = journal.rollback()
        logger.info("bulk operation cancelled after %d of %d file(s); restored %d entries", processed, total, restored)
        return SelectionResult(status=STATUS_CANCELLED, processed=processed, total=total)


def _under(paths: Iterable[Path], directory: Path) -> list[Path]:
    return [path for path in paths if path != directory and path.is_relative_to(directory)]


__all__ = [
    "READ_BATCH_SIZE",
    "DEFAULT_READ_WORKERS",
    "MIN_FILE_WEIGHT",
    "SelectionListener",
    "SelectionSession",
    "normalize_path",
]
