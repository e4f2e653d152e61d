"""Tests for the tri-state selection engine.

Covers file/directory toggles, ancestor derivation, token totals,
search-scoped bulk operations, and cancellation rollback.
"""

from __future__ import annotations

import random
import threading
import unittest
from pathlib import Path

from contextpicker.exclusion import ExclusionRules
from contextpicker.file_tree_model import InMemoryFilesystem
from contextpicker.selection import (
    STATUS_CANCELLED,
    STATUS_NO_MATCHES,
    CancellationToken,
    SelectionSession,
    recompute_session,
)
from contextpicker.tokens import CallableTokenCounter

ROOT = Path("/ws")
SRC = ROOT / "src"
LIB = SRC / "lib"
A_PY = SRC / "a.py"
B_PY = SRC / "b.py"
C_PY = LIB / "c.py"
README = ROOT / "README.md"
EMPTY = ROOT / "empty"


def word_counter() -> CallableTokenCounter:
    return CallableTokenCounter(lambda text: len(text.split()))


def workspace_fs() -> InMemoryFilesystem:
    return InMemoryFilesystem(
        {
            A_PY: "one two",
            B_PY: "one two three",
            C_PY: "x",
            README: "hello world",
            ROOT / "node_modules" / "pkg" / "index.js": "ignored entirely",
        },
        directories={EMPTY},
    )


class UnreadableFilesystem(InMemoryFilesystem):
    def __init__(self, *args, unreadable: set[Path], **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.unreadable = unreadable

    def read_file(self, path: Path) -> bytes:
        if Path(path) in self.unreadable:
            raise PermissionError(13, "Permission denied", str(path))
        return super().read_file(path)


class SelectionSessionTestCase(unittest.TestCase):
    def make_session(self, fs: InMemoryFilesystem | None = None, **kwargs) -> SelectionSession:
        session = SelectionSession(
            ROOT,
            filesystem=fs if fs is not None else workspace_fs(),
            token_counter=word_counter(),
            refresh_delay_seconds=kwargs.pop("refresh_delay_seconds", 60.0),
            **kwargs,
        )
        self.addCleanup(session.close)
        return session

    def assertMatchesReference(self, session: SelectionSession) -> None:
        self.assertEqual(session.selection.snapshot(), recompute_session(session))


class FileSelectionTests(SelectionSessionTestCase):
    def test_selecting_file_records_token_weight_and_partial_root(self) -> None:
        session = self.make_session()

        result = session.toggle_selection("README.md")

        self.assertTrue(result.completed)
        self.assertEqual(session.selection_weight(README), 2)
        self.assertEqual(session.selection_weight(ROOT), 0)
        self.assertIsNone(session.selection_weight(SRC))
        self.assertEqual(session.get_total_token_count(), 2)
        self.assertMatchesReference(session)

    def test_toggle_twice_restores_empty_map(self) -> None:
        session = self.make_session()

        session.toggle_selection(A_PY)
        session.toggle_selection(A_PY)

        self.assertEqual(len(session.selection), 0)
        self.assertEqual(session.get_total_token_count(), 0)

    def test_only_file_of_directory_marks_ancestors(self) -> None:
        session = self.make_session()

        session.select_file(C_PY)

        self.assertEqual(session.selection_weight(LIB), 1)
        self.assertEqual(session.selection_weight(SRC), 0)
        self.assertEqual(session.selection_weight(ROOT), 0)
        self.assertTrue(session.is_selected(LIB))
        self.assertFalse(session.is_selected(SRC))

    def test_zero_token_file_counts_as_one(self) -> None:
        fs = workspace_fs()
        fs.write_file(ROOT / "blank.txt", "")
        session = self.make_session(fs)

        session.select_file(ROOT / "blank.txt")

        self.assertEqual(session.selection_weight(ROOT / "blank.txt"), 1)

    def test_excluded_file_is_not_selectable(self) -> None:
        session = self.make_session()

        result = session.select_file(ROOT / "node_modules" / "pkg" / "index.js")

        self.assertEqual(result.status, STATUS_NO_MATCHES)
        self.assertEqual(len(session.selection), 0)

    def test_unreadable_file_is_skipped(self) -> None:
        session = self.make_session(UnreadableFilesystem(unreadable={A_PY}))
        session.filesystem.write_file(A_PY, "secret")

        result = session.select_file(A_PY)

        self.assertEqual([skipped.path for skipped in result.skipped], [A_PY])
        self.assertEqual(result.skipped[0].reason, "permission denied")
        self.assertNotIn(A_PY, session.selection)

    def test_paths_outside_workspace_are_rejected(self) -> None:
        session = self.make_session()

        with self.assertRaises(ValueError):
            session.toggle_selection("../elsewhere.txt")

    def test_minify_reduces_recorded_weight(self) -> None:
        fs = workspace_fs()
        fs.write_file(ROOT / "m.py", "x = 1  # some comment\n")
        plain = self.make_session(fs)
        minified = self.make_session(fs, minify=True)

        plain.select_file(ROOT / "m.py")
        minified.select_file(ROOT / "m.py")

        self.assertEqual(plain.selection_weight(ROOT / "m.py"), 6)
        self.assertEqual(minified.selection_weight(ROOT / "m.py"), 3)


class DirectorySelectionTests(SelectionSessionTestCase):
    def test_selecting_directory_selects_every_visible_descendant(self) -> None:
        session = self.make_session()

        result = session.toggle_selection(SRC)

        self.assertTrue(result.completed)
        self.assertEqual((result.processed, result.total), (3, 3))
        self.assertEqual(session.selected_files(), [A_PY, B_PY, C_PY])
        self.assertEqual(session.selection_weight(SRC), 1)
        self.assertEqual(session.selection_weight(LIB), 1)
        self.assertEqual(session.selection_weight(ROOT), 0)
        self.assertEqual(session.directory_token_counts()[SRC], 6)
        self.assertEqual(session.directory_token_counts()[LIB], 1)
        self.assertEqual(session.token_count_for(SRC, True), 6)
        self.assertEqual(session.token_count_for(A_PY, False), 2)
        self.assertMatchesReference(session)

    def test_selecting_directory_twice_is_idempotent(self) -> None:
        session = self.make_session()

        session.select_directory(SRC)
        first = session.selection.snapshot()
        session.select_directory(SRC)

        self.assertEqual(session.selection.snapshot(), first)

    def test_partial_directory_toggle_selects_rest(self) -> None:
        session = self.make_session()
        session.select_file(A_PY)
        self.assertEqual(session.selection_weight(SRC), 0)

        session.toggle_selection(SRC)

        self.assertEqual(session.selection_weight(SRC), 1)
        self.assertEqual(session.selected_files(), [A_PY, B_PY, C_PY])

    def test_individual_selections_add_up_to_full_directory(self) -> None:
        session = self.make_session()

        session.select_file(A_PY)
        session.select_file(B_PY)
        session.select_directory(LIB)

        self.assertEqual(session.selection_weight(SRC), 1)
        self.assertMatchesReference(session)

    def test_deselecting_file_in_full_directory_makes_it_partial(self) -> None:
        session = self.make_session()
        session.select_directory(SRC)

        session.toggle_selection(A_PY)

        self.assertEqual(session.selection_weight(SRC), 0)
        self.assertEqual(session.selection_weight(LIB), 1)
        self.assertEqual(session.directory_token_counts()[SRC], 4)
        self.assertMatchesReference(session)

    def test_full_root_toggle_clears_everything(self) -> None:
        session = self.make_session()
        session.select_directory(ROOT)
        self.assertEqual(session.selection_weight(ROOT), 1)
        self.assertEqual(session.selection_weight(EMPTY), 1)

        session.toggle_selection(ROOT)

        self.assertEqual(len(session.selection), 0)

    def test_excluded_or_missing_directory_is_no_match(self) -> None:
        session = self.make_session()

        self.assertEqual(session.select_directory(ROOT / "node_modules").status, STATUS_NO_MATCHES)
        self.assertEqual(session.select_directory(ROOT / "missing").status, STATUS_NO_MATCHES)
        self.assertEqual(len(session.selection), 0)

    def test_unreadable_file_leaves_directory_partial(self) -> None:
        fs = UnreadableFilesystem(unreadable={B_PY})
        for path, text in ((A_PY, "one two"), (B_PY, "one two three"), (C_PY, "x")):
            fs.write_file(path, text)
        session = self.make_session(fs)

        result = session.select_directory(SRC)

        self.assertTrue(result.completed)
        self.assertEqual([skipped.path for skipped in result.skipped], [B_PY])
        self.assertEqual(session.selected_files(), [A_PY, C_PY])
        self.assertEqual(session.selection_weight(SRC), 0)

    def test_deselect_all_reports_removed_entries(self) -> None:
        session = self.make_session()
        session.select_directory(SRC)

        removed = session.deselect_all()

        self.assertEqual(removed, 6)
        self.assertEqual(session.selected_paths(), [])
        self.assertEqual(session.get_total_token_count(), 0)

    def test_toggling_vanished_directory_deselects_its_files(self) -> None:
        fs = InMemoryFilesystem({ROOT / "d" / "x.txt": "one"})
        session = self.make_session(fs)
        session.select_directory(ROOT / "d")
        fs.remove(ROOT / "d")

        result = session.toggle_selection(ROOT / "d")

        self.assertTrue(result.completed)
        self.assertEqual(session.selected_paths(), [])
        self.assertEqual(session.get_total_token_count(), 0)

    def test_full_empty_subdirectory_makes_parent_full(self) -> None:
        session = self.make_session(InMemoryFilesystem({}, directories={ROOT / "d" / "e"}))

        session.toggle_selection(ROOT / "d" / "e")

        self.assertEqual(session.selection_weight(ROOT / "d"), 1)
        self.assertEqual(session.selection_weight(ROOT), 1)
        self.assertMatchesReference(session)

        session.toggle_selection(ROOT / "d" / "e")

        self.assertEqual(session.selected_paths(), [])

    def test_operation_sequence_matches_reference_derivation(self) -> None:
        session = self.make_session()

        session.select_file(README)
        session.select_directory(SRC)
        self.assertEqual(session.selection_weight(ROOT), 1)
        session.deselect_file(C_PY)
        self.assertMatchesReference(session)
        session.select_directory(LIB)
        session.deselect_file(A_PY)
        self.assertMatchesReference(session)
        session.toggle_selection(ROOT)
        self.assertMatchesReference(session)
        self.assertEqual(session.selection_weight(ROOT), 1)
        session.toggle_selection(ROOT)
        self.assertEqual(len(session.selection), 0)


class SearchScopedSelectionTests(SelectionSessionTestCase):
    def test_search_select_only_takes_matching_files(self) -> None:
        session = self.make_session()
        session.set_search_terms("a.py")

        result = session.select_directory(SRC)

        self.assertTrue(result.completed)
        self.assertEqual(session.selected_files(), [A_PY])
        self.assertEqual(session.selection_weight(SRC), 1)
        self.assertIsNone(session.selection_weight(LIB))
        self.assertMatchesReference(session)

    def test_search_without_matches_is_a_no_op(self) -> None:
        session = self.make_session()
        session.select_file(README)
        before = session.selection.snapshot()
        session.set_search_terms("zzz")

        result = session.select_directory(SRC)

        self.assertEqual(result.status, STATUS_NO_MATCHES)
        self.assertEqual(session.selection.snapshot(), before)

    def test_search_deselect_keeps_non_matching_files(self) -> None:
        session = self.make_session()
        session.select_directory(SRC)
        session.set_search_terms("a.py")

        session.deselect_directory(SRC)

        self.assertEqual(session.selected_files(), [B_PY, C_PY])
        self.assertEqual(session.selection_weight(SRC), 0)
        self.assertEqual(session.selection_weight(LIB), 1)

    def test_clearing_search_rederives_directories_from_files(self) -> None:
        foo = ROOT / "d" / "foo.txt"
        bar = ROOT / "d" / "bar.txt"
        session = self.make_session(InMemoryFilesystem({foo: "one", bar: "two"}))
        session.set_search_terms("foo")
        session.toggle_selection(ROOT / "d")
        self.assertEqual(session.selection_weight(ROOT / "d"), 1)

        session.set_search_terms("")

        self.assertEqual(session.selection_weight(ROOT / "d"), 0)
        self.assertEqual(session.selection_weight(ROOT), 0)
        self.assertMatchesReference(session)

        before = session.selection.snapshot()
        session.toggle_selection(foo)
        session.toggle_selection(foo)
        self.assertEqual(session.selection.snapshot(), before)

        session.toggle_selection(ROOT / "d")
        self.assertEqual(session.selected_files(), [bar, foo])

    def test_changing_exclusions_rederives_directories(self) -> None:
        session = self.make_session()
        session.select_directory(SRC)

        session.set_exclusion_rules(ExclusionRules.from_lists(["lib"], []))

        self.assertIsNone(session.selection_weight(LIB))
        self.assertEqual(session.selection_weight(SRC), 1)
        self.assertMatchesReference(session)

    def test_selections_survive_search_changes(self) -> None:
        session = self.make_session()
        session.select_file(README)

        session.set_search_terms("src")
        session.set_search_terms("")

        self.assertEqual(session.selected_files(), [README])


class CancellationTests(SelectionSessionTestCase):
    def test_cancelled_select_restores_prior_map(self) -> None:
        session = self.make_session()
        session.select_file(README)
        before = session.selection.snapshot()
        token = CancellationToken()

        def progress(processed: int, total: int) -> None:
            if processed == 2:
                token.cancel()

        result = session.select_directory(SRC, should_cancel=token, progress=progress)

        self.assertEqual(result.status, STATUS_CANCELLED)
        self.assertEqual(result.processed, 2)
        self.assertEqual(session.selection.snapshot(), before)
        self.assertEqual(session.get_total_token_count(), 2)

    def test_cancelled_deselect_restores_prior_map(self) -> None:
        session = self.make_session()
        session.select_directory(SRC)
        before = session.selection.snapshot()
        calls = {"count": 0}

        def should_cancel() -> bool:
            calls["count"] += 1
            return calls["count"] > 6

        result = session.deselect_directory(SRC, should_cancel=should_cancel)

        self.assertTrue(result.cancelled)
        self.assertGreater(result.processed, 0)
        self.assertLess(result.processed, result.total)
        self.assertEqual(session.selection.snapshot(), before)

    def test_cancel_before_start_changes_nothing(self) -> None:
        session = self.make_session()
        token = CancellationToken()
        token.cancel()

        result = session.select_directory(ROOT, should_cancel=token)

        self.assertTrue(result.cancelled)
        self.assertEqual(len(session.selection), 0)


def generated_workspace(seed: int) -> InMemoryFilesystem:
    """A small random tree with nested, empty, and excluded entries."""
    rng = random.Random(seed)
    directories = [ROOT]
    for index in range(rng.randint(3, 6)):
        directories.append(rng.choice(directories) / f"dir{index}")
    files: dict[Path, str] = {ROOT / "node_modules" / "pkg" / "index.js": "ignored"}
    for directory in directories:
        for index in range(rng.randint(0, 3)):
            stem = rng.choice(["alpha", "beta", "gamma"])
            suffix = rng.choice([".py", ".txt", ".png"])
            files[directory / f"{stem}{index}{suffix}"] = " ".join(["w"] * rng.randint(0, 4))
    return InMemoryFilesystem(files, directories=set(directories))


def workspace_paths(fs: InMemoryFilesystem) -> list[Path]:
    paths = [ROOT]
    pending = [ROOT]
    while pending:
        for child in fs.list_entries(pending.pop()):
            paths.append(child.path)
            if child.is_dir:
                pending.append(child.path)
    return sorted(paths)


class ReferenceComparisonTests(SelectionSessionTestCase):
    SEEDS = range(8)
    SEARCHES = ("", "", "alpha", "beta,.txt", "dir1", "zzz")

    def test_random_toggles_match_reference_on_generated_trees(self) -> None:
        for seed in self.SEEDS:
            with self.subTest(seed=seed):
                rng = random.Random(1000 + seed)
                fs = generated_workspace(seed)
                paths = workspace_paths(fs)
                session = self.make_session(fs)
                for step in range(40):
                    if rng.random() < 0.2:
                        session.set_search_terms(rng.choice(self.SEARCHES))
                    else:
                        session.toggle_selection(rng.choice(paths))
                    self.assertEqual(
                        session.selection.snapshot(),
                        recompute_session(session),
                        f"seed {seed}, step {step}",
                    )

    def test_toggling_a_file_twice_restores_the_map(self) -> None:
        for seed in self.SEEDS:
            with self.subTest(seed=seed):
                rng = random.Random(2000 + seed)
                fs = generated_workspace(seed)
                paths = workspace_paths(fs)
                session = self.make_session(fs)
                for _ in range(10):
                    session.toggle_selection(rng.choice(paths))
                files = [path for path in paths if not fs.is_dir(path) and not session.is_excluded(path)]
                for file_path in files:
                    before = session.selection.snapshot()
                    session.toggle_selection(file_path)
                    session.toggle_selection(file_path)
                    self.assertEqual(session.selection.snapshot(), before, str(file_path))


class NotificationTests(SelectionSessionTestCase):
    def test_mutations_notify_listeners_once_after_debounce(self) -> None:
        session = self.make_session(refresh_delay_seconds=0.05)
        fired = threading.Event()
        calls: list[int] = []

        def listener() -> None:
            calls.append(session.get_total_token_count())
            fired.set()

        session.subscribe(listener)
        session.select_file(A_PY)
        session.select_file(B_PY)

        self.assertTrue(fired.wait(2.0))
        self.assertEqual(calls, [5])

    def test_totals_are_current_before_notification(self) -> None:
        session = self.make_session()
        session.select_file(A_PY)

        self.assertEqual(session.get_total_token_count(), 2)

    def test_flush_and_unsubscribe(self) -> None:
        session = self.make_session()
        calls: list[str] = []
        unsubscribe = session.subscribe(lambda: calls.append("changed"))

        session.select_file(A_PY)
        self.assertTrue(session.flush_refresh())
        unsubscribe()
        session.refresh_now()

        self.assertEqual(calls, ["changed"])


if __name__ == "__main__":
    unittest.main()
