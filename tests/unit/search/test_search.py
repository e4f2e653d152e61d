"""Tests for search-term parsing and path matching."""

from __future__ import annotations

import unittest
from pathlib import Path

from contextpicker.exclusion import ExclusionRules
from contextpicker.file_tree_model import InMemoryFilesystem
from contextpicker.search import (
    directory_matches_search,
    has_matching_descendant,
    parse_search_terms,
    path_matches_search,
)

ROOT = Path("/ws")


class SearchTermsTests(unittest.TestCase):
    def test_parse_search_terms_splits_trims_and_lowercases(self) -> None:
        self.assertEqual(parse_search_terms("Foo, bar,,FOO "), ("foo", "bar"))
        self.assertEqual(parse_search_terms(""), ())
        self.assertEqual(parse_search_terms(None), ())

    def test_terms_match_any_substring_case_insensitively(self) -> None:
        self.assertTrue(path_matches_search("src/Widget.tsx", ("widget",)))
        self.assertTrue(path_matches_search("docs/readme.md", ("nomatch", "readme")))
        self.assertFalse(path_matches_search("docs/readme.md", ("widget",)))

    def test_empty_terms_match_everything(self) -> None:
        self.assertTrue(path_matches_search("anything", ()))

    def test_windows_separators_are_normalized(self) -> None:
        self.assertTrue(path_matches_search("src\\lib\\a.py", ("lib/a",)))


class DescendantMatchTests(unittest.TestCase):
    def setUp(self) -> None:
        self.fs = InMemoryFilesystem(
            {
                ROOT / "bar" / "deep" / "foo.txt": b"x",
                ROOT / "baz" / "other.txt": b"y",
                ROOT / "baz" / "node_modules" / "foo.js": b"z",
            }
        )

    def test_directory_with_deep_match_is_kept(self) -> None:
        self.assertTrue(has_matching_descendant(self.fs, ROOT / "bar", ROOT, ("foo",)))
        self.assertFalse(directory_matches_search(self.fs, ROOT / "baz", ROOT, ("foo",), ExclusionRules.defaults()))

    def test_excluded_descendants_do_not_count_as_matches(self) -> None:
        self.assertTrue(has_matching_descendant(self.fs, ROOT / "baz", ROOT, ("foo",)))
        self.assertFalse(has_matching_descendant(self.fs, ROOT / "baz", ROOT, ("foo",), ExclusionRules.defaults()))

    def test_directory_name_match_needs_no_walk(self) -> None:
        self.assertTrue(directory_matches_search(self.fs, ROOT / "baz", ROOT, ("ba",)))


if __name__ == "__main__":
    unittest.main()
