"""Tests for license-header stripping and lexer-driven minification."""

from __future__ import annotations

import unittest
from unittest import mock

from contextpicker.transforms import (
    detect_language,
    minify_code,
    prepare_file_content,
    strip_license_headers,
)


class LicenseHeaderTests(unittest.TestCase):
    def test_leading_line_comments_are_removed(self) -> None:
        self.assertEqual(strip_license_headers("// Copyright\n// text\ncode();"), "code();")

    def test_leading_block_comment_is_removed(self) -> None:
        source = "/*\n * MIT License\n */\n\nconst a = 1;\n"

        self.assertEqual(strip_license_headers(source), "const a = 1;")

    def test_unterminated_block_keeps_text(self) -> None:
        self.assertEqual(strip_license_headers("/* open\nconst a = 1;"), "/* open\nconst a = 1;")

    def test_comment_only_input_becomes_empty(self) -> None:
        self.assertEqual(strip_license_headers("// one\n// two"), "")

    def test_text_without_header_is_only_trimmed(self) -> None:
        self.assertEqual(strip_license_headers("\n  x = 1  \n"), "x = 1")


class MinifyTests(unittest.TestCase):
    def test_python_keeps_indentation_and_drops_comments(self) -> None:
        source = "def f():\n    # note\n    return 1  # trailing\n\n"

        text, warning = minify_code(source, "python")

        self.assertIsNone(warning)
        self.assertEqual(text, "def f():\n    return 1")

    def test_javascript_drops_comments_and_indentation(self) -> None:
        source = "// hi\nfunction f() {\n    return 1; /* x */\n}\n"

        text, warning = minify_code(source, "javascript")

        self.assertIsNone(warning)
        self.assertEqual(text, "function f() {\nreturn 1;\n}")

    def test_unsupported_language_is_unchanged(self) -> None:
        self.assertEqual(minify_code("# Title\n\ntext", "markdown"), ("# Title\n\ntext", None))

    def test_lexer_failure_returns_original_with_warning(self) -> None:
        with mock.patch("contextpicker.transforms._drop_comments", side_effect=RuntimeError("boom")):
            with self.assertLogs("contextpicker.transforms", level="WARNING"):
                text, warning = minify_code("const a = 1;", "javascript")

        self.assertEqual(text, "const a = 1;")
        self.assertIn("boom", warning)


class PrepareContentTests(unittest.TestCase):
    def test_language_comes_from_extension(self) -> None:
        self.assertEqual(detect_language("src/App.TS"), "typescript")
        self.assertEqual(detect_language("notes"), "plaintext")

    def test_minify_flag_controls_comment_removal(self) -> None:
        source = "// License\nx = 1  # set\n"

        self.assertEqual(prepare_file_content(source, "a.py", False), ("x = 1  # set", None))
        self.assertEqual(prepare_file_content(source, "a.py", True), ("x = 1", None))


if __name__ == "__main__":
    unittest.main()
