"""Text transforms applied to file content before counting and export.

License-header stripping is a pure line scan. Minification is best-effort and
lexer driven: it removes comments and blank lines using ``pygments`` tokens,
and never fails the caller.
"""

from __future__ import annotations

import logging
from pathlib import PurePath

from pygments.lexers import get_lexer_by_name
from pygments.token import Comment

logger = logging.getLogger(__name__)

PLAINTEXT_LANGUAGE = "plaintext"

EXT_TO_LANGUAGE = {
    ".js": "javascript",
    ".ts": "typescript",
    ".py": "python",
    ".java": "java",
    ".c": "c",
    ".cpp": "cpp",
    ".cs": "csharp",
    ".html": "html",
    ".css": "css",
    ".php": "php",
    ".rb": "ruby",
    ".go": "go",
    ".rs": "rust",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
    ".m": "objective-c",
    ".mm": "objective-cpp",
    ".sh": "bash",
    ".ps1": "powershell",
    ".sql": "sql",
    ".r": "r",
    ".vb": "vbnet",
    ".fs": "fsharp",
    ".md": "markdown",
    ".json": "json",
    ".xml": "xml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".txt": "plaintext",
}

MINIFIABLE_LANGUAGES = frozenset(
    {
        "javascript",
        "typescript",
        "python",
        "java",
        "c",
        "cpp",
        "csharp",
        "css",
        "go",
        "rust",
        "swift",
        "kotlin",
        "scala",
        "php",
        "json",
        "yaml",
    }
)
INDENT_SENSITIVE_LANGUAGES = frozenset({"python", "yaml"})
_KEPT_COMMENT_TOKENS = (Comment.Hashbang, Comment.Preproc, Comment.PreprocFile)

_LEXER_CACHE: dict[str, object] = {}


def detect_language(filename: str | PurePath) -> str:
    """Return the fence language tag for ``filename`` (``plaintext`` when unknown)."""
    suffix = PurePath(filename).suffix.lower()
    return EXT_TO_LANGUAGE.get(suffix, PLAINTEXT_LANGUAGE)


def strip_license_headers(code: str) -> str:
    """Remove a leading license comment block and trim surrounding whitespace.

    When the first line opens a block comment (``/*``), everything through the
    line holding ``*/`` is dropped; an unterminated block leaves the text as
    is. When the first line is a ``//`` comment, all consecutive leading
    ``//`` lines are dropped.
    """
    lines = code.split("\n")
    start = 0
    first = lines[0]
    if first.startswith("/*"):
        for idx, line in enumerate(lines):
            if "*/" in line:
                start = idx + 1
                break
    elif first.startswith("//"):
        start = len(lines)
        for idx, line in enumerate(lines):
            if not line.startswith("//"):
                start = idx
                break
    return "\n".join(lines[start:]).strip()


def _lexer_for(language: str):
    lexer = _LEXER_CACHE.get(language)
    if lexer is None:
        lexer = get_lexer_by_name(language, stripnl=False, ensurenl=False)
        _LEXER_CACHE[language] = lexer
    return lexer


def _drop_comments(source: str, language: str) -> str:
    lexer = _lexer_for(language)
    out: list[str] = []
    for token_type, value in lexer.get_tokens(source):
        if token_type in Comment and not any(token_type in kept for kept in _KEPT_COMMENT_TOKENS):
            # keep the line break some lexers fold into single-line comments
            if value.endswith("\n"):
                out.append("\n")
            continue
        out.append(value)
    return "".join(out)


def minify_code(source: str, language: str) -> tuple[str, str | None]:
    """Best-effort minification returning ``(text, warning)``.

    Unsupported languages come back unchanged with no warning. Any lexer
    failure returns ``source`` unchanged plus a warning message.
    """
    if language not in MINIFIABLE_LANGUAGES:
        return source, None

    try:
        stripped = _drop_comments(source, language)
    except Exception as exc:
        warning = f"Failed to minify code ({language}): {exc}. Using original code."
        logger.warning(warning)
        return source, warning

    keep_indent = language in INDENT_SENSITIVE_LANGUAGES
    lines: list[str] = []
    for line in stripped.splitlines():
        compact = line.rstrip() if keep_indent else line.strip()
        if compact:
            lines.append(compact)
    return "\n".join(lines), None


def prepare_file_content(text: str, filename: str | PurePath, minify: bool) -> tuple[str, str | None]:
    """Apply license stripping and optional minification; return ``(text, warning)``."""
    content = strip_license_headers(text)
    if not minify:
        return content, None
    return minify_code(content, detect_language(filename))


__all__ = [
    "PLAINTEXT_LANGUAGE",
    "EXT_TO_LANGUAGE",
    "MINIFIABLE_LANGUAGES",
    "detect_language",
    "strip_license_headers",
    "minify_code",
    "prepare_file_content",
]
