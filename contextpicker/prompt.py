"""Assemble the selected files into one fenced context prompt."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .errors import EmptySelectionError
from .file_tree_model.fs import decode_text
from .selection.bulk import SkippedPath, describe_os_error
from .selection.session import SelectionSession
from .transforms import detect_language, prepare_file_content

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContextPrompt:
    text: str
    file_count: int
    token_count: int
    skipped: tuple[SkippedPath, ...] = ()
    warnings: tuple[str, ...] = ()


def format_file_block(relative_path: str, language: str, content: str) -> str:
    return f"File: {relative_path}\n\n```{language}\n{content}\n```\n\n"


def build_context_prompt(session: SelectionSession) -> ContextPrompt:
    """Read every selected file and join them into fenced blocks.

    Files are emitted in path order and re-read from disk, so the text
    reflects current content and the session's current minify switch.
    Unreadable files are skipped and reported. ``token_count`` sums the
    recorded weights of the files that made it into the text.

    Raises ``EmptySelectionError`` when no file is selected.
    """
    files = session.selected_files()
    if not files:
        raise EmptySelectionError()

    blocks: list[str] = []
    skipped: list[SkippedPath] = []
    warnings: list[str] = []
    token_count = 0
    for path in files:
        try:
            text = decode_text(session.filesystem.read_file(path))
        except OSError as exc:
            logger.info("leaving unreadable file %s out of the prompt: %s", path, exc)
            skipped.append(SkippedPath(Path(path), describe_os_error(exc)))
            continue
        content, warning = prepare_file_content(text, path.name, session.minify)
        if warning:
            warnings.append(warning)
        blocks.append(format_file_block(session.relative_path(path), detect_language(path.name), content))
        token_count += session.token_count_for(path, False)

    logger.debug("built prompt from %d file(s), %d skipped", len(blocks), len(skipped))
    return ContextPrompt(
        text="".join(blocks),
        file_count=len(blocks),
        token_count=token_count,
        skipped=tuple(skipped),
        warnings=tuple(warnings),
    )


__all__ = [
    "ContextPrompt",
    "build_context_prompt",
    "format_file_block",
]
