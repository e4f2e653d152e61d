"""Command-line front door for contextpicker.

Builds a selection session on a workspace, applies search and selections,
then prints the tree projection and/or the assembled context prompt.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .clipboard import copy_text_to_clipboard
from .config import load_settings, save_exclude_lists, toggle_minify_code
from .errors import ContextPickerError
from .exclusion import ExclusionRules, split_comma_list
from .prompt import build_context_prompt
from .selection import CancellationToken, SelectionResult, SelectionSession
from .tokens import TiktokenCounter, ancestor_chain
from .tree_model import build_visible_nodes, format_tree

logger = logging.getLogger(__name__)


def _split_flag_values(values: list[str] | None) -> list[str] | None:
    """Flatten repeated, comma-separated flag values; ``None`` when the flag was absent."""
    if values is None:
        return None
    items: list[str] = []
    for value in values:
        items.extend(split_comma_list(value))
    return items


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s | %(name)s | %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Select files in a workspace and assemble them into one LLM context prompt."
    )
    parser.add_argument("path", nargs="?", default=None, help="Workspace root. Defaults to current directory.")
    parser.add_argument(
        "--select",
        action="append",
        metavar="REL",
        help="Toggle selection of a file or directory (relative to the workspace). Repeatable.",
    )
    parser.add_argument("--search", default=None, help="Comma-separated search terms (OR, case-insensitive).")
    parser.add_argument(
        "--exclude-dir",
        action="append",
        metavar="NAME",
        help="Excluded directory name; replaces the configured list for this run. Repeatable.",
    )
    parser.add_argument(
        "--exclude-type",
        action="append",
        metavar="EXT",
        help="Excluded file extension such as .png; replaces the configured list for this run. Repeatable.",
    )
    minify = parser.add_mutually_exclusive_group()
    minify.add_argument("--minify", dest="minify", action="store_true", default=None, help="Minify code.")
    minify.add_argument("--no-minify", dest="minify", action="store_false", help="Do not minify code.")
    parser.add_argument("--tree", action="store_true", help="Print the tree projection on stdout instead of the prompt.")
    parser.add_argument("--output", metavar="FILE", default=None, help="Write the prompt to FILE instead of stdout.")
    parser.add_argument("--copy", action="store_true", help="Copy the prompt to the clipboard.")
    parser.add_argument(
        "--toggle-minify",
        action="store_true",
        help="Flip the persisted minification setting and exit.",
    )
    parser.add_argument(
        "--set-excludes",
        action="store_true",
        help="Persist --exclude-dir/--exclude-type lists as the defaults and exit.",
    )
    parser.add_argument("--verbose", action="store_true", help="Log progress to stderr.")
    return parser


def _report_result(target: str, result: SelectionResult) -> None:
    if result.no_matches:
        print(f"No matching files found for {target}.", file=sys.stderr)
    elif result.cancelled:
        print(f"Selection of {target} was cancelled.", file=sys.stderr)
    for skipped in result.skipped:
        print(f"Skipped {skipped.path}: {skipped.reason}", file=sys.stderr)
    for warning in result.warnings:
        print(warning, file=sys.stderr)


def _apply_selections(session: SelectionSession, targets: list[str], cancel: CancellationToken) -> None:
    for target in targets:
        try:
            resolved = session.resolve_path(target)
        except ValueError as exc:
            raise SystemExit(str(exc)) from exc
        if not resolved.exists():
            raise SystemExit(f"Path not found: {target}")
        result = session.toggle_selection(resolved, should_cancel=cancel)
        _report_result(target, result)
        if result.cancelled:
            return
        for directory in ancestor_chain(resolved, session.root):
            session.set_expanded(directory, True)


@contextmanager
def _cancel_on_interrupt(cancel: CancellationToken) -> Iterator[None]:
    """Turn Ctrl-C into a cooperative cancellation request while selecting."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGINT, lambda _signum, _frame: cancel.cancel())
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _run_settings_command(args: argparse.Namespace) -> bool:
    """Handle the persist-and-exit flags; return whether one ran."""
    if args.toggle_minify:
        enabled = toggle_minify_code()
        print(f"Code minification {'enabled' if enabled else 'disabled'}.")
        return True
    if args.set_excludes:
        settings = load_settings()
        directories = _split_flag_values(args.exclude_dir)
        file_types = _split_flag_values(args.exclude_type)
        save_exclude_lists(
            directories if directories is not None else list(settings.exclude_directories),
            file_types if file_types is not None else list(settings.exclude_file_types),
        )
        print("Exclude lists updated.")
        return True
    return False


def main(argv: list[str] | None = None, default_path: Path | None = None) -> None:
    """Parse CLI arguments and run one picker session.

    ``default_path`` is primarily for tests; when omitted the current working
    directory is used.
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    if _run_settings_command(args):
        return

    if default_path is None:
        default_path = Path.cwd()
    root = Path(args.path or default_path)
    if not root.is_dir():
        raise SystemExit(f"Not a directory: {root}")

    settings = load_settings()
    directories = _split_flag_values(args.exclude_dir)
    file_types = _split_flag_values(args.exclude_type)
    rules = ExclusionRules.from_lists(
        directories if directories is not None else settings.exclude_directories,
        file_types if file_types is not None else settings.exclude_file_types,
    )
    minify = settings.minify_code if args.minify is None else args.minify

    with SelectionSession(
        root,
        token_counter=TiktokenCounter(settings.token_model),
        rules=rules,
        minify=minify,
        refresh_delay_seconds=settings.refresh_delay_seconds,
    ) as session:
        logger.debug("session on %s (minify=%s, rules=%s)", session.root, minify, rules)
        if args.search:
            session.set_search_terms(args.search)
        cancel = CancellationToken()
        with _cancel_on_interrupt(cancel):
            _apply_selections(session, args.select or [], cancel)
        session.flush_refresh()

        if args.tree:
            nodes, render_expanded = build_visible_nodes(session)
            print(format_tree(nodes, render_expanded, session.search_terms, highlight=sys.stdout.isatty()))
            if not args.select:
                return

        try:
            prompt = build_context_prompt(session)
        except ContextPickerError as exc:
            print(str(exc), file=sys.stderr)
            return

        for skipped in prompt.skipped:
            print(f"Skipped {skipped.path}: {skipped.reason}", file=sys.stderr)
        if args.output:
            try:
                Path(args.output).write_text(prompt.text, encoding="utf-8")
            except OSError as exc:
                raise SystemExit(f"Cannot write {args.output}: {exc}") from exc
        elif not args.tree:
            sys.stdout.write(prompt.text)

        if args.copy:
            if copy_text_to_clipboard(prompt.text):
                print("Context prompt copied to clipboard.", file=sys.stderr)
            else:
                print("Clipboard copy failed.", file=sys.stderr)
        print(f"{prompt.file_count} file(s), {prompt.token_count} tokens", file=sys.stderr)
