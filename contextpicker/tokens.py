"""Token oracle adapters and per-directory token aggregation."""

from __future__ import annotations

import threading
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .selection.map import SelectionMap

DEFAULT_TOKEN_MODEL = "gpt-4"


class TokenCounter:
    """Opaque ``count(text) -> int`` oracle."""

    def count(self, text: str) -> int:
        raise NotImplementedError


class CallableTokenCounter(TokenCounter):
    """Wrap a plain callable as a token oracle."""

    def __init__(self, count: Callable[[str], int]) -> None:
        self._count = count

    def count(self, text: str) -> int:
        return max(0, int(self._count(text)))


class TiktokenCounter(TokenCounter):
    """Token oracle backed by ``tiktoken``; the encoding loads on first use."""

    def __init__(self, model: str = DEFAULT_TOKEN_MODEL) -> None:
        self.model = model
        self._encoding = None
        self._lock = threading.Lock()

    def _ensure_encoding(self):
        with self._lock:
            if self._encoding is None:
                import tiktoken

                try:
                    self._encoding = tiktoken.encoding_for_model(self.model)
                except KeyError:
                    self._encoding = tiktoken.get_encoding("cl100k_base")
            return self._encoding

    def count(self, text: str) -> int:
        encoding = self._ensure_encoding()
        return len(encoding.encode(text, disallowed_special=()))


def ancestor_chain(path: Path, root: Path) -> list[Path]:
    """Return strict ancestors of ``path`` from its parent up to and including ``root``.

    Paths outside ``root`` have no chain.
    """
    if path == root or not path.is_relative_to(root):
        return []
    chain: list[Path] = []
    current = path.parent
    while True:
        chain.append(current)
        if current == root or current.parent == current:
            break
        current = current.parent
    return chain


def compute_directory_totals(selection: SelectionMap, root: Path) -> dict[Path, int]:
    """Sum file weights into every ancestor directory up to and including ``root``.

    Directory markers in ``selection`` are skipped; they never carry tokens.
    """
    totals: dict[Path, int] = {}
    for path, weight in selection.file_items():
        for directory in ancestor_chain(path, root):
            totals[directory] = totals.get(directory, 0) + weight
    return totals


def total_token_count(totals: dict[Path, int], root: Path) -> int:
    """Return the grand total recorded for ``root`` (0 when nothing is selected)."""
    return totals.get(root, 0)


__all__ = [
    "DEFAULT_TOKEN_MODEL",
    "TokenCounter",
    "CallableTokenCounter",
    "TiktokenCounter",
    "ancestor_chain",
    "compute_directory_totals",
    "total_token_count",
]
