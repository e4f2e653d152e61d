"""Tri-state selection engine: selection map, session, bulk operations.

- ``SelectionMap`` holds path -> weight entries
- ``SelectionSession`` owns one workspace's selection and applies toggles
- ``bulk`` provides cancellation tokens, results, and rollback journals
- ``reference`` re-derives a map from scratch for verification
"""

from __future__ import annotations

from .bulk import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_NO_MATCHES,
    CancellationToken,
    RollbackJournal,
    SelectionResult,
    SkippedPath,
)
from .map import FULL_DIRECTORY_WEIGHT, PARTIAL_WEIGHT, SelectionMap, SelectionSnapshot
from .reference import recompute_selection, recompute_session
from .session import SelectionSession, normalize_path

__all__ = [
    "STATUS_COMPLETED",
    "STATUS_CANCELLED",
    "STATUS_NO_MATCHES",
    "CancellationToken",
    "RollbackJournal",
    "SelectionResult",
    "SkippedPath",
    "FULL_DIRECTORY_WEIGHT",
    "PARTIAL_WEIGHT",
    "SelectionMap",
    "SelectionSnapshot",
    "SelectionSession",
    "normalize_path",
    "recompute_selection",
    "recompute_session",
]
