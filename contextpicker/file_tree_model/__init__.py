"""Domain model for filesystem access behind the picker.

This package contains non-UI filesystem primitives:
- directory listing entries
- local and in-memory filesystem adapters
- worklist-based descendant walks with cooperative cancellation
"""

from __future__ import annotations

from .fs import (
    FilesystemAdapter,
    InMemoryFilesystem,
    LocalFilesystem,
    decode_text,
    iter_descendants,
    relative_posix,
    safe_list_entries,
)
from .types import DirectoryChild

__all__ = [
    "DirectoryChild",
    "FilesystemAdapter",
    "LocalFilesystem",
    "InMemoryFilesystem",
    "decode_text",
    "safe_list_entries",
    "relative_posix",
    "iter_descendants",
]
