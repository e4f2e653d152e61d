"""Domain datatypes for filesystem-backed tree entries."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class DirectoryChild:
    """One directory listing entry as reported by a filesystem adapter."""

    name: str
    path: Path
    is_dir: bool


__all__ = [
    "DirectoryChild",
]
