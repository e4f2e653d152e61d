"""Tree node datatypes produced by the projection."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

STATE_SELECTED = "selected"
STATE_PARTIAL = "partial"
STATE_UNSELECTED = "unselected"


@dataclass(frozen=True)
class TreeNode:
    """One projected row: a file or directory with its selection and tokens."""

    path: Path
    name: str
    is_dir: bool
    weight: int | None = None
    token_count: int = 0
    depth: int = 0

    @property
    def is_selected(self) -> bool:
        return self.weight is not None and self.weight > 0

    @property
    def selection_state(self) -> str:
        if self.weight is None:
            return STATE_UNSELECTED
        return STATE_SELECTED if self.weight > 0 else STATE_PARTIAL

    @property
    def label(self) -> str:
        """Display label: the name plus a token annotation when tokens are counted."""
        if self.token_count > 0:
            return f"{self.name} ({self.token_count} tokens)"
        return self.name
