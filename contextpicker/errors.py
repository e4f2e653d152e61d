"""Exceptions surfaced to callers of the picker."""

from __future__ import annotations


class ContextPickerError(Exception):
    """Base class for reportable, non-fatal picker conditions."""


class EmptySelectionError(ContextPickerError):
    """Raised when a prompt is requested while no file is selected."""

    def __init__(self, message: str = "No files selected.") -> None:
        super().__init__(message)


__all__ = [
    "ContextPickerError",
    "EmptySelectionError",
]
