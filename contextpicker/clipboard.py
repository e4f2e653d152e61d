"""Clipboard hand-off for the generated context prompt."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys

logger = logging.getLogger(__name__)

LINUX_CLIPBOARD_COMMANDS: tuple[tuple[str, ...], ...] = (
    ("wl-copy",),
    ("xclip", "-selection", "clipboard"),
    ("xsel", "--clipboard", "--input"),
)


def clipboard_commands(platform: str | None = None, os_name: str | None = None) -> list[tuple[str, ...]]:
    """Return the clipboard programs to try, in order, for this platform."""
    platform = sys.platform if platform is None else platform
    os_name = os.name if os_name is None else os_name
    if platform == "darwin":
        return [("pbcopy",)]
    if os_name == "nt":
        return [("clip",)]
    return list(LINUX_CLIPBOARD_COMMANDS)


def copy_text_to_clipboard(text: str) -> bool:
    """Pipe ``text`` into the first available clipboard program.

    Returns ``False`` when ``text`` is empty or no program accepted it.
    """
    if not text:
        return False

    for command in clipboard_commands():
        if shutil.which(command[0]) is None:
            continue
        try:
            proc = subprocess.run(list(command), input=text, text=True, check=False)
        except OSError as exc:
            logger.debug("clipboard command %s failed to start: %s", command[0], exc)
            continue
        if proc.returncode == 0:
            return True
        logger.debug("clipboard command %s exited with %d", command[0], proc.returncode)
    logger.info("no clipboard program accepted the prompt")
    return False


__all__ = [
    "clipboard_commands",
    "copy_text_to_clipboard",
]
