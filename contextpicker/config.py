"""Persistent JSON config helpers.

Stores the minification switch, exclusion lists, refresh delay, and the
token model name. All access is defensive: malformed or missing config falls
back to defaults.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_config_dir

from .exclusion import DEFAULT_EXCLUDE_DIRECTORIES, DEFAULT_EXCLUDE_FILE_TYPES, ExclusionRules
from .refresh import DEFAULT_REFRESH_DELAY_SECONDS
from .tokens import DEFAULT_TOKEN_MODEL

APP_NAME = "contextpicker"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON; write failures are ignored."""
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except Exception:
        pass


def _string_list(value: object, default: tuple[str, ...]) -> tuple[str, ...]:
    if not isinstance(value, list):
        return default
    items = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return tuple(items)


def load_minify_code() -> bool:
    """Only explicit booleans count; anything else means ``False``."""
    value = load_config().get("minify_code")
    return bool(value) if isinstance(value, bool) else False


def save_minify_code(enabled: bool) -> None:
    config = load_config()
    config["minify_code"] = bool(enabled)
    save_config(config)


def toggle_minify_code() -> bool:
    """Flip the persisted minification switch and return the new value."""
    enabled = not load_minify_code()
    save_minify_code(enabled)
    return enabled


def load_exclude_directories() -> tuple[str, ...]:
    return _string_list(load_config().get("exclude_directories"), DEFAULT_EXCLUDE_DIRECTORIES)


def load_exclude_file_types() -> tuple[str, ...]:
    return _string_list(load_config().get("exclude_file_types"), DEFAULT_EXCLUDE_FILE_TYPES)


def save_exclude_lists(directories: list[str] | tuple[str, ...], file_types: list[str] | tuple[str, ...]) -> None:
    """Persist both exclusion lists, dropping blank entries."""
    config = load_config()
    config["exclude_directories"] = [item.strip() for item in directories if item.strip()]
    config["exclude_file_types"] = [item.strip() for item in file_types if item.strip()]
    save_config(config)


def load_refresh_delay_seconds() -> float:
    """Load the debounce delay; non-positive or non-numeric values use the default."""
    value = load_config().get("refresh_delay_seconds")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_REFRESH_DELAY_SECONDS
    if value <= 0:
        return DEFAULT_REFRESH_DELAY_SECONDS
    return float(value)


def load_token_model() -> str:
    value = load_config().get("token_model")
    if not isinstance(value, str):
        return DEFAULT_TOKEN_MODEL
    stripped = value.strip()
    return stripped if stripped else DEFAULT_TOKEN_MODEL


@dataclass(frozen=True)
class PickerSettings:
    """Validated view of the persisted config."""

    minify_code: bool = False
    exclude_directories: tuple[str, ...] = DEFAULT_EXCLUDE_DIRECTORIES
    exclude_file_types: tuple[str, ...] = DEFAULT_EXCLUDE_FILE_TYPES
    refresh_delay_seconds: float = DEFAULT_REFRESH_DELAY_SECONDS
    token_model: str = DEFAULT_TOKEN_MODEL

    def exclusion_rules(self) -> ExclusionRules:
        return ExclusionRules.from_lists(self.exclude_directories, self.exclude_file_types)


def load_settings() -> PickerSettings:
    return PickerSettings(
        minify_code=load_minify_code(),
        exclude_directories=load_exclude_directories(),
        exclude_file_types=load_exclude_file_types(),
        refresh_delay_seconds=load_refresh_delay_seconds(),
        token_model=load_token_model(),
    )


__all__ = [
    "APP_NAME",
    "CONFIG_PATH",
    "PickerSettings",
    "load_config",
    "save_config",
    "load_settings",
    "load_minify_code",
    "save_minify_code",
    "toggle_minify_code",
    "load_exclude_directories",
    "load_exclude_file_types",
    "save_exclude_lists",
    "load_refresh_delay_seconds",
    "load_token_model",
]
