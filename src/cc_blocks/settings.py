"""Settings file I/O for cc-blocks.

Manages a general-purpose JSON settings file at XDG_CONFIG_HOME/cc-blocks/settings.json.
The pipeline itself takes every input as an argument; settings only supply
defaults to entry points (CLI project root, rendering theme).

Import as: import cc_blocks.settings
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_CODE_THEME = "monokai"


def get_config_path() -> Path:
    """Return path to settings file.

    Uses XDG_CONFIG_HOME (default ~/.config) / cc-blocks / settings.json.
    """
    config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(config_home) / "cc-blocks" / "settings.json"


def load_settings() -> dict:
    """Load settings from JSON file. Returns empty dict on missing/corrupt file."""
    path = get_config_path()
    # [LAW:dataflow-not-control-flow] Always attempt read; empty dict is the "no data" value.
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("ignoring unreadable settings file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def save_settings(data: dict) -> None:
    """Atomic write of settings dict to JSON file.

    Creates parent directories if needed. Writes to temp file then renames
    to avoid partial writes on crash.
    """
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.write("\n")
        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def load_setting(key: str, default=None):
    """Load a single setting by key. Returns default if absent."""
    return load_settings().get(key, default)


def save_setting(key: str, value) -> None:
    """Save a single setting by key (merge into existing settings)."""
    data = load_settings()
    data[key] = value
    save_settings(data)


def load_project_root() -> str:
    """Configured project root, falling back to the current directory."""
    root = load_setting("project_root")
    return str(root) if root else os.getcwd()


def save_project_root(root: str) -> None:
    save_setting("project_root", root)


def load_code_theme() -> str:
    """Pygments theme name used when rendering code blocks in the terminal."""
    return str(load_setting("code_theme") or DEFAULT_CODE_THEME)


def load_preview_lines() -> Optional[int]:
    """Max lines of each block shown by `cc-blocks parse`; None = unlimited."""
    value = load_setting("preview_lines")
    if value is None:
        return None
    try:
        return max(1, int(value))
    except (TypeError, ValueError):
        logger.warning("ignoring invalid preview_lines setting: %r", value)
        return None
