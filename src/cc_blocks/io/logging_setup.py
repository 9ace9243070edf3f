"""Logging bootstrap for cc-blocks entry points.

Library modules only create `logging.getLogger(__name__)` loggers under the
`cc_blocks` hierarchy. The CLI (or an embedding host) calls configure()
once to attach a stderr handler and a rotating per-run log file.

Environment:
    CC_BLOCKS_LOG_LEVEL  level name, default INFO (unknown names fall back to INFO)
    CC_BLOCKS_LOG_DIR    directory for per-run files, default ~/.local/share/cc-blocks/logs
    CC_BLOCKS_LOG_FILE   explicit file path, overrides the directory

// [LAW:single-enforcer] Handler wiring for the cc_blocks hierarchy happens here only.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

ROOT_LOGGER = "cc_blocks"

_DEFAULT_LOG_DIR = "~/.local/share/cc-blocks/logs"
_MAX_LOG_BYTES = 20 * 1024 * 1024
_LOG_BACKUPS = 5

_CONSOLE_FORMAT = "[%(name)s] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


@dataclass(frozen=True)
class LoggingRuntime:
    """Where this run logs, and at what level."""

    level: int
    file_path: str

    @property
    def level_name(self) -> str:
        return logging.getLevelName(self.level)


_RUNTIME: LoggingRuntime | None = None


def _level_from_env() -> int:
    name = os.environ.get("CC_BLOCKS_LOG_LEVEL", "").strip().upper() or "INFO"
    level = logging.getLevelName(name)
    # getLevelName returns "Level X" for unknown names
    return level if isinstance(level, int) else logging.INFO


def _run_file(run_name: str) -> Path:
    """Per-run log file: <dir>/<subcommand>-<utc stamp>-<pid>.log"""
    explicit = os.environ.get("CC_BLOCKS_LOG_FILE")
    if explicit:
        return Path(explicit)
    log_dir = Path(os.environ.get("CC_BLOCKS_LOG_DIR") or os.path.expanduser(_DEFAULT_LOG_DIR))
    slug = "".join(ch if ch.isalnum() or ch in "-_" else "-" for ch in run_name).strip("-_") or "cc-blocks"
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    return log_dir / f"{slug}-{stamp}-{os.getpid()}.log"


def _handlers(level: int, file_path: Path) -> list[logging.Handler]:
    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))

    rotating = RotatingFileHandler(file_path, maxBytes=_MAX_LOG_BYTES, backupCount=_LOG_BACKUPS, encoding="utf-8")
    rotating.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))

    for handler in (console, rotating):
        handler.setLevel(level)
    return [console, rotating]


def configure(run_name: str = "cc-blocks") -> LoggingRuntime:
    """Attach stderr and rotating-file handlers to the cc_blocks logger.

    Idempotent: later calls return the runtime of the first one.
    """
    global _RUNTIME
    if _RUNTIME is not None:
        return _RUNTIME

    level = _level_from_env()
    file_path = _run_file(run_name)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.propagate = False
    logger.handlers.clear()
    for handler in _handlers(level, file_path):
        logger.addHandler(handler)

    logging.captureWarnings(True)

    _RUNTIME = LoggingRuntime(level=level, file_path=str(file_path))
    return _RUNTIME


def get_runtime() -> LoggingRuntime | None:
    return _RUNTIME


def reset() -> None:
    """Detach handlers and forget the runtime (tests and embedding hosts)."""
    global _RUNTIME
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    _RUNTIME = None
