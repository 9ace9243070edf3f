"""Project-relative path normalization for file-change tracking.

// [LAW:one-source-of-truth] normalize() is the only place path shapes are reconciled.
// [LAW:dataflow-not-control-flow] Pure function: (raw path, root) in, relative path or None out.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

# C:\ or C:/ at the start of a path
_DRIVE_RE = re.compile(r"^[A-Za-z]:/")


def _to_posix(path: str) -> str:
    return path.replace("\\", "/")


def is_absolute(path: str) -> bool:
    """True for POSIX-absolute and drive-letter paths (either separator)."""
    posix = _to_posix(path)
    return posix.startswith("/") or bool(_DRIVE_RE.match(posix))


def _escapes_root(relative: str) -> bool:
    return relative == ".." or relative.startswith("../")


def normalize(raw_path: str, project_root: str) -> str | None:
    """Return raw_path relative to project_root with forward slashes.

    Absolute paths outside project_root return None; tools routinely touch
    files outside the project, so this is not an error. An empty project_root
    disables prefix stripping.

    Examples (project_root="/project"):
        "/project/src/App.tsx" -> "src/App.tsx"
        "./src/App.tsx"        -> "src/App.tsx"
        "src\\App.tsx"         -> "src/App.tsx"
        "/elsewhere/x.ts"      -> None
    """
    if not raw_path:
        return None

    normalized = _to_posix(raw_path)
    root = _to_posix(project_root or "").rstrip("/")

    if root and is_absolute(normalized):
        if normalized == root or not normalized.startswith(root + "/"):
            logger.debug("path outside project root, ignoring: %s (root=%s)", raw_path, project_root)
            return None
        normalized = normalized[len(root) + 1 :]

    if normalized.startswith("./"):
        normalized = normalized[2:]

    if not normalized or _escapes_root(normalized):
        logger.debug("path escapes project root, ignoring: %s", raw_path)
        return None

    return normalized
