"""File-change aggregation across the tool calls of one message.

A FileChangeTracker lives for exactly one message save: the caller creates
it, feeds it edits, writes, diff blocks and raw diff text, then asks for the
summary Block and discards it. Instances must never be shared between saves.

Per path, the last write wins, except that a path already tracked in this
session is never reported as "created" again (created -> modified).

// [LAW:single-enforcer] _record() is the only writer of the per-path map.
// [LAW:locality-or-seam] Tool-name dispatch lives in _TOOL_TRACKERS.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace

from cc_blocks.blocks import (
    Block,
    ChangeType,
    DiffMeta,
    FileChange,
    FileSummaryMeta,
    ToolMeta,
)
from cc_blocks.core.paths import normalize
from cc_blocks.parser import is_change_line

logger = logging.getLogger(__name__)

# Summary blocks sort after any realistic content block when no siblings are given.
SUMMARY_BLOCK_ORDER = 9999

_GIT_HEADER_RE = re.compile(r"^diff --git a/(.+?) b/(.+)$")


@dataclass(frozen=True)
class ToolCallRecord:
    """One tool call as reported by the agent execution subsystem."""

    tool_name: str
    file_path: str = ""
    old_text: str = ""
    new_text: str = ""
    content: str = ""
    output: str = ""
    edits: tuple[tuple[str, str], ...] = ()  # MultiEdit (old, new) pairs
    tool_call_id: str | None = None


@dataclass
class _DiffSection:
    file_path: str
    change_type: ChangeType = ChangeType.MODIFIED
    additions: int = 0
    deletions: int = 0


@dataclass(frozen=True)
class ChangeSummary:
    files: list[FileChange] = field(default_factory=list)
    total_files: int = 0
    total_additions: int = 0
    total_deletions: int = 0


def line_set_stats(old_text: str, new_text: str) -> tuple[int, int]:
    """Cheap (additions, deletions) estimate between two texts.

    Blank lines are ignored. A line of new_text absent from old_text counts
    as an addition, and vice versa. Order-insensitive and O(n); this is not
    an edit distance and will under-count moved or duplicated lines.
    """
    old_lines = [line for line in old_text.split("\n") if line.strip()]
    new_lines = [line for line in new_text.split("\n") if line.strip()]
    old_set = set(old_lines)
    new_set = set(new_lines)
    additions = sum(1 for line in new_lines if line not in old_set)
    deletions = sum(1 for line in old_lines if line not in new_set)
    return additions, deletions


def parse_unified_diff(diff_text: str) -> list[_DiffSection]:
    """Split git-style unified diff text into per-file sections.

    `diff --git a/X b/Y` opens a section for Y; `new file mode` and
    `deleted file mode` set the change type; single +/- lines are counted.
    Lines before the first header are ignored.
    """
    sections: list[_DiffSection] = []
    current: _DiffSection | None = None

    for line in diff_text.split("\n"):
        if line.startswith("diff --git"):
            m = _GIT_HEADER_RE.match(line.rstrip())
            current = _DiffSection(file_path=m.group(2)) if m else None
            if current is not None:
                sections.append(current)
            continue
        if current is None:
            continue
        if line.startswith("new file mode"):
            current.change_type = ChangeType.CREATED
        elif line.startswith("deleted file mode"):
            current.change_type = ChangeType.DELETED
        elif is_change_line(line, "+"):
            current.additions += 1
        elif is_change_line(line, "-"):
            current.deletions += 1

    return sections


class FileChangeTracker:
    """Per-save accumulator of FileChanges keyed by normalized path."""

    def __init__(self, project_root: str):
        self.project_root = project_root
        self._changes: dict[str, FileChange] = {}

    # ─── recording ───────────────────────────────────────────────────────

    def _record(self, raw_path: str, change: FileChange) -> None:
        path = normalize(raw_path, self.project_root)
        if path is None:
            return
        existing = self._changes.get(path)
        change = replace(change, file_path=path)
        if existing is not None and change.change_type == ChangeType.CREATED:
            change = replace(change, change_type=ChangeType.MODIFIED)
        self._changes[path] = change

    def track_from_tool_edit(
        self, path: str, old_text: str, new_text: str, tool_call_id: str | None = None
    ) -> None:
        additions, deletions = line_set_stats(old_text or "", new_text or "")
        self._record(
            path,
            FileChange(path, ChangeType.MODIFIED, additions, deletions, tool_call_id),
        )

    def track_from_tool_write(
        self, path: str, new_content: str, tool_call_id: str | None = None
    ) -> None:
        additions = len((new_content or "").splitlines())
        self._record(path, FileChange(path, ChangeType.CREATED, additions, 0, tool_call_id))

    def track_from_raw_diff_text(self, diff_text: str) -> None:
        for section in parse_unified_diff(diff_text or ""):
            self._record(
                section.file_path,
                FileChange(
                    section.file_path,
                    section.change_type,
                    section.additions,
                    section.deletions,
                ),
            )

    def track_from_diff_block(self, block: Block) -> None:
        """Track a diff Block.

        Git-style content goes through the raw diff parser so multi-file
        patches and new/deleted file modes are kept. A header-less snippet
        is credited to `DiffMeta.file_path` when it has one.
        """
        meta = block.metadata
        if not isinstance(meta, DiffMeta):
            logger.debug("ignoring non-diff block %s (type=%s)", block.id, block.type.value)
            return
        if "diff --git" in block.content:
            self.track_from_raw_diff_text(block.content)
        elif meta.file_path:
            self._record(
                meta.file_path,
                FileChange(meta.file_path, ChangeType.MODIFIED, meta.additions, meta.deletions),
            )

    def track_tool_call(self, record: ToolCallRecord) -> None:
        """Dispatch a tool-call record to the matching tracker by tool name."""
        tracker = _TOOL_TRACKERS.get(record.tool_name)
        if tracker is None:
            logger.debug("no file tracking for tool %r", record.tool_name)
            return
        tracker(self, record)

    def track_from_tool_block(self, block: Block) -> None:
        """Track a tool Block produced by the adapter (args hold the call input)."""
        meta = block.metadata
        if not isinstance(meta, ToolMeta):
            return
        self.track_tool_call(record_from_tool_meta(meta))

    # ─── results ─────────────────────────────────────────────────────────

    def finalize(self) -> list[FileChange]:
        """Aggregated changes in first-touch order."""
        return list(self._changes.values())

    def has_changes(self) -> bool:
        return bool(self._changes)

    def file_count(self) -> int:
        return len(self._changes)

    def clear(self) -> None:
        self._changes.clear()

    def summary(self) -> ChangeSummary:
        files = self.finalize()
        return ChangeSummary(
            files=files,
            total_files=len(files),
            total_additions=sum(f.additions for f in files),
            total_deletions=sum(f.deletions for f in files),
        )

    def summary_block(self, message_id: str, after: Iterable[Block] | None = None) -> Block | None:
        """Build the file-summary Block, or None when nothing changed.

        The Block sorts after every block in `after`; with no siblings given
        it takes SUMMARY_BLOCK_ORDER.
        """
        if not self._changes:
            return None
        meta = FileSummaryMeta.from_changes(self.finalize())
        if after is None:
            order = SUMMARY_BLOCK_ORDER
        else:
            order = max((b.order for b in after), default=-1) + 1
        noun = "file" if meta.total_files == 1 else "files"
        return Block(
            id=f"file-summary-{message_id}",
            message_id=message_id,
            content=f"{meta.total_files} {noun} changed",
            metadata=meta,
            order=order,
        )


# ─── Tool-name dispatch ───────────────────────────────────────────────────────


def _track_edit(tracker: FileChangeTracker, record: ToolCallRecord) -> None:
    if record.file_path:
        tracker.track_from_tool_edit(record.file_path, record.old_text, record.new_text, record.tool_call_id)


def _track_multi_edit(tracker: FileChangeTracker, record: ToolCallRecord) -> None:
    if not record.file_path:
        return
    old_text = "\n".join(old for old, _ in record.edits)
    new_text = "\n".join(new for _, new in record.edits)
    tracker.track_from_tool_edit(record.file_path, old_text, new_text, record.tool_call_id)


def _track_write(tracker: FileChangeTracker, record: ToolCallRecord) -> None:
    if record.file_path:
        tracker.track_from_tool_write(record.file_path, record.content, record.tool_call_id)


def _track_bash(tracker: FileChangeTracker, record: ToolCallRecord) -> None:
    if "diff --git" in (record.output or ""):
        tracker.track_from_raw_diff_text(record.output)


# [LAW:dataflow-not-control-flow] Dispatch table for tool-call tracking
_TOOL_TRACKERS: dict[str, Callable[[FileChangeTracker, ToolCallRecord], None]] = {
    "Edit": _track_edit,
    "MultiEdit": _track_multi_edit,
    "Write": _track_write,
    "Bash": _track_bash,
}


def _result_text(result: object) -> str:
    if result is None:
        return ""
    if isinstance(result, str):
        return result
    if isinstance(result, dict):
        for key in ("stdout", "output", "text"):
            value = result.get(key)
            if isinstance(value, str):
                return value
    return json.dumps(result, default=str)


def record_from_tool_meta(meta: ToolMeta) -> ToolCallRecord:
    """Build a ToolCallRecord from a tool Block's metadata."""
    args = meta.args or {}
    edits = tuple(
        (str(edit.get("old_string", "")), str(edit.get("new_string", "")))
        for edit in args.get("edits", []) or []
        if isinstance(edit, dict)
    )
    return ToolCallRecord(
        tool_name=meta.tool_name,
        file_path=str(args.get("file_path", "") or ""),
        old_text=str(args.get("old_string", "") or ""),
        new_text=str(args.get("new_string", "") or ""),
        content=str(args.get("content", "") or ""),
        output=_result_text(meta.result),
        edits=edits,
        tool_call_id=meta.tool_call_id or None,
    )
