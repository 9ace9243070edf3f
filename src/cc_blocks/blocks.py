"""Block IR — typed, ordered units of message content.

A Block is a common envelope (id, message_id, content, order, created_at)
around a metadata variant. The variant class IS the block type: there is
no separate type string to keep in sync.

// [LAW:one-source-of-truth] Block.type is derived from the metadata variant.
// [LAW:one-type-per-behavior] One frozen metadata dataclass per block type.

This module is STABLE. Safe for `from` imports everywhere.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Union


# ─── Enums ────────────────────────────────────────────────────────────────────


class BlockType(Enum):
    """Block type discriminator (also the storage `type` column)."""

    TEXT = "text"
    CODE = "code"
    COMMAND = "command"
    DIFF = "diff"
    TOOL = "tool"
    FILE_SUMMARY = "file-summary"


class ChangeType(Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


class ToolState(Enum):
    """Tool invocation lifecycle. Values are the external runtime's wire strings."""

    PENDING_INPUT = "input-streaming"
    INPUT_READY = "input-available"
    OUTPUT_READY = "output-available"
    OUTPUT_FAILED = "output-error"

    @classmethod
    def parse(cls, raw: object, default: "ToolState | None" = None) -> "ToolState":
        """Map a wire string to a ToolState; unknown values map to default."""
        try:
            return cls(str(raw))
        except ValueError:
            return default if default is not None else cls.INPUT_READY


# ─── Value types ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FileChange:
    """Aggregated change to one project-relative path."""

    file_path: str
    change_type: ChangeType
    additions: int = 0
    deletions: int = 0
    tool_call_id: str | None = None


# ─── Metadata variants ────────────────────────────────────────────────────────
# // [LAW:one-source-of-truth] block_type is set by the variant, not the caller.


@dataclass(frozen=True)
class TextMeta:
    block_type: ClassVar[BlockType] = BlockType.TEXT


@dataclass(frozen=True)
class CodeMeta:
    block_type: ClassVar[BlockType] = BlockType.CODE

    language: str = "plaintext"
    tagged: bool = True  # False when the fence had no info string
    executable: bool = False


@dataclass(frozen=True)
class CommandMeta:
    block_type: ClassVar[BlockType] = BlockType.COMMAND

    language: str = "bash"
    executable: bool = True
    exit_code: int | None = None
    executed_at: str | None = None


@dataclass(frozen=True)
class DiffMeta:
    block_type: ClassVar[BlockType] = BlockType.DIFF

    additions: int = 0
    deletions: int = 0
    file_path: str | None = None


@dataclass(frozen=True)
class ToolMeta:
    block_type: ClassVar[BlockType] = BlockType.TOOL

    tool_call_id: str = ""
    tool_name: str = ""
    state: ToolState = ToolState.INPUT_READY
    args: dict = field(default_factory=dict)
    result: object = None
    error: str | None = None
    executed_at: str | None = None  # when the result was observed
    dynamic: bool = False


@dataclass(frozen=True)
class FileSummaryMeta:
    block_type: ClassVar[BlockType] = BlockType.FILE_SUMMARY

    files: tuple[FileChange, ...] = ()
    total_files: int = 0
    total_additions: int = 0
    total_deletions: int = 0

    @classmethod
    def from_changes(cls, changes) -> "FileSummaryMeta":
        files = tuple(changes)
        return cls(
            files=files,
            total_files=len(files),
            total_additions=sum(f.additions for f in files),
            total_deletions=sum(f.deletions for f in files),
        )


BlockMeta = Union[TextMeta, CodeMeta, CommandMeta, DiffMeta, ToolMeta, FileSummaryMeta]

META_TYPES: dict[BlockType, type] = {
    meta.block_type: meta
    for meta in (TextMeta, CodeMeta, CommandMeta, DiffMeta, ToolMeta, FileSummaryMeta)
}


# ─── Block envelope ───────────────────────────────────────────────────────────


def now_iso() -> str:
    """UTC ISO-8601 timestamp used for created_at / executed_at."""
    return datetime.now(timezone.utc).isoformat()


def new_block_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class Block:
    """One typed unit of a message.

    Immutable after creation. `annotations` holds data attached later by
    other subsystems (bookmarks, execution history); it does not take part
    in equality.
    """

    message_id: str
    content: str
    metadata: BlockMeta
    order: int
    id: str = field(default_factory=new_block_id)
    created_at: str = field(default_factory=now_iso)
    annotations: dict = field(default_factory=dict, compare=False)

    @property
    def type(self) -> BlockType:
        return self.metadata.block_type

    @property
    def is_tool(self) -> bool:
        return isinstance(self.metadata, ToolMeta)

    def with_order(self, order: int) -> "Block":
        return replace(self, order=order)

    def with_bookmark(self, note: str = "") -> "Block":
        """Return a copy annotated as bookmarked."""
        annotations = {**self.annotations, "isBookmarked": True}
        if note:
            annotations["bookmarkNote"] = note
        return replace(self, annotations=annotations)

    def with_execution(self, exit_code: int, executed_at: str | None = None) -> "Block":
        """Return a command Block copy carrying its latest execution result.

        Each call is also appended to the `executionHistory` annotation.
        """
        if not isinstance(self.metadata, CommandMeta):
            raise ValueError(f"Only command blocks can record executions, got {self.type.value!r}")
        stamp = executed_at or now_iso()
        history = list(self.annotations.get("executionHistory", []))
        history.append({"exitCode": exit_code, "executedAt": stamp})
        return replace(
            self,
            metadata=replace(self.metadata, exit_code=exit_code, executed_at=stamp),
            annotations={**self.annotations, "executionHistory": history},
        )


def sort_blocks(blocks) -> list[Block]:
    """Blocks in ascending order (stable for equal orders)."""
    return sorted(blocks, key=lambda b: b.order)
