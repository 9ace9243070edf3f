"""Block <-> storage row codec.

The storage collaborator persists Blocks as flat rows keyed by message_id,
with metadata serialized to one JSON document. Metadata keys are camelCase
so the document stays readable by non-Python consumers of the same store.

Annotations share the metadata document; on read, any key that the Block's
variant does not own is restored as an annotation.

// [LAW:single-enforcer] block_to_row / block_from_row are the only serialization boundary.
"""

from __future__ import annotations

import json
from collections.abc import Callable

from cc_blocks.blocks import (
    Block,
    BlockMeta,
    BlockType,
    ChangeType,
    CodeMeta,
    CommandMeta,
    DiffMeta,
    FileChange,
    FileSummaryMeta,
    TextMeta,
    ToolMeta,
    ToolState,
)

JsonDict = dict[str, object]


# ─── FileChange ───────────────────────────────────────────────────────────────


def file_change_to_dict(change: FileChange) -> JsonDict:
    raw: JsonDict = {
        "filePath": change.file_path,
        "changeType": change.change_type.value,
        "additions": change.additions,
        "deletions": change.deletions,
    }
    if change.tool_call_id:
        raw["toolCallId"] = change.tool_call_id
    return raw


def file_change_from_dict(raw: JsonDict) -> FileChange:
    return FileChange(
        file_path=str(raw.get("filePath", "")),
        change_type=ChangeType(str(raw.get("changeType", ChangeType.MODIFIED.value))),
        additions=int(raw.get("additions", 0) or 0),
        deletions=int(raw.get("deletions", 0) or 0),
        tool_call_id=raw.get("toolCallId") or None,
    )


# ─── Metadata encoders ────────────────────────────────────────────────────────


def _drop_none(raw: JsonDict) -> JsonDict:
    return {k: v for k, v in raw.items() if v is not None}


def _encode_text(_meta: TextMeta) -> JsonDict:
    return {}


def _encode_code(meta: CodeMeta) -> JsonDict:
    return {"language": meta.language, "tagged": meta.tagged, "isExecutable": meta.executable}


def _encode_command(meta: CommandMeta) -> JsonDict:
    return _drop_none(
        {
            "language": meta.language,
            "isExecutable": meta.executable,
            "exitCode": meta.exit_code,
            "executedAt": meta.executed_at,
        }
    )


def _encode_diff(meta: DiffMeta) -> JsonDict:
    return _drop_none(
        {"additions": meta.additions, "deletions": meta.deletions, "filePath": meta.file_path}
    )


def _encode_tool(meta: ToolMeta) -> JsonDict:
    raw: JsonDict = {
        "toolCallId": meta.tool_call_id,
        "toolName": meta.tool_name,
        "state": meta.state.value,
        "args": meta.args,
    }
    if meta.result is not None:
        raw["result"] = meta.result
    if meta.error is not None:
        raw["error"] = meta.error
    if meta.executed_at is not None:
        raw["executedAt"] = meta.executed_at
    if meta.dynamic:
        raw["dynamic"] = True
    return raw


def _encode_file_summary(meta: FileSummaryMeta) -> JsonDict:
    return {
        "files": [file_change_to_dict(f) for f in meta.files],
        "totalFiles": meta.total_files,
        "totalAdditions": meta.total_additions,
        "totalDeletions": meta.total_deletions,
    }


# ─── Metadata decoders ────────────────────────────────────────────────────────


def _decode_text(_raw: JsonDict) -> TextMeta:
    return TextMeta()


def _decode_code(raw: JsonDict) -> CodeMeta:
    return CodeMeta(
        language=str(raw.get("language") or "plaintext"),
        tagged=bool(raw.get("tagged", True)),
        executable=bool(raw.get("isExecutable", False)),
    )


def _decode_command(raw: JsonDict) -> CommandMeta:
    exit_code = raw.get("exitCode")
    return CommandMeta(
        language=str(raw.get("language") or "bash"),
        executable=bool(raw.get("isExecutable", True)),
        exit_code=int(exit_code) if exit_code is not None else None,
        executed_at=raw.get("executedAt"),
    )


def _decode_diff(raw: JsonDict) -> DiffMeta:
    return DiffMeta(
        additions=int(raw.get("additions", 0) or 0),
        deletions=int(raw.get("deletions", 0) or 0),
        file_path=raw.get("filePath") or None,
    )


def _decode_tool(raw: JsonDict) -> ToolMeta:
    args = raw.get("args")
    return ToolMeta(
        tool_call_id=str(raw.get("toolCallId", "")),
        tool_name=str(raw.get("toolName", "")),
        state=ToolState.parse(raw.get("state", "")),
        args=args if isinstance(args, dict) else {},
        result=raw.get("result"),
        error=raw.get("error"),
        executed_at=raw.get("executedAt"),
        dynamic=bool(raw.get("dynamic", False)),
    )


def _decode_file_summary(raw: JsonDict) -> FileSummaryMeta:
    files = tuple(
        file_change_from_dict(f) for f in raw.get("files", []) or [] if isinstance(f, dict)
    )
    return FileSummaryMeta(
        files=files,
        total_files=int(raw.get("totalFiles", len(files))),
        total_additions=int(raw.get("totalAdditions", sum(f.additions for f in files))),
        total_deletions=int(raw.get("totalDeletions", sum(f.deletions for f in files))),
    )


# [LAW:dataflow-not-control-flow] Dispatch tables keyed by block type
_ENCODERS: dict[BlockType, Callable] = {
    BlockType.TEXT: _encode_text,
    BlockType.CODE: _encode_code,
    BlockType.COMMAND: _encode_command,
    BlockType.DIFF: _encode_diff,
    BlockType.TOOL: _encode_tool,
    BlockType.FILE_SUMMARY: _encode_file_summary,
}

_DECODERS: dict[BlockType, Callable[[JsonDict], BlockMeta]] = {
    BlockType.TEXT: _decode_text,
    BlockType.CODE: _decode_code,
    BlockType.COMMAND: _decode_command,
    BlockType.DIFF: _decode_diff,
    BlockType.TOOL: _decode_tool,
    BlockType.FILE_SUMMARY: _decode_file_summary,
}

# Keys each variant owns in the metadata document
_OWNED_KEYS: dict[BlockType, frozenset[str]] = {
    BlockType.TEXT: frozenset(),
    BlockType.CODE: frozenset({"language", "tagged", "isExecutable"}),
    BlockType.COMMAND: frozenset({"language", "isExecutable", "exitCode", "executedAt"}),
    BlockType.DIFF: frozenset({"additions", "deletions", "filePath"}),
    BlockType.TOOL: frozenset(
        {"toolCallId", "toolName", "state", "args", "result", "error", "executedAt", "dynamic"}
    ),
    BlockType.FILE_SUMMARY: frozenset({"files", "totalFiles", "totalAdditions", "totalDeletions"}),
}


def metadata_to_dict(meta: BlockMeta) -> JsonDict:
    return _ENCODERS[meta.block_type](meta)


def metadata_from_dict(block_type: BlockType, raw: JsonDict) -> BlockMeta:
    return _DECODERS[block_type](raw)


# ─── Rows ─────────────────────────────────────────────────────────────────────


def block_to_row(block: Block) -> JsonDict:
    """Flatten a Block for storage; metadata becomes a JSON string."""
    document = {**block.annotations, **metadata_to_dict(block.metadata)}
    return {
        "id": block.id,
        "messageId": block.message_id,
        "type": block.type.value,
        "content": block.content,
        "metadata": json.dumps(document, default=str),
        "order": block.order,
        "createdAt": block.created_at,
    }


def block_from_row(row: JsonDict) -> Block:
    """Restore a Block from a storage row (metadata as JSON string or dict).

    Raises:
        ValueError: if the row's type is not a known BlockType
    """
    block_type = BlockType(str(row.get("type", "")))
    raw_meta = row.get("metadata") or {}
    document = json.loads(raw_meta) if isinstance(raw_meta, str) else dict(raw_meta)
    owned = _OWNED_KEYS[block_type]
    annotations = {k: v for k, v in document.items() if k not in owned}
    return Block(
        id=str(row["id"]),
        message_id=str(row.get("messageId", "")),
        content=str(row.get("content", "")),
        metadata=metadata_from_dict(block_type, document),
        order=int(row.get("order", 0)),
        created_at=str(row.get("createdAt", "")),
        annotations=annotations,
    )
