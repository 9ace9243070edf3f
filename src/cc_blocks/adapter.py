"""Bidirectional conversion between external messages and Block lists.

    external message (text parts + tool parts)
              <-> (this adapter)
    list[Block] (text/code/command/diff + tool blocks)

Forward: text parts are joined and parsed; each tool part becomes one tool
Block after the content Blocks. Reverse: content Blocks are rendered back to
markdown and tool Blocks become tool parts again.

For a well-formed message M, to_external_message(to_blocks(M)) keeps the
role, fenced bodies, language tags and tool-call identifiers; Block ids,
orders and timestamps are bookkeeping and may differ.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, replace

from cc_blocks.blocks import (
    Block,
    BlockType,
    CommandMeta,
    FileSummaryMeta,
    ToolMeta,
    ToolState,
    now_iso,
    sort_blocks,
)
from cc_blocks.external import (
    ExternalMessage,
    MessageRole,
    TextPart,
    ToolPart,
    parse_external_message,
    parse_role,
)
from cc_blocks.parser import parse, render_markdown

logger = logging.getLogger(__name__)

# Trailing {...} payload of a "name({...})" call signature
_TRAILING_PAYLOAD_RE = re.compile(r"\{[\s\S]*\}")

_CHARS_PER_TOKEN = 4


class EmptyContentError(ValueError):
    """Raised when asked to build a message from zero Blocks."""


@dataclass(frozen=True)
class ToolInvocation:
    """Transient tool call record; only ever stored inside a tool Block."""

    tool_call_id: str
    tool_name: str
    state: ToolState
    args: dict
    result: object = None
    error: str | None = None
    dynamic: bool = False


# ─── helpers ──────────────────────────────────────────────────────────────────


def coerce_message(message: ExternalMessage | dict) -> ExternalMessage:
    if isinstance(message, ExternalMessage):
        return message
    return parse_external_message(message)


def call_signature(tool_name: str, args: dict) -> str:
    """Short text form of a call, e.g. `Read({"file_path": "a.ts"})`."""
    return f"{tool_name}({json.dumps(args, default=str)})"


def _payload_from_content(content: str) -> dict:
    m = _TRAILING_PAYLOAD_RE.search(content)
    if not m:
        return {}
    try:
        payload = json.loads(m.group(0))
    except json.JSONDecodeError:
        logger.debug("tool block content has no parsable args payload: %.80s", content)
        return {}
    return payload if isinstance(payload, dict) else {}


# ─── external -> blocks ───────────────────────────────────────────────────────


def tool_invocation_from_part(part: ToolPart) -> ToolInvocation:
    return ToolInvocation(
        tool_call_id=part.tool_call_id,
        tool_name=part.tool_name,
        state=part.state,
        args=dict(part.input),
        result=part.output if part.has_output else None,
        error=part.error_text if part.state == ToolState.OUTPUT_FAILED else None,
        dynamic=part.dynamic,
    )


def tool_invocation_to_block(tool: ToolInvocation, message_id: str, order: int) -> Block:
    """Encode a ToolInvocation as a tool Block."""
    executed_at = None
    if tool.state == ToolState.OUTPUT_READY and tool.result is not None:
        executed_at = now_iso()
    return Block(
        id=f"block-tool-{tool.tool_call_id}",
        message_id=message_id,
        content=call_signature(tool.tool_name, tool.args),
        metadata=ToolMeta(
            tool_call_id=tool.tool_call_id,
            tool_name=tool.tool_name,
            state=tool.state,
            args=dict(tool.args),
            result=tool.result,
            error=tool.error,
            executed_at=executed_at,
            dynamic=tool.dynamic,
        ),
        order=order,
    )


def to_blocks(message: ExternalMessage | dict) -> list[Block]:
    """Convert an external message into content Blocks followed by tool Blocks."""
    msg = coerce_message(message)
    blocks = parse(msg.text(), msg.id)
    for part in msg.tool_parts:
        blocks.append(tool_invocation_to_block(tool_invocation_from_part(part), msg.id, len(blocks)))
    skipped = len(msg.parts) - len(msg.text_parts) - len(msg.tool_parts)
    if skipped:
        logger.debug("to_blocks skipped %d unmodelled part(s) message_id=%s", skipped, msg.id)
    return blocks


# ─── blocks -> external ───────────────────────────────────────────────────────


def block_to_tool_invocation(block: Block) -> ToolInvocation:
    """Restore a ToolInvocation from a tool Block.

    Metadata wins; when its args are empty the trailing JSON payload of the
    call signature in `content` is used instead.
    """
    meta = block.metadata
    if not isinstance(meta, ToolMeta):
        raise ValueError(f"Not a tool block: {block.id} (type={block.type.value})")
    args = dict(meta.args) if meta.args else _payload_from_content(block.content)
    return ToolInvocation(
        tool_call_id=meta.tool_call_id,
        tool_name=meta.tool_name or "unknown",
        state=meta.state,
        args=args,
        result=meta.result if meta.state == ToolState.OUTPUT_READY else None,
        error=meta.error if meta.state == ToolState.OUTPUT_FAILED else None,
        dynamic=meta.dynamic,
    )


def _tool_part(tool: ToolInvocation) -> ToolPart:
    return ToolPart(
        tool_call_id=tool.tool_call_id,
        tool_name=tool.tool_name,
        state=tool.state,
        input=tool.args,
        output=tool.result,
        error_text=tool.error,
        dynamic=tool.dynamic,
    )


def _is_content_block(block: Block) -> bool:
    return not isinstance(block.metadata, (ToolMeta, FileSummaryMeta))


def to_external_message(blocks: list[Block], role: MessageRole | str = MessageRole.ASSISTANT) -> ExternalMessage:
    """Rebuild an external message from Blocks.

    File-summary Blocks are derived bookkeeping and are not rendered.

    Raises:
        EmptyContentError: if blocks is empty (for every role)
    """
    if not blocks:
        raise EmptyContentError("Cannot convert empty block list to an external message")
    msg_role = parse_role(role)
    ordered = sort_blocks(blocks)

    parts: list = []
    content = render_markdown(b for b in ordered if _is_content_block(b))
    if content:
        parts.append(TextPart(text=content))
    for block in ordered:
        if block.is_tool and block.metadata.tool_call_id:
            parts.append(_tool_part(block_to_tool_invocation(block)))

    return ExternalMessage(id=blocks[0].message_id, role=msg_role, parts=tuple(parts))


# ─── utilities ────────────────────────────────────────────────────────────────


def merge_message_update(existing: list[Block], updated: ExternalMessage | dict) -> list[Block]:
    """Re-derive Blocks for a streamed message update.

    Blocks are rebuilt from scratch; annotations (bookmarks, execution
    history) carry over to new Blocks with the same type and content.
    """
    carried = {(b.type, b.content): b.annotations for b in existing if b.annotations}
    merged: list[Block] = []
    for block in to_blocks(updated):
        annotations = carried.get((block.type, block.content))
        if annotations:
            block = replace(block, annotations=dict(annotations))
        if isinstance(block.metadata, CommandMeta):
            block = _carry_execution(block, existing)
        merged.append(block)
    return merged


def _carry_execution(block: Block, existing: list[Block]) -> Block:
    """Keep the last known exit code of an unchanged command."""
    for old in existing:
        meta = old.metadata
        if isinstance(meta, CommandMeta) and old.content == block.content and meta.exit_code is not None:
            return replace(
                block,
                metadata=replace(block.metadata, exit_code=meta.exit_code, executed_at=meta.executed_at),
            )
    return block


def blocks_to_text(blocks: list[Block]) -> str:
    """Plain prose of a message (text Blocks only), for search and previews."""
    return "\n\n".join(b.content for b in sort_blocks(blocks) if b.type == BlockType.TEXT)


def estimate_block_tokens(blocks: list[Block]) -> int:
    """Approximate token count using ~4 chars/token."""
    total_chars = sum(len(b.content) for b in blocks)
    return -(-total_chars // _CHARS_PER_TOKEN)
