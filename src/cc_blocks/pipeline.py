"""Message save flow: external message -> final Block list for storage.

    to_blocks() -> fresh FileChangeTracker fed with diff Blocks, tool Blocks
    and tool-call records -> optional file-summary Block appended last.

// [LAW:locality-or-seam] The tracker is created and discarded inside one call.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable

from cc_blocks.adapter import coerce_message, to_blocks
from cc_blocks.blocks import Block, BlockType
from cc_blocks.external import ExternalMessage, MessageRole
from cc_blocks.file_changes import FileChangeTracker, ToolCallRecord

logger = logging.getLogger(__name__)


def track_blocks(
    tracker: FileChangeTracker,
    blocks: Iterable[Block],
    skip_tool_call_ids: Collection[str] = frozenset(),
) -> None:
    """Feed every diff and tool Block of a message to the tracker.

    Tool Blocks whose call id is in skip_tool_call_ids are left out; the
    caller tracks those calls from another source.
    """
    for block in blocks:
        if block.type == BlockType.DIFF:
            tracker.track_from_diff_block(block)
        elif block.type == BlockType.TOOL:
            if block.metadata.tool_call_id in skip_tool_call_ids:
                continue
            tracker.track_from_tool_block(block)


def build_message_blocks(
    message: ExternalMessage | dict,
    project_root: str,
    tool_calls: Iterable[ToolCallRecord] = (),
) -> list[Block]:
    """Blocks for one message save, with a file summary for assistant messages.

    A call present both as a tool part and in tool_calls is tracked once,
    from its ToolCallRecord.
    """
    msg = coerce_message(message)
    blocks = to_blocks(msg)
    if msg.role != MessageRole.ASSISTANT:
        return blocks

    records = list(tool_calls)
    recorded_ids = {r.tool_call_id for r in records if r.tool_call_id}

    tracker = FileChangeTracker(project_root)
    track_blocks(tracker, blocks, skip_tool_call_ids=recorded_ids)
    for record in records:
        tracker.track_tool_call(record)

    summary = tracker.summary_block(msg.id, after=blocks)
    if summary is not None:
        logger.info(
            "file summary message_id=%s files=%d",
            msg.id,
            summary.metadata.total_files,
        )
        blocks.append(summary)
    return blocks
