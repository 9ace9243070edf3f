"""Tests for cc_blocks.storage_codec — Block <-> storage row."""

import json

import pytest

from cc_blocks.blocks import (
    Block,
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
from cc_blocks.storage_codec import block_from_row, block_to_row, metadata_to_dict


def make_block(meta, content="body", order=0):
    return Block(message_id="m1", content=content, metadata=meta, order=order)


_METAS = [
    TextMeta(),
    CodeMeta(language="typescript"),
    CodeMeta(language="plaintext", tagged=False),
    CommandMeta(),
    CommandMeta(exit_code=2, executed_at="2024-01-01T00:00:00+00:00"),
    DiffMeta(additions=3, deletions=1, file_path="src/a.ts"),
    DiffMeta(additions=1),
    ToolMeta(
        tool_call_id="call_1",
        tool_name="Read",
        state=ToolState.OUTPUT_READY,
        args={"file_path": "a.ts", "limit": 10},
        result={"lines": ["a", "b"]},
        executed_at="2024-01-01T00:00:00+00:00",
    ),
    ToolMeta(tool_call_id="call_2", tool_name="Bash", state=ToolState.OUTPUT_FAILED, error="exit 1"),
    ToolMeta(tool_call_id="call_3", tool_name="mcp__x", state=ToolState.PENDING_INPUT, dynamic=True),
    FileSummaryMeta.from_changes(
        [
            FileChange("a.ts", ChangeType.MODIFIED, 1, 1, "call_1"),
            FileChange("b.ts", ChangeType.CREATED, 4, 0),
        ]
    ),
]


@pytest.mark.parametrize("meta", _METAS, ids=lambda m: type(m).__name__)
def test_row_round_trip(meta):
    block = make_block(meta, order=4)
    restored = block_from_row(block_to_row(block))
    assert restored == block
    assert restored.type is block.type
    assert restored.annotations == {}


def test_row_shape():
    block = make_block(CodeMeta(language="python"), content="print(1)", order=2)
    row = block_to_row(block)
    assert set(row) == {"id", "messageId", "type", "content", "metadata", "order", "createdAt"}
    assert row["type"] == "code"
    assert row["messageId"] == "m1"
    assert json.loads(row["metadata"]) == {"language": "python", "tagged": True, "isExecutable": False}


def test_file_summary_type_value():
    row = block_to_row(make_block(FileSummaryMeta()))
    assert row["type"] == "file-summary"


def test_optional_fields_are_omitted():
    assert metadata_to_dict(DiffMeta(additions=1)) == {"additions": 1, "deletions": 0}
    assert metadata_to_dict(CommandMeta()) == {"language": "bash", "isExecutable": True}


def test_annotations_round_trip():
    block = make_block(CommandMeta(), content="npm test").with_bookmark("flaky").with_execution(
        1, "2024-02-02T00:00:00+00:00"
    )
    restored = block_from_row(block_to_row(block))
    assert restored.annotations == block.annotations
    assert restored.metadata.exit_code == 1


def test_metadata_as_dict_is_accepted():
    row = block_to_row(make_block(DiffMeta(additions=2, deletions=2)))
    row["metadata"] = json.loads(row["metadata"])
    assert block_from_row(row).metadata == DiffMeta(additions=2, deletions=2)


def test_missing_metadata_uses_defaults():
    row = block_to_row(make_block(CommandMeta()))
    row["metadata"] = None
    assert block_from_row(row).metadata == CommandMeta()


def test_unknown_type_raises():
    row = block_to_row(make_block(TextMeta()))
    row["type"] = "widget"
    with pytest.raises(ValueError):
        block_from_row(row)
