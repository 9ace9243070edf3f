"""Tests for the Block IR envelope and metadata variants."""

import dataclasses

import pytest

from cc_blocks.blocks import (
    META_TYPES,
    Block,
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
    sort_blocks,
)


def make_block(meta=None, order=0, content="x"):
    return Block(message_id="m", content=content, metadata=meta or TextMeta(), order=order)


# ─── Type derivation ─────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "meta, expected",
    [
        (TextMeta(), BlockType.TEXT),
        (CodeMeta(language="go"), BlockType.CODE),
        (CommandMeta(), BlockType.COMMAND),
        (DiffMeta(), BlockType.DIFF),
        (ToolMeta(tool_name="Read"), BlockType.TOOL),
        (FileSummaryMeta(), BlockType.FILE_SUMMARY),
    ],
)
def test_type_follows_metadata_variant(meta, expected):
    assert make_block(meta).type is expected


def test_meta_types_covers_every_block_type():
    assert set(META_TYPES) == set(BlockType)
    for block_type, meta_cls in META_TYPES.items():
        assert meta_cls.block_type is block_type


def test_is_tool():
    assert make_block(ToolMeta()).is_tool
    assert not make_block(CodeMeta()).is_tool


def test_block_ids_are_unique_by_default():
    assert make_block().id != make_block().id


def test_blocks_are_immutable():
    block = make_block()
    with pytest.raises(dataclasses.FrozenInstanceError):
        block.content = "changed"


# ─── ToolState ───────────────────────────────────────────────────────────────


def test_tool_state_wire_values():
    assert ToolState.parse("input-streaming") is ToolState.PENDING_INPUT
    assert ToolState.parse("input-available") is ToolState.INPUT_READY
    assert ToolState.parse("output-available") is ToolState.OUTPUT_READY
    assert ToolState.parse("output-error") is ToolState.OUTPUT_FAILED


def test_tool_state_unknown_uses_default():
    assert ToolState.parse("approval-requested") is ToolState.INPUT_READY
    assert ToolState.parse(None, ToolState.PENDING_INPUT) is ToolState.PENDING_INPUT


# ─── Annotations ─────────────────────────────────────────────────────────────


def test_annotations_do_not_affect_equality():
    block = make_block()
    assert block.with_bookmark("later") == block


def test_with_bookmark():
    block = make_block().with_bookmark("check this")
    assert block.annotations == {"isBookmarked": True, "bookmarkNote": "check this"}
    assert make_block().with_bookmark().annotations == {"isBookmarked": True}


def test_with_execution_records_history():
    block = make_block(CommandMeta(), content="npm test")
    once = block.with_execution(1, "2024-01-01T00:00:00+00:00")
    twice = once.with_execution(0, "2024-01-01T00:01:00+00:00")

    assert twice.metadata.exit_code == 0
    assert twice.metadata.executed_at == "2024-01-01T00:01:00+00:00"
    assert twice.annotations["executionHistory"] == [
        {"exitCode": 1, "executedAt": "2024-01-01T00:00:00+00:00"},
        {"exitCode": 0, "executedAt": "2024-01-01T00:01:00+00:00"},
    ]
    # original untouched
    assert block.metadata.exit_code is None
    assert block.annotations == {}


def test_with_execution_stamps_time_when_omitted():
    block = make_block(CommandMeta()).with_execution(0)
    assert block.metadata.executed_at


def test_with_execution_rejects_non_command():
    with pytest.raises(ValueError, match="command"):
        make_block(CodeMeta(language="python")).with_execution(0)


# ─── Ordering ────────────────────────────────────────────────────────────────


def test_sort_blocks_is_stable():
    a = make_block(order=1, content="a")
    b = make_block(order=0, content="b")
    c = make_block(order=1, content="c")
    assert [x.content for x in sort_blocks([a, b, c])] == ["b", "a", "c"]


def test_with_order():
    block = make_block(order=0)
    moved = block.with_order(5)
    assert moved.order == 5
    assert moved.id == block.id


# ─── File summary ────────────────────────────────────────────────────────────


def test_file_summary_from_changes():
    meta = FileSummaryMeta.from_changes(
        [
            FileChange("a.ts", ChangeType.MODIFIED, 3, 1),
            FileChange("b.ts", ChangeType.CREATED, 10, 0),
        ]
    )
    assert meta.total_files == 2
    assert meta.total_additions == 13
    assert meta.total_deletions == 1
    assert isinstance(meta.files, tuple)
