"""Tests for cc_blocks.external — parsing the parts-based message shape."""

import pytest

from cc_blocks.blocks import ToolState
from cc_blocks.external import (
    ExternalMessage,
    MessageRole,
    TextPart,
    ToolPart,
    UnknownPart,
    parse_external_message,
    parse_part,
    parse_role,
)
from tests.harness import make_message, make_text_part, make_tool_part


# ─── Parts ───────────────────────────────────────────────────────────────────


def test_text_part():
    assert parse_part(make_text_part("hi")) == TextPart(text="hi")


def test_static_tool_part_takes_name_from_type():
    part = parse_part(make_tool_part("Read", "call_1", tool_input={"file_path": "a.ts"}, output="body"))
    assert isinstance(part, ToolPart)
    assert part.tool_name == "Read"
    assert part.tool_call_id == "call_1"
    assert part.state is ToolState.OUTPUT_READY
    assert part.input == {"file_path": "a.ts"}
    assert part.output == "body"
    assert part.dynamic is False
    assert part.has_output


def test_dynamic_tool_part_uses_tool_name_field():
    part = parse_part(make_tool_part("mcp__search", dynamic=True))
    assert part.tool_name == "mcp__search"
    assert part.dynamic is True


def test_output_is_dropped_unless_available():
    raw = make_tool_part(state="input-available")
    raw["output"] = "early"
    part = parse_part(raw)
    assert part.output is None
    assert not part.has_output


def test_error_part():
    part = parse_part(make_tool_part(state="output-error", error_text="ENOENT"))
    assert part.state is ToolState.OUTPUT_FAILED
    assert part.error_text == "ENOENT"


def test_missing_state_and_bad_input():
    part = parse_part({"type": "tool-Bash", "toolCallId": "c", "input": "not a dict"})
    assert part.state is ToolState.INPUT_READY
    assert part.input == {}


def test_unknown_part_is_preserved():
    raw = {"type": "reasoning", "text": "thinking..."}
    part = parse_part(raw)
    assert part == UnknownPart(raw=raw)
    assert part.to_dict() == raw


@pytest.mark.parametrize(
    "raw",
    [
        make_tool_part("Read", "call_1", output="body"),
        make_tool_part("Edit", "call_2", state="input-streaming"),
        make_tool_part("Bash", "call_3", state="output-error", error_text="exit 1"),
        make_tool_part("mcp__x", "call_4", dynamic=True),
    ],
)
def test_tool_part_to_dict_matches_wire_shape(raw):
    assert parse_part(raw).to_dict() == raw


# ─── Messages ────────────────────────────────────────────────────────────────


def test_parse_message():
    raw = make_message("first", make_tool_part(), "second", message_id="m7", role="user")
    msg = parse_external_message(raw)
    assert msg.id == "m7"
    assert msg.role is MessageRole.USER
    assert len(msg.text_parts) == 2
    assert len(msg.tool_parts) == 1
    assert msg.text() == "first\n\nsecond"
    assert msg.to_dict() == raw


def test_text_skips_empty_parts():
    msg = ExternalMessage(id="m", role=MessageRole.ASSISTANT, parts=(TextPart(""), TextPart("a")))
    assert msg.text() == "a"


def test_non_dict_parts_are_ignored():
    raw = {"id": "m", "role": "assistant", "parts": ["stray", make_text_part("ok"), 3]}
    assert parse_external_message(raw).parts == (TextPart("ok"),)


def test_missing_parts_list():
    msg = parse_external_message({"id": "m", "role": "assistant", "parts": None})
    assert msg.parts == ()


def test_missing_id_raises():
    with pytest.raises(ValueError, match="no id"):
        parse_external_message({"role": "assistant", "parts": []})


def test_unknown_role_raises():
    with pytest.raises(ValueError, match="role"):
        parse_external_message({"id": "m", "role": "narrator", "parts": []})


def test_parse_role_accepts_enum_and_string():
    assert parse_role(MessageRole.SYSTEM) is MessageRole.SYSTEM
    assert parse_role("assistant") is MessageRole.ASSISTANT
