"""Typed view of the conversational runtime's parts-based message shape.

An external message is {"id", "role", "parts": [...]}, where each part is
either {"type": "text", "text": ...} or a tool part:
{"type": "tool-<name>" | "dynamic-tool", "toolCallId", "toolName"?,
 "state", "input", "output"?, "errorText"?}.

Only the adapter depends on this module; the rest of the pipeline never
sees the wire shape.

// [LAW:one-source-of-truth] The part class IS the part type.
// [LAW:single-enforcer] parse_external_message is the sole validation boundary.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from cc_blocks.blocks import ToolState

logger = logging.getLogger(__name__)

JsonDict = dict[str, object]

TOOL_PART_PREFIX = "tool-"
DYNAMIC_TOOL_TYPE = "dynamic-tool"


class MessageRole(Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


# ─── Part hierarchy ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Part:
    """Base class for message parts."""

    def to_dict(self) -> JsonDict:
        raise NotImplementedError


@dataclass(frozen=True)
class TextPart(Part):
    text: str

    def to_dict(self) -> JsonDict:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ToolPart(Part):
    tool_call_id: str
    tool_name: str
    state: ToolState
    input: dict = field(default_factory=dict)
    output: object = None
    error_text: str | None = None
    dynamic: bool = False

    @property
    def has_output(self) -> bool:
        return self.state == ToolState.OUTPUT_READY and self.output is not None

    def to_dict(self) -> JsonDict:
        raw: JsonDict = {
            "type": DYNAMIC_TOOL_TYPE if self.dynamic else f"{TOOL_PART_PREFIX}{self.tool_name}",
            "toolCallId": self.tool_call_id,
            "state": self.state.value,
            "input": self.input,
        }
        if self.dynamic:
            raw["toolName"] = self.tool_name
        if self.has_output:
            raw["output"] = self.output
        if self.state == ToolState.OUTPUT_FAILED and self.error_text is not None:
            raw["errorText"] = self.error_text
        return raw


@dataclass(frozen=True)
class UnknownPart(Part):
    """A part type this pipeline does not model (reasoning, files, ...)."""

    raw: JsonDict

    def to_dict(self) -> JsonDict:
        return dict(self.raw)


@dataclass(frozen=True)
class ExternalMessage:
    id: str
    role: MessageRole
    parts: tuple[Part, ...] = ()

    @property
    def text_parts(self) -> list[TextPart]:
        return [p for p in self.parts if isinstance(p, TextPart)]

    @property
    def tool_parts(self) -> list[ToolPart]:
        return [p for p in self.parts if isinstance(p, ToolPart)]

    def text(self) -> str:
        """All text parts joined by a blank line."""
        return "\n\n".join(p.text for p in self.text_parts if p.text)

    def to_dict(self) -> JsonDict:
        return {
            "id": self.id,
            "role": self.role.value,
            "parts": [p.to_dict() for p in self.parts],
        }


# ─── Parse boundary ──────────────────────────────────────────────────────────


def _str(v: object) -> str:
    """Narrow object to str."""
    if isinstance(v, str):
        return v
    return "" if v is None else str(v)


def parse_role(raw: object) -> MessageRole:
    if isinstance(raw, MessageRole):
        return raw
    try:
        return MessageRole(_str(raw))
    except ValueError:
        raise ValueError(f"Unknown message role: {raw!r}") from None


def _parse_text_part(raw: JsonDict) -> Part:
    return TextPart(text=_str(raw.get("text", "")))


def _parse_tool_part(raw: JsonDict) -> Part:
    part_type = _str(raw.get("type", ""))
    dynamic = part_type == DYNAMIC_TOOL_TYPE
    tool_name = _str(raw.get("toolName", "")) or part_type[len(TOOL_PART_PREFIX):]
    input_raw = raw.get("input", {})
    state = ToolState.parse(raw.get("state", ""))
    error_text = raw.get("errorText")
    return ToolPart(
        tool_call_id=_str(raw.get("toolCallId", "")),
        tool_name=tool_name,
        state=state,
        input=input_raw if isinstance(input_raw, dict) else {},
        output=raw.get("output") if state == ToolState.OUTPUT_READY else None,
        error_text=_str(error_text) if error_text is not None else None,
        dynamic=dynamic,
    )


# [LAW:dataflow-not-control-flow] Dispatch table for exact part types
_PART_PARSERS: dict[str, Callable[[JsonDict], Part]] = {
    "text": _parse_text_part,
    DYNAMIC_TOOL_TYPE: _parse_tool_part,
}


def parse_part(raw: JsonDict) -> Part:
    """Parse one raw part dict. Never raises for unknown part types."""
    part_type = _str(raw.get("type", ""))
    handler = _PART_PARSERS.get(part_type)
    if handler is None and part_type.startswith(TOOL_PART_PREFIX):
        handler = _parse_tool_part
    if handler is None:
        return UnknownPart(raw=dict(raw))
    return handler(raw)


def parse_external_message(raw: JsonDict) -> ExternalMessage:
    """Parse a raw external message dict into an ExternalMessage.

    Raises:
        ValueError: if id is missing or role is unknown
    """
    message_id = _str(raw.get("id", ""))
    if not message_id:
        raise ValueError("External message has no id")
    parts_raw = raw.get("parts", [])
    if not isinstance(parts_raw, list):
        parts_raw = []
    parts = tuple(parse_part(p) for p in parts_raw if isinstance(p, dict))
    return ExternalMessage(id=message_id, role=parse_role(raw.get("role")), parts=parts)
