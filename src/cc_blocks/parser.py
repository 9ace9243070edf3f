"""Message parser — raw assistant markdown to an ordered Block list.

Classification rules, applied per fenced region:
- shell alias tag (bash/sh/zsh/shell) -> command
- "diff" tag, or an untagged fence that looks like a diff -> diff
- anything else -> code (tag kept verbatim, "plaintext" when untagged)
Prose around fences becomes text blocks.

The reverse direction (Block -> markdown) lives here too so the parser and
its formatter cannot drift apart: parse(render_markdown(parse(x))) must
reproduce the same types, contents and orders.

// [LAW:single-enforcer] parse_message() is the only place text is classified into Blocks.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from cc_blocks.blocks import (
    Block,
    CodeMeta,
    CommandMeta,
    DiffMeta,
    TextMeta,
    sort_blocks,
)
import cc_blocks.core.segmentation
from cc_blocks.core.segmentation import SegmentKind, text_of, trim_fence_body

logger = logging.getLogger(__name__)


SHELL_ALIASES: frozenset[str] = frozenset({"bash", "sh", "zsh", "shell"})
DIFF_TAG = "diff"
DEFAULT_LANGUAGE = "plaintext"

# An untagged fence is a diff when MORE than 3/10 of its non-empty lines
# are +/- change lines. Integer comparison keeps the boundary exact.
DIFF_RATIO_NUMERATOR = 3
DIFF_RATIO_DENOMINATOR = 10

_GIT_HEADER_RE = re.compile(r"^diff --git a/(.+?) b/(.+)$", re.MULTILINE)
_NEW_SIDE_HEADER_RE = re.compile(r"^\+\+\+ (?:b/)?(.+?)\s*$", re.MULTILINE)
_FILE_REF_RE = re.compile(r"\b([\w\-]+\.\w+)(?::(\d+))?")


@dataclass
class ParseResult:
    """Parse output with diagnostics.

    warnings: non-fatal oddities (e.g. an unclosed fence)
    errors: internal faults that forced the plain-text fallback
    """

    blocks: list[Block] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class FileReference:
    file_name: str
    line_number: int | None = None


# ─── Diff heuristics ──────────────────────────────────────────────────────────


def is_change_line(line: str, marker: str) -> bool:
    """True for a single-prefix +/- line; +++/--- file headers excluded."""
    return line.startswith(marker) and not line.startswith(marker * 3)


def count_diff_lines(content: str) -> tuple[int, int]:
    """Return (additions, deletions) counted from +/- line prefixes."""
    additions = 0
    deletions = 0
    for line in content.split("\n"):
        if is_change_line(line, "+"):
            additions += 1
        elif is_change_line(line, "-"):
            deletions += 1
    return additions, deletions


def looks_like_diff(content: str) -> bool:
    """Single-pass, language-agnostic diff check for untagged fences.

    This is a heuristic, not a patch parser: text with many +/- prefixed
    lines (CLI flag listings, bullet lists) can classify as a diff.
    """
    non_empty = [line for line in content.split("\n") if line.strip()]
    if not non_empty:
        return False
    changed = sum(1 for line in non_empty if is_change_line(line, "+") or is_change_line(line, "-"))
    return changed * DIFF_RATIO_DENOMINATOR > len(non_empty) * DIFF_RATIO_NUMERATOR


def diff_file_path(content: str) -> str | None:
    """Target path from a `diff --git` or `+++ b/...` header, if present."""
    m = _GIT_HEADER_RE.search(content)
    if m:
        return m.group(2).strip()
    m = _NEW_SIDE_HEADER_RE.search(content)
    if m and m.group(1) != "/dev/null":
        return m.group(1)
    return None


# ─── Block factories ──────────────────────────────────────────────────────────


def classify_fence(body: str, info: str | None, message_id: str, order: int) -> Block:
    """Build the Block for one fenced region."""
    tag = (info or "").lower()
    if tag in SHELL_ALIASES:
        return Block(message_id=message_id, content=body, metadata=CommandMeta(), order=order)

    if tag == DIFF_TAG or (info is None and looks_like_diff(body)):
        additions, deletions = count_diff_lines(body)
        return Block(
            message_id=message_id,
            content=body,
            metadata=DiffMeta(
                additions=additions,
                deletions=deletions,
                file_path=diff_file_path(body),
            ),
            order=order,
        )

    meta = CodeMeta(language=info, tagged=True) if info else CodeMeta(language=DEFAULT_LANGUAGE, tagged=False)
    return Block(message_id=message_id, content=body, metadata=meta, order=order)


def _text_block(content: str, message_id: str, order: int) -> Block:
    return Block(message_id=message_id, content=content, metadata=TextMeta(), order=order)


# ─── Parsing ──────────────────────────────────────────────────────────────────


def _scan(raw_text: str, message_id: str, warnings: list[str]) -> list[Block]:
    seg = cc_blocks.core.segmentation.segment_fences(raw_text)
    warnings.extend(err.details for err in seg.errors)

    blocks: list[Block] = []
    for segment in seg.segments:
        order = len(blocks)
        if segment.kind == SegmentKind.PROSE:
            prose = text_of(raw_text, segment.span).strip()
            if prose:
                blocks.append(_text_block(prose, message_id, order))
            continue
        body = trim_fence_body(text_of(raw_text, segment.meta.inner_span))
        blocks.append(classify_fence(body, segment.meta.info, message_id, order))
    return blocks


def parse_message(raw_text: str, message_id: str) -> ParseResult:
    """Parse raw markdown into Blocks, collecting diagnostics.

    Never raises: an internal fault degrades to one text Block holding the
    whole input so no conversation content is lost.
    """
    result = ParseResult()
    if not raw_text or not raw_text.strip():
        return result

    try:
        result.blocks = _scan(raw_text, message_id, result.warnings)
    except Exception as e:
        logger.exception("message parse failed message_id=%s; falling back to plain text", message_id)
        result.errors.append(f"Parsing failed: {e}")
        result.blocks = [_text_block(raw_text, message_id, 0)]

    if result.warnings:
        logger.debug("parse warnings message_id=%s: %s", message_id, result.warnings)
    return result


def parse(raw_text: str, message_id: str) -> list[Block]:
    """Parse raw markdown into Blocks with order 0..n-1."""
    return parse_message(raw_text, message_id).blocks


def extract_file_references(text: str) -> list[FileReference]:
    """Find `name.ext` / `name.ext:42` mentions in prose."""
    return [
        FileReference(m.group(1), int(m.group(2)) if m.group(2) else None)
        for m in _FILE_REF_RE.finditer(text)
    ]


# ─── Rendering back to markdown ───────────────────────────────────────────────


def _fence(tag: str, body: str) -> str:
    return f"```{tag}\n{body}\n```"


def render_block_markdown(block: Block) -> str:
    """Render one content Block back to markdown."""
    meta = block.metadata
    if isinstance(meta, CodeMeta):
        return _fence(meta.language if meta.tagged else "", block.content)
    if isinstance(meta, CommandMeta):
        return _fence("bash", block.content)
    if isinstance(meta, DiffMeta):
        return _fence(DIFF_TAG, block.content)
    return block.content


def render_markdown(blocks) -> str:
    """Render content Blocks in order, separated by blank lines."""
    return "\n\n".join(render_block_markdown(b) for b in sort_blocks(blocks))
