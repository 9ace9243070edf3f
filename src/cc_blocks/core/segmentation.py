"""Segment raw message text into prose gaps and fenced regions.

Parses assistant message text into structural regions:
- PROSE: plain markdown between fences (gap-fill)
- FENCE: triple-backtick block, optionally tagged with a language

Single linear scan over lines with an explicit two-state machine
(OUTSIDE / INSIDE a fence). A fence's body is opaque: nothing inside it
is re-scanned for structure.

// [LAW:dataflow-not-control-flow] segment_fences() is a pure function: text in, Segments out.
// [LAW:one-source-of-truth] All fence detection lives here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


# ─── Data model ──────────────────────────────────────────────────────────────


class SegmentKind(Enum):
    PROSE = "prose"
    FENCE = "fence"


class ParseErrorKind(Enum):
    UNCLOSED_FENCE = "unclosed_fence"


@dataclass(frozen=True)
class Span:
    start: int
    end: int  # exclusive


@dataclass(frozen=True)
class FenceMeta:
    info: str | None  # first token of the info string, None when untagged
    inner_span: Span  # body between opening and closing fence lines
    closed: bool = True


@dataclass(frozen=True)
class Segment:
    kind: SegmentKind
    span: Span
    meta: FenceMeta | None = None


@dataclass(frozen=True)
class ParseError:
    kind: ParseErrorKind
    span: Span
    details: str


@dataclass(frozen=True)
class SegmentResult:
    segments: tuple[Segment, ...]
    errors: tuple[ParseError, ...]


FENCE_MARKER = "```"


class _State(Enum):
    OUTSIDE = "outside"
    INSIDE = "inside"


# ─── Line helpers ────────────────────────────────────────────────────────────


def _iter_lines(text: str):
    """Yield (start, end_without_newline, end_with_newline) for every line."""
    pos = 0
    length = len(text)
    while pos < length:
        nl = text.find("\n", pos)
        if nl == -1:
            yield pos, length, length
            return
        yield pos, nl, nl + 1
        pos = nl + 1


def _opening_info(line: str) -> tuple[bool, str | None]:
    """Return (is_opener, info) for a candidate opening line."""
    stripped = line.strip()
    if not stripped.startswith(FENCE_MARKER):
        return False, None
    info_raw = stripped.lstrip("`").strip()
    return True, (info_raw.split()[0] if info_raw else None)


def _is_closer(line: str) -> bool:
    stripped = line.strip()
    return len(stripped) >= len(FENCE_MARKER) and set(stripped) == {"`"}


# ─── Segmentation algorithm ─────────────────────────────────────────────────


def segment_fences(raw_text: str) -> SegmentResult:
    """Segment raw text into PROSE and FENCE Segments in document order.

    Gaps between fences become PROSE segments covering the exact source span
    (whitespace included); callers decide what counts as empty.
    An unclosed fence runs to the end of input and is reported as an error.
    """
    if not raw_text:
        return SegmentResult((), ())

    segments: list[Segment] = []
    errors: list[ParseError] = []

    state = _State.OUTSIDE
    prose_start = 0
    fence_start = 0
    inner_start = 0
    info: str | None = None

    for line_start, line_end, next_start in _iter_lines(raw_text):
        line = raw_text[line_start:line_end]

        if state is _State.OUTSIDE:
            is_opener, opener_info = _opening_info(line)
            if not is_opener:
                continue
            if line_start > prose_start:
                segments.append(Segment(SegmentKind.PROSE, Span(prose_start, line_start)))
            state = _State.INSIDE
            fence_start = line_start
            inner_start = next_start
            info = opener_info
            continue

        # INSIDE
        if _is_closer(line):
            segments.append(
                Segment(
                    SegmentKind.FENCE,
                    Span(fence_start, next_start),
                    FenceMeta(info, Span(inner_start, line_start)),
                )
            )
            state = _State.OUTSIDE
            prose_start = next_start

    if state is _State.INSIDE:
        end = len(raw_text)
        segments.append(
            Segment(
                SegmentKind.FENCE,
                Span(fence_start, end),
                FenceMeta(info, Span(min(inner_start, end), end), closed=False),
            )
        )
        errors.append(
            ParseError(
                ParseErrorKind.UNCLOSED_FENCE,
                Span(fence_start, end),
                f"Unclosed {FENCE_MARKER} fence",
            )
        )
    elif prose_start < len(raw_text):
        segments.append(Segment(SegmentKind.PROSE, Span(prose_start, len(raw_text))))

    return SegmentResult(tuple(segments), tuple(errors))


def text_of(raw_text: str, span: Span) -> str:
    return raw_text[span.start : span.end]


def trim_fence_body(body: str) -> str:
    """Drop leading/trailing blank lines and trailing whitespace.

    Indentation of the first content line is preserved, so re-fencing
    the result and segmenting again yields the same body.
    """
    lines = body.split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines).rstrip()
