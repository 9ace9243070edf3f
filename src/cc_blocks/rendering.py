"""Rich renderables for Blocks (terminal display for the CLI).

// [LAW:dataflow-not-control-flow] Dispatch via _RENDERERS keyed by BlockType.
// [LAW:one-way-deps] Depends on blocks only; nothing in the pipeline imports this.
"""

from __future__ import annotations

import json
from collections.abc import Callable

from rich.console import ConsoleRenderable, Group
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from cc_blocks.blocks import (
    Block,
    BlockType,
    ChangeType,
    CodeMeta,
    CommandMeta,
    DiffMeta,
    FileChange,
    FileSummaryMeta,
    ToolMeta,
    ToolState,
    sort_blocks,
)
from cc_blocks.settings import DEFAULT_CODE_THEME

_CHANGE_STYLES: dict[ChangeType, str] = {
    ChangeType.CREATED: "green",
    ChangeType.MODIFIED: "yellow",
    ChangeType.DELETED: "red",
}

_STATE_STYLES: dict[ToolState, str] = {
    ToolState.PENDING_INPUT: "dim",
    ToolState.INPUT_READY: "cyan",
    ToolState.OUTPUT_READY: "green",
    ToolState.OUTPUT_FAILED: "bold red",
}


def _preview(content: str, max_lines: int | None) -> str:
    if max_lines is None:
        return content
    lines = content.split("\n")
    if len(lines) <= max_lines:
        return content
    return "\n".join(lines[:max_lines] + [f"… ({len(lines) - max_lines} more lines)"])


def _render_text(block: Block, theme: str, max_lines: int | None) -> ConsoleRenderable:
    return Markdown(_preview(block.content, max_lines), code_theme=theme)


def _render_code(block: Block, theme: str, max_lines: int | None) -> ConsoleRenderable:
    meta: CodeMeta = block.metadata
    return Syntax(_preview(block.content, max_lines), meta.language, theme=theme, background_color="default")


def _render_command(block: Block, theme: str, max_lines: int | None) -> ConsoleRenderable:
    meta: CommandMeta = block.metadata
    code = Syntax("$ " + _preview(block.content, max_lines), "bash", theme=theme, background_color="default")
    if meta.exit_code is None:
        return code
    style = "green" if meta.exit_code == 0 else "red"
    return Group(code, Text(f"exit {meta.exit_code}", style=style))


def _render_diff(block: Block, theme: str, max_lines: int | None) -> ConsoleRenderable:
    meta: DiffMeta = block.metadata
    header = Text()
    if meta.file_path:
        header.append(meta.file_path + " ", style="bold")
    header.append(f"+{meta.additions}", style="green")
    header.append(" ")
    header.append(f"-{meta.deletions}", style="red")
    return Group(header, Syntax(_preview(block.content, max_lines), "diff", theme=theme, background_color="default"))


def _render_tool(block: Block, theme: str, max_lines: int | None) -> ConsoleRenderable:
    meta: ToolMeta = block.metadata
    header = Text()
    header.append(f"[{meta.tool_name}]", style="bold")
    header.append(f" {meta.state.value}", style=_STATE_STYLES.get(meta.state, ""))
    header.append(f"  {meta.tool_call_id}", style="dim")
    parts: list[ConsoleRenderable] = [header]
    if meta.args:
        args_text = json.dumps(meta.args, indent=2, default=str)
        parts.append(Syntax(_preview(args_text, max_lines), "json", theme=theme, background_color="default"))
    if meta.error:
        parts.append(Text(meta.error, style="red"))
    elif meta.result is not None:
        result_text = meta.result if isinstance(meta.result, str) else json.dumps(meta.result, default=str)
        parts.append(Text(_preview(result_text, max_lines), style="dim"))
    return Group(*parts)


def file_changes_table(files: list[FileChange] | tuple[FileChange, ...], title: str | None = None) -> Table:
    """Table of FileChanges with a totals footer."""
    table = Table(title=title, show_footer=True)
    table.add_column("File", footer=f"{len(files)} files")
    table.add_column("Change")
    table.add_column("+", justify="right", style="green", footer=str(sum(f.additions for f in files)))
    table.add_column("-", justify="right", style="red", footer=str(sum(f.deletions for f in files)))
    for change in files:
        table.add_row(
            change.file_path,
            Text(change.change_type.value, style=_CHANGE_STYLES[change.change_type]),
            str(change.additions),
            str(change.deletions),
        )
    return table


def _render_file_summary(block: Block, theme: str, max_lines: int | None) -> ConsoleRenderable:
    meta: FileSummaryMeta = block.metadata
    return file_changes_table(meta.files, title=block.content)


_RENDERERS: dict[BlockType, Callable[[Block, str, int | None], ConsoleRenderable]] = {
    BlockType.TEXT: _render_text,
    BlockType.CODE: _render_code,
    BlockType.COMMAND: _render_command,
    BlockType.DIFF: _render_diff,
    BlockType.TOOL: _render_tool,
    BlockType.FILE_SUMMARY: _render_file_summary,
}


def block_title(block: Block) -> str:
    meta = block.metadata
    label = f"#{block.order} {block.type.value}"
    if isinstance(meta, CodeMeta):
        label += f" ({meta.language})"
    return label


def render_block(block: Block, theme: str = DEFAULT_CODE_THEME, max_lines: int | None = None) -> ConsoleRenderable:
    """Render one Block inside a titled panel."""
    body = _RENDERERS[block.type](block, theme, max_lines)
    return Panel(body, title=block_title(block), title_align="left")


def render_blocks(blocks: list[Block], theme: str = DEFAULT_CODE_THEME, max_lines: int | None = None) -> Group:
    return Group(*(render_block(b, theme, max_lines) for b in sort_blocks(blocks)))


def blocks_table(blocks: list[Block]) -> Table:
    """Compact one-row-per-Block overview."""
    table = Table(show_lines=False)
    table.add_column("order", justify="right")
    table.add_column("type")
    table.add_column("detail")
    table.add_column("content")
    for block in sort_blocks(blocks):
        first_line = block.content.split("\n", 1)[0]
        table.add_row(str(block.order), block.type.value, _detail(block), first_line[:60])
    return table


def _detail(block: Block) -> str:
    meta = block.metadata
    if isinstance(meta, (CodeMeta, CommandMeta)):
        return meta.language
    if isinstance(meta, DiffMeta):
        return f"+{meta.additions} -{meta.deletions}"
    if isinstance(meta, ToolMeta):
        return f"{meta.tool_name} {meta.state.value}"
    if isinstance(meta, FileSummaryMeta):
        return f"+{meta.total_additions} -{meta.total_deletions}"
    return ""
