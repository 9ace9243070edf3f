"""CLI entry point for cc-blocks.

    cc-blocks parse [FILE]              markdown -> Blocks
    cc-blocks convert MESSAGE.json      external message -> Blocks (+ file summary)
    cc-blocks diffstat [FILE]           unified diff -> FileChanges

FILE defaults to stdin ("-").
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from rich.console import Console

from cc_blocks.adapter import to_external_message
from cc_blocks.file_changes import FileChangeTracker
from cc_blocks.parser import parse_message
from cc_blocks.pipeline import build_message_blocks
from cc_blocks.storage_codec import block_to_row
import cc_blocks.io.logging_setup
import cc_blocks.rendering
import cc_blocks.settings

logger = logging.getLogger(__name__)


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _print_rows(console: Console, blocks) -> None:
    console.print_json(json.dumps([block_to_row(b) for b in blocks], default=str))


def _cmd_parse(args, console: Console) -> int:
    result = parse_message(_read_input(args.file), args.message_id)
    for warning in result.warnings:
        logger.warning("%s", warning)
    if args.json:
        _print_rows(console, result.blocks)
    else:
        console.print(cc_blocks.rendering.blocks_table(result.blocks))
        console.print(
            cc_blocks.rendering.render_blocks(
                result.blocks,
                theme=cc_blocks.settings.load_code_theme(),
                max_lines=cc_blocks.settings.load_preview_lines(),
            )
        )
    return 1 if result.errors else 0


def _cmd_convert(args, console: Console) -> int:
    raw = json.loads(_read_input(args.file))
    if not isinstance(raw, dict):
        raise ValueError("message JSON must be an object")
    project_root = args.project_root or cc_blocks.settings.load_project_root()
    blocks = build_message_blocks(raw, project_root)
    if args.roundtrip:
        if not blocks:
            logger.error("message has no content to convert back")
            return 1
        console.print_json(json.dumps(to_external_message(blocks, raw.get("role", "assistant")).to_dict(), default=str))
    elif args.json:
        _print_rows(console, blocks)
    else:
        console.print(cc_blocks.rendering.blocks_table(blocks))
        console.print(cc_blocks.rendering.render_blocks(blocks, theme=cc_blocks.settings.load_code_theme()))
    return 0


def _cmd_diffstat(args, console: Console) -> int:
    tracker = FileChangeTracker(args.project_root or cc_blocks.settings.load_project_root())
    tracker.track_from_raw_diff_text(_read_input(args.file))
    changes = tracker.finalize()
    if not changes:
        console.print("no file changes")
        return 0
    console.print(cc_blocks.rendering.file_changes_table(changes))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cc-blocks",
        description="Split assistant messages into typed blocks and summarize file changes",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_parse = sub.add_parser("parse", help="Parse markdown into blocks")
    p_parse.add_argument("file", nargs="?", default="-", help="Markdown file (default: stdin)")
    p_parse.add_argument("--message-id", default="cli-message", help="Message id stamped on blocks")
    p_parse.add_argument("--json", action="store_true", help="Print storage rows as JSON")
    p_parse.set_defaults(handler=_cmd_parse)

    p_convert = sub.add_parser("convert", help="Convert an external message JSON file")
    p_convert.add_argument("file", help="Message JSON file ('-' for stdin)")
    p_convert.add_argument("--project-root", default=None, help="Project root for file paths")
    p_convert.add_argument("--json", action="store_true", help="Print storage rows as JSON")
    p_convert.add_argument(
        "--roundtrip",
        action="store_true",
        help="Print the message rebuilt from its blocks",
    )
    p_convert.set_defaults(handler=_cmd_convert)

    p_diff = sub.add_parser("diffstat", help="Summarize a unified diff per file")
    p_diff.add_argument("file", nargs="?", default="-", help="Diff file (default: stdin)")
    p_diff.add_argument("--project-root", default=None, help="Project root for file paths")
    p_diff.set_defaults(handler=_cmd_diffstat)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    # [LAW:single-enforcer] Runtime logger configuration is centralized in io.logging_setup.
    log_runtime = cc_blocks.io.logging_setup.configure(run_name=args.command)
    logger.debug("logging configured level=%s file=%s", log_runtime.level_name, log_runtime.file_path)

    console = Console()
    try:
        return args.handler(args, console)
    except (OSError, ValueError) as e:
        # json.JSONDecodeError is a ValueError
        logger.error("%s failed: %s", args.command, e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
