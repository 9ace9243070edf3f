"""Shared test builders for cc-blocks.

Re-exports all public API for convenient imports:
    from tests.harness import make_message, make_tool_part, make_git_diff, ...
"""

from tests.harness.builders import (
    make_git_diff,
    make_message,
    make_text_part,
    make_tool_part,
    fence,
)

__all__ = [
    "make_git_diff",
    "make_message",
    "make_text_part",
    "make_tool_part",
    "fence",
]
