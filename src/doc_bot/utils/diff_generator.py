"""Utilities for generating diffs and reading source layout."""

import difflib
import re

LEADING_WHITESPACE = re.compile(r"^[ \t]*")


def generate_unified_diff(
    file_path: str,
    original_content: str,
    modified_content: str,
) -> str:
    """Generate a git-compatible unified diff.

    Args:
        file_path: Relative path from repo root (e.g. "src/Widget.cs").
        original_content: File content before documentation was inserted.
        modified_content: File content after documentation was inserted.

    Returns:
        Unified diff string with a/ b/ prefixes. Empty string if no changes.
    """
    if original_content == modified_content:
        return ""

    diff_gen = difflib.unified_diff(
        original_content.splitlines(keepends=True),
        modified_content.splitlines(keepends=True),
        fromfile=f"a/{file_path}",
        tofile=f"b/{file_path}",
        lineterm="",
    )
    # Lines keep their own endings from keepends=True
    return "\n".join(line.rstrip("\r\n") for line in diff_gen)


def detect_newline(content: str) -> str:
    """Return the dominant line terminator of a file, defaulting to LF."""
    crlf = content.count("\r\n")
    lf = content.count("\n") - crlf
    return "\r\n" if crlf > lf else "\n"


def leading_indentation(line: str) -> str:
    """Return the run of spaces and tabs that starts a line."""
    return LEADING_WHITESPACE.match(line).group(0)
