"""Tests for diff_generator utility functions."""

import pytest

from doc_bot.utils.diff_generator import (
    detect_newline,
    generate_unified_diff,
    leading_indentation,
)


def test_generate_unified_diff_basic():
    """Basic diff has --- a/ and +++ b/ headers and the inserted line."""
    diff = generate_unified_diff(
        "src/Widget.cs",
        "public void Reset()\n{\n}\n",
        "/// <summary>Resets.</summary>\npublic void Reset()\n{\n}\n",
    )
    assert diff.startswith("--- a/src/Widget.cs")
    assert "+++ b/src/Widget.cs" in diff
    assert "+/// <summary>Resets.</summary>" in diff


def test_generate_unified_diff_no_changes():
    """Identical content returns empty string."""
    diff = generate_unified_diff("A.cs", "class A {}\n", "class A {}\n")
    assert diff == ""


def test_generate_unified_diff_crlf_lines_not_doubled():
    """CRLF content produces one diff line per source line."""
    diff = generate_unified_diff("A.cs", "a\r\nb\r\n", "a\r\nc\r\n")
    assert "-b" in diff.splitlines()
    assert "+c" in diff.splitlines()
    assert "\r" not in diff


@pytest.mark.parametrize(
    "content, expected",
    [
        ("a\nb\n", "\n"),
        ("a\r\nb\r\n", "\r\n"),
        ("a\r\nb\nc\r\n", "\r\n"),
        ("single line", "\n"),
        ("", "\n"),
    ],
)
def test_detect_newline(content, expected):
    """The dominant terminator wins, LF by default."""
    assert detect_newline(content) == expected


@pytest.mark.parametrize(
    "line, expected",
    [
        ("        public int Add()", "        "),
        ("\t\tpublic int Add()", "\t\t"),
        ("public int Add()", ""),
        ("  \t x", "  \t "),
    ],
)
def test_leading_indentation(line, expected):
    assert leading_indentation(line) == expected
