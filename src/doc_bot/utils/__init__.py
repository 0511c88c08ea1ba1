"""Utilities for the documentation bot."""

from doc_bot.utils.diff_generator import (
    detect_newline,
    generate_unified_diff,
    leading_indentation,
)
from doc_bot.utils.source_editor import SourceEditor

__all__ = [
    "SourceEditor",
    "detect_newline",
    "generate_unified_diff",
    "leading_indentation",
]
