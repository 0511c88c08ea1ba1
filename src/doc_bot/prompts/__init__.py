"""Prompt rendering for documentation and build-fix requests."""

from doc_bot.prompts.build_fix import render_build_fix_prompt, strip_code_fences
from doc_bot.prompts.families import (
    DEFAULT_FAMILY,
    PROMPT_FAMILIES,
    PromptRenderer,
    resolve_family,
)
from doc_bot.prompts.library import PromptLibrary

__all__ = [
    "DEFAULT_FAMILY",
    "PROMPT_FAMILIES",
    "PromptLibrary",
    "PromptRenderer",
    "render_build_fix_prompt",
    "resolve_family",
    "strip_code_fences",
]
