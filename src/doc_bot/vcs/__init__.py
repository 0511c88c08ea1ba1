"""Version control integration."""

from doc_bot.vcs.git_manager import GitManager, default_branch_name
from doc_bot.vcs.messages import (
    build_commit_message,
    build_pr_body,
    build_pr_title,
    committed_files,
)

__all__ = [
    "GitManager",
    "build_commit_message",
    "build_pr_body",
    "build_pr_title",
    "committed_files",
    "default_branch_name",
]
