"""LangGraph orchestration for documenting files in batches."""

from doc_bot.orchestrator.discovery import discover_candidates
from doc_bot.orchestrator.exceptions import (
    GraphBuildError,
    OrchestratorError,
    RecordInvariantError,
)
from doc_bot.orchestrator.file_processor import FileProcessor
from doc_bot.orchestrator.graph import CodeModelProvider, build_file_graph, decide_fn
from doc_bot.orchestrator.scheduler import BatchScheduler, VcsCollaborator
from doc_bot.orchestrator.state import FileState, make_initial_state

__all__ = [
    "BatchScheduler",
    "CodeModelProvider",
    "FileProcessor",
    "FileState",
    "GraphBuildError",
    "OrchestratorError",
    "RecordInvariantError",
    "VcsCollaborator",
    "build_file_graph",
    "decide_fn",
    "discover_candidates",
    "make_initial_state",
]
