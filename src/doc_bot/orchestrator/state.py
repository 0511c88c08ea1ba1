"""State definition for the per-file LangGraph state machine."""

import operator
from typing import Annotated, TypedDict

from doc_bot.models import (
    MAX_BUILD_RETRIES_LIMIT,
    BuildOutcome,
    FileResult,
    MemberDescriptor,
)
from doc_bot.utils import SourceEditor


class FileState(TypedDict):
    """State for processing one file.

    ``errors`` accumulates across nodes through its reducer. All other
    fields use default overwrite semantics. The editor and the file result
    are shared objects that nodes mutate in place.
    """

    # Input
    file_path: str
    display_path: str
    max_build_retries: int

    # Collaborator-owned objects
    editor: SourceEditor
    file_result: FileResult

    # Selecting
    members: list[MemberDescriptor]

    # Validating / fixing
    attempt_number: int
    last_outcome: BuildOutcome | None

    # Error accumulation
    errors: Annotated[list[str], operator.add]


def make_initial_state(
    file_path: str,
    editor: SourceEditor,
    file_result: FileResult,
    max_build_retries: int = 2,
) -> FileState:
    """Create the initial state for one file.

    Args:
        file_path: Absolute path of the file on disk.
        editor: Working copy opened on the file.
        file_result: Record that receives the file's counters.
        max_build_retries: Build-fix budget for the file.

    Returns:
        FileState with every field initialised.
    """
    clamped_retries = max(0, min(max_build_retries, MAX_BUILD_RETRIES_LIMIT))
    return {
        "file_path": file_path,
        "display_path": file_result.file_path,
        "max_build_retries": clamped_retries,
        "editor": editor,
        "file_result": file_result,
        "members": [],
        "attempt_number": 1,
        "last_outcome": None,
        "errors": [],
    }
