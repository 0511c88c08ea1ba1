"""Drives one file through the documentation state machine."""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from doc_bot.agents import (
    BuildGate,
    BuildValidationError,
    CodeModelError,
    InferenceProvider,
    MemberProcessor,
    ProviderError,
    RepositoryIOError,
)
from doc_bot.models import FileOutcome, FileResult, WorkloadConfig
from doc_bot.orchestrator.graph import (
    CodeModelProvider,
    build_file_graph,
    recursion_limit_for,
)
from doc_bot.orchestrator.state import make_initial_state
from doc_bot.utils import SourceEditor

if TYPE_CHECKING:
    from doc_bot.recording import RunRecorder

logger = logging.getLogger(__name__)


class FileProcessor:
    """Runs SELECTING -> DOCUMENTING -> (VALIDATING <-> FIXING)* -> FINALIZING.

    Provider, build-validator and parse failures end the file as
    FAILED_HARD and leave its edits as they are. Repository I/O failures are
    recorded the same way and then re-raised so the run can stop.
    """

    def __init__(
        self,
        code_model: CodeModelProvider,
        member_processor: MemberProcessor,
        build_gate: BuildGate,
        inference: InferenceProvider,
        recorder: "RunRecorder",
        workload: WorkloadConfig,
    ) -> None:
        self.recorder = recorder
        self.workload = workload
        self._graph = build_file_graph(
            code_model=code_model,
            member_processor=member_processor,
            build_gate=build_gate,
            inference=inference,
            recorder=recorder,
            workload=workload,
        )

    def process(self, file_path: str | Path, file_result: FileResult) -> FileResult:
        """Process a single file to a terminal outcome.

        Args:
            file_path: Path of the file on disk.
            file_result: Open record for the file, as returned by
                ``RunRecorder.start_file``.

        Returns:
            The same FileResult, finalized.

        Raises:
            RepositoryIOError: If the file cannot be read or written.
        """
        logger.info("Processing %s", file_result.file_path)
        try:
            editor = SourceEditor(file_path, display_path=file_result.file_path)
            state = make_initial_state(
                str(file_path),
                editor,
                file_result,
                max_build_retries=self.workload.max_build_retries,
            )
            self._graph.invoke(
                state,
                config={"recursion_limit": recursion_limit_for(state["max_build_retries"])},
            )
        except RepositoryIOError as e:
            self._fail_hard(file_result, e)
            raise
        except (ProviderError, BuildValidationError, CodeModelError, ValueError) as e:
            self._fail_hard(file_result, e)

        logger.info(
            "Finished %s: %s (documented=%d, build_attempts=%d)",
            file_result.file_path,
            file_result.outcome.value if file_result.outcome else "open",
            file_result.members_documented,
            file_result.build_attempt_count,
        )
        return file_result

    def _fail_hard(self, file_result: FileResult, error: Exception) -> None:
        logger.error("Failed to process %s: %s", file_result.file_path, error)
        if file_result.is_finalized:
            return
        file_result.success = False
        self.recorder.finalize_file(
            file_result,
            FileOutcome.FAILED_HARD,
            f"{type(error).__name__}: {error}",
        )
